"""Streamlit impersonation audit report for agency admins."""

from datetime import date

import streamlit as st

from app.schemas.impersonation import AuditEventType, AuditFilters
from app.services import audit_report
from streamlit_app.common import load_audit_store, now_string

EVENT_LABELS = {
    "All Types": None,
    "Session Start": AuditEventType.SESSION_START,
    "Actions": AuditEventType.SESSION_ACTION,
    "Session End": AuditEventType.SESSION_END,
}

st.set_page_config(page_title="Impersonation Audit Log", layout="wide")
st.title("Impersonation Audit Log")
st.caption(f"Complete audit trail of all login-as-user activities. Last refresh: {now_string()}")

store = load_audit_store()

col_search, col_type, col_start, col_end = st.columns(4)
search_term = col_search.text_input("Search", placeholder="Search emails, actions...")
type_label = col_type.selectbox("Event Type", list(EVENT_LABELS.keys()))
start_date = col_start.date_input("Start Date", value=None)
end_date = col_end.date_input("End Date", value=None)

filters = AuditFilters(type=EVENT_LABELS[type_label], start_date=start_date, end_date=end_date)
entries = audit_report.search(store, filters, search_term)

st.subheader(f"Audit Entries ({len(entries)})")
st.dataframe(
    [dict(zip(audit_report.EXPORT_COLUMNS, audit_report.export_row(entry))) for entry in entries],
    use_container_width=True,
)

st.download_button(
    "Export CSV",
    data=audit_report.to_csv(entries),
    file_name=audit_report.export_filename(date.today(), "csv"),
    mime="text/csv",
)
