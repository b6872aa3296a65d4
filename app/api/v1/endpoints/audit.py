"""Impersonation audit report endpoints (agency admins only)."""

from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response

from app.api.deps import get_audit_store, require_agency_admin
from app.core.config import settings
from app.schemas.impersonation import AuditEntry, AuditEventType, AuditFilters, DeliveryStatusResponse
from app.services import audit_report
from app.services.audit_store import AuditStore
from app.utils.time import parse_bound

router: APIRouter = APIRouter(dependencies=[Depends(require_agency_admin)])


def audit_filters(
    admin_id: int | None = None,
    target_user_id: int | None = None,
    session_id: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    type: AuditEventType | None = None,
) -> AuditFilters:
    try:
        return AuditFilters(
            admin_id=admin_id,
            target_user_id=target_user_id,
            session_id=session_id or None,
            start_date=parse_bound(start_date),
            end_date=parse_bound(end_date),
            type=type,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid date filter: {exc}") from exc


@router.get("", response_model=list[AuditEntry])
def list_audit_entries(
    filters: AuditFilters = Depends(audit_filters),
    search: str | None = Query(default=None, max_length=200),
    store: AuditStore = Depends(get_audit_store),
) -> list[AuditEntry]:
    store.cleanup()
    return audit_report.search(store, filters, search)


@router.get("/export.csv")
def export_audit_csv(
    filters: AuditFilters = Depends(audit_filters),
    search: str | None = Query(default=None, max_length=200),
    store: AuditStore = Depends(get_audit_store),
) -> Response:
    content = audit_report.to_csv(audit_report.search(store, filters, search))
    filename = audit_report.export_filename(date.today(), "csv")
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export.pdf")
def export_audit_pdf(
    filters: AuditFilters = Depends(audit_filters),
    search: str | None = Query(default=None, max_length=200),
    store: AuditStore = Depends(get_audit_store),
) -> Response:
    today = date.today()
    pdf_bytes = audit_report.render_pdf(
        audit_report.search(store, filters, search),
        {"today": today.isoformat(), "generated_at": datetime.now().strftime("%Y-%m-%d %H:%M")},
    )
    filename = audit_report.export_filename(today, "pdf")
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/cleanup")
def cleanup_audit_log(store: AuditStore = Depends(get_audit_store)) -> dict[str, int]:
    evicted = store.cleanup()
    return {"evicted": evicted, "retained": len(store)}


@router.get("/delivery", response_model=DeliveryStatusResponse)
def delivery_status(store: AuditStore = Depends(get_audit_store)) -> DeliveryStatusResponse:
    return DeliveryStatusResponse(retained=len(store), undelivered=store.undelivered)


@router.post("/redeliver", response_model=DeliveryStatusResponse)
def redeliver_audit_entries(store: AuditStore = Depends(get_audit_store)) -> DeliveryStatusResponse:
    store.redeliver()
    store.flush(settings.audit_flush_timeout_seconds)
    return DeliveryStatusResponse(retained=len(store), undelivered=store.undelivered)
