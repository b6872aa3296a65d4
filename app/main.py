"""FastAPI entrypoint for the clinic dashboard backend."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from app.api.v1.api import api_router
from app.core.config import settings
from app.core.request_context import RouteContextMiddleware
from app.db import session as db_session
from app.db.base import Base
from app.services.account_service import ensure_default_admin
from app.services.audit_sink import SqlAuditSink
from app.services.audit_store import AuditStore
from app.services.impersonation_service import ImpersonationRegistry

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.add_middleware(RouteContextMiddleware)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup() -> None:
    Base.metadata.create_all(bind=db_session.engine)
    with db_session.SessionLocal() as session:
        try:
            admin_present = ensure_default_admin(session)
            logger.info("[BOOTSTRAP] default admin present: %s", "yes" if admin_present else "no")
        except Exception:
            logger.exception("[BOOTSTRAP] Admin bootstrap failed; continuing startup.")

    audit_store = AuditStore.from_settings(SqlAuditSink(db_session.new_session))
    audit_store.load()
    app.state.impersonation = ImpersonationRegistry(audit_store)


@app.on_event("shutdown")
def shutdown() -> None:
    registry: ImpersonationRegistry | None = getattr(app.state, "impersonation", None)
    if registry is None:
        return
    # Live sessions are dropped on purpose; only their audit entries outlive the process.
    for session in registry.active_sessions():
        logger.warning(
            "[IMPERSONATION] Discarding live session %s (%s as %s) at shutdown.",
            session.session_id,
            session.admin.email,
            session.target.email,
        )
    registry.audit_store.close(settings.audit_flush_timeout_seconds)
    app.state.impersonation = None


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
