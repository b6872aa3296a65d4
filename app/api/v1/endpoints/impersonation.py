"""Login-as-user endpoints: start, instrument, end and inspect a session."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.deps import get_registry, get_session_manager, require_agency_admin
from app.auth import role_landing
from app.core.security import get_current_user
from app.db.session import get_db
from app.models import User
from app.schemas.impersonation import (
    ActionLogRequest,
    ActionLogResponse,
    ImpersonationContext,
    ImpersonationEndResponse,
    ImpersonationSession,
    ImpersonationStartRequest,
    ImpersonationStartResponse,
)
from app.services.client_metadata import lookup_for_request
from app.services.impersonation_service import (
    AlreadyImpersonating,
    ImpersonationRegistry,
    SessionManager,
    describe_context,
)
from app.services.security_guards import ensure_can_impersonate
from app.services.user_service import admin_identity, get_user_by_id, target_identity

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/start", response_model=ImpersonationStartResponse, status_code=status.HTTP_201_CREATED)
def start_impersonation(
    payload: ImpersonationStartRequest,
    request: Request,
    admin: User = Depends(require_agency_admin),
    manager: SessionManager = Depends(get_session_manager),
    db: Session = Depends(get_db),
) -> ImpersonationStartResponse:
    target = get_user_by_id(db=db, user_id=payload.target_user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    ensure_can_impersonate(admin, target)

    try:
        session = manager.start(
            admin_identity(admin),
            target_identity(target),
            payload.reason,
            user_agent=request.headers.get("user-agent"),
            ip_lookup=lookup_for_request(request),
        )
    except AlreadyImpersonating as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc

    manager.log_action(
        "LOGIN_AS_USER",
        f"Admin {admin.email} logged in as {target.email}",
        {"target_user_id": target.id, "target_user_role": target.role, "reason": session.reason},
    )
    return ImpersonationStartResponse(session=manager.session or session, landing_route=role_landing(target.role))


@router.post("/actions", response_model=ActionLogResponse, status_code=status.HTTP_202_ACCEPTED)
def log_impersonation_action(
    payload: ActionLogRequest,
    manager: SessionManager = Depends(get_session_manager),
) -> ActionLogResponse:
    record = manager.log_action(payload.type, payload.details, payload.payload, route=payload.route)
    return ActionLogResponse(logged=record is not None, action_id=record.id if record else None)


@router.post("/end", response_model=ImpersonationEndResponse)
def end_impersonation(
    current_user: User = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
) -> ImpersonationEndResponse:
    summary = manager.end()
    landing_route = role_landing(current_user.role)
    if summary is None:
        return ImpersonationEndResponse(ended=False, landing_route=landing_route)
    return ImpersonationEndResponse(
        ended=True,
        session_id=summary.session_id,
        duration_ms=summary.duration_ms,
        actions_performed=summary.actions_performed,
        landing_route=landing_route,
    )


@router.get("/context", response_model=ImpersonationContext)
def impersonation_context(
    current_user: User = Depends(get_current_user),
    manager: SessionManager = Depends(get_session_manager),
) -> ImpersonationContext:
    return describe_context(manager, admin_identity(current_user))


@router.get("/active", response_model=list[ImpersonationSession])
def active_sessions(
    _admin: User = Depends(require_agency_admin),
    registry: ImpersonationRegistry = Depends(get_registry),
) -> list[ImpersonationSession]:
    return registry.active_sessions()
