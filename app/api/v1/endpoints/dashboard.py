"""Dashboard shell endpoint rendered for the acting identity."""

from fastapi import APIRouter, Depends

from app.api.deps import get_effective_user, get_session_manager
from app.auth import role_landing
from app.schemas.impersonation import AdminIdentity, TargetIdentity
from app.schemas.user import DashboardRead
from app.services.impersonation_service import SessionManager

router: APIRouter = APIRouter()


@router.get("", response_model=DashboardRead)
def dashboard(
    acting_user: AdminIdentity | TargetIdentity = Depends(get_effective_user),
    manager: SessionManager = Depends(get_session_manager),
) -> DashboardRead:
    manager.log_action("VIEW_DASHBOARD", f"Viewed {acting_user.role} dashboard as {acting_user.email}")
    return DashboardRead(
        user_id=acting_user.id,
        email=acting_user.email,
        role=acting_user.role,
        landing_route=role_landing(acting_user.role),
        is_impersonating=manager.is_impersonating,
    )
