"""Shared FastAPI dependencies for the impersonation and audit endpoints."""

from fastapi import Depends, HTTPException, Request, status

from app.core.security import get_current_user
from app.models import User
from app.schemas.impersonation import AdminIdentity, TargetIdentity
from app.services.audit_store import AuditStore
from app.services.impersonation_service import ImpersonationRegistry, SessionManager
from app.services.security_guards import IMPERSONATOR_ROLES, ensure_role
from app.services.user_service import admin_identity


def get_registry(request: Request) -> ImpersonationRegistry:
    registry: ImpersonationRegistry | None = getattr(request.app.state, "impersonation", None)
    if registry is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Impersonation service not ready")
    return registry


def get_audit_store(registry: ImpersonationRegistry = Depends(get_registry)) -> AuditStore:
    return registry.audit_store


def require_agency_admin(current_user: User = Depends(get_current_user)) -> User:
    ensure_role(current_user, IMPERSONATOR_ROLES)
    return current_user


def get_session_manager(
    current_user: User = Depends(get_current_user),
    registry: ImpersonationRegistry = Depends(get_registry),
) -> SessionManager:
    """Session manager scoped to the calling admin's client."""
    return registry.manager_for(current_user.id)


def get_effective_user(
    current_user: User = Depends(get_current_user),
    registry: ImpersonationRegistry = Depends(get_registry),
) -> AdminIdentity | TargetIdentity:
    """Identity the rest of the application acts as: the target while impersonating."""
    return registry.effective_user(admin_identity(current_user))
