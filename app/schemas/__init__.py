"""Schema exports."""

from app.schemas.auth import AuthUserResponse, LoginRequest, RegisterRequest, TokenResponse
from app.schemas.impersonation import (
    ActionRecord,
    AdminIdentity,
    AuditEntry,
    AuditEventType,
    AuditFilters,
    ClientMetadata,
    ImpersonationContext,
    ImpersonationSession,
    SessionSummary,
    TargetIdentity,
)
from app.schemas.user import DashboardRead, UserListItem, UserRead

__all__ = [
    "AuthUserResponse",
    "LoginRequest",
    "RegisterRequest",
    "TokenResponse",
    "ActionRecord",
    "AdminIdentity",
    "AuditEntry",
    "AuditEventType",
    "AuditFilters",
    "ClientMetadata",
    "ImpersonationContext",
    "ImpersonationSession",
    "SessionSummary",
    "TargetIdentity",
    "DashboardRead",
    "UserListItem",
    "UserRead",
]
