"""Centralized role and impersonation access guards."""

from __future__ import annotations

from fastapi import HTTPException

from app.models import User

IMPERSONATOR_ROLES: frozenset[str] = frozenset({"AGENCY_ADMIN"})
PROTECTED_TARGET_ROLES: frozenset[str] = frozenset({"AGENCY_ADMIN"})


def ensure_role(user: User, allowed_roles: set[str] | frozenset[str]) -> None:
    """Ensure user role is one of allowed roles."""
    if user.role not in allowed_roles:
        raise HTTPException(status_code=403, detail="Forbidden")


def impersonation_denial(admin: User, target: User) -> str | None:
    """Return why ``admin`` may not log in as ``target``, or None when allowed."""
    if admin.role not in IMPERSONATOR_ROLES:
        return "Only agency admins can log in as other users."
    if admin.id == target.id:
        return "You cannot log in as yourself."
    if target.role in PROTECTED_TARGET_ROLES:
        return "Agency admins cannot be impersonated."
    if not target.is_active:
        return "Inactive users cannot be impersonated."
    return None


def can_impersonate(admin: User, target: User) -> bool:
    return impersonation_denial(admin, target) is None


def ensure_can_impersonate(admin: User, target: User) -> None:
    reason = impersonation_denial(admin, target)
    if reason is not None:
        raise HTTPException(status_code=403, detail=reason)
