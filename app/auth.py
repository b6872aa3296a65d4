"""Role landing routes used when switching between real and borrowed identities."""

from __future__ import annotations

ROLE_LANDING: dict[str, str] = {
    "AGENCY_ADMIN": "/agency",
    "AGENCY_USER": "/agency",
    "CLINIC_ADMIN": "/clinic-admin",
    "CLINIC_USER": "/clinic",
}


def role_landing(role: str | None) -> str:
    """Resolve role landing path with login fallback."""
    return ROLE_LANDING.get(str(role or "").upper(), "/login")
