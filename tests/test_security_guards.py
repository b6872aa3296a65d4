"""Who may log in as whom."""

import pytest
from fastapi import HTTPException

from app.models import User
from app.services.security_guards import can_impersonate, ensure_can_impersonate, ensure_role, impersonation_denial


def _user(user_id: int, role: str, is_active: bool = True) -> User:
    return User(id=user_id, email=f"user{user_id}@example.com", password_hash="x", role=role, is_active=is_active)


def test_agency_admin_can_impersonate_clinic_and_agency_staff() -> None:
    admin = _user(1, "AGENCY_ADMIN")

    for role in ("CLINIC_USER", "CLINIC_ADMIN", "AGENCY_USER"):
        assert can_impersonate(admin, _user(2, role)) is True


@pytest.mark.parametrize(
    ("admin", "target", "message"),
    [
        (_user(1, "CLINIC_ADMIN"), _user(2, "CLINIC_USER"), "Only agency admins"),
        (_user(1, "AGENCY_ADMIN"), _user(1, "AGENCY_ADMIN"), "yourself"),
        (_user(1, "AGENCY_ADMIN"), _user(2, "AGENCY_ADMIN"), "cannot be impersonated"),
        (_user(1, "AGENCY_ADMIN"), _user(2, "CLINIC_USER", is_active=False), "Inactive"),
    ],
)
def test_impersonation_denials(admin: User, target: User, message: str) -> None:
    denial = impersonation_denial(admin, target)
    assert denial is not None and message in denial

    with pytest.raises(HTTPException) as exc_info:
        ensure_can_impersonate(admin, target)
    assert exc_info.value.status_code == 403


def test_ensure_role_rejects_other_roles() -> None:
    ensure_role(_user(1, "AGENCY_ADMIN"), {"AGENCY_ADMIN"})

    with pytest.raises(HTTPException) as exc_info:
        ensure_role(_user(2, "CLINIC_USER"), {"AGENCY_ADMIN"})
    assert exc_info.value.status_code == 403
