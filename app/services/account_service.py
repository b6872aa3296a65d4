"""Account bootstrap and password login helpers."""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import get_password_hash, verify_password
from app.models import User

logger = logging.getLogger(__name__)


def ensure_default_admin(db: Session) -> bool:
    """Ensure the configured agency admin exists and is active.

    Returns:
        bool: True when the admin account existed before this call.
    """
    email = settings.admin_email.strip().lower()
    existing_admin = db.scalar(select(User).where(User.email == email).limit(1))
    if existing_admin is not None:
        updates_applied = False
        if not existing_admin.is_active:
            existing_admin.is_active = True
            updates_applied = True
            logger.info("[BOOTSTRAP] Admin exists but was inactive; account re-activated.")
        if existing_admin.role != "AGENCY_ADMIN":
            logger.warning(
                "[BOOTSTRAP] Bootstrap admin role auto-fix applied for %s (old=%s, new=AGENCY_ADMIN).",
                email,
                existing_admin.role,
            )
            existing_admin.role = "AGENCY_ADMIN"
            updates_applied = True
        if updates_applied:
            db.commit()
        logger.info("[BOOTSTRAP] Admin exists")
        return True

    if settings.app_env != "dev":
        logger.info("[BOOTSTRAP] No admin account and APP_ENV=%s; skipping default admin creation.", settings.app_env)
        return False

    db.add(
        User(
            email=email,
            first_name="Agency",
            last_name="Admin",
            password_hash=get_password_hash(settings.admin_password),
            role="AGENCY_ADMIN",
            is_active=True,
        )
    )
    db.commit()
    logger.warning("[SECURITY] Default agency admin created: %s. Change the password immediately.", email)
    return False


def authenticate_user(db: Session, email: str, password: str) -> User | None:
    user = db.scalar(select(User).where(User.email == email.strip().lower()).limit(1))
    if user is None or not user.is_active:
        return None
    if not verify_password(password, user.password_hash):
        return None
    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    db.refresh(user)
    return user
