from sqlalchemy import create_engine, select, text
from sqlalchemy.orm import sessionmaker

from app.core.config import settings
from app.core.security import verify_password
from app.db.base import Base
from app.models import User
from app.services.account_service import authenticate_user, ensure_default_admin


def _build_session_local() -> sessionmaker:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    Base.metadata.create_all(bind=engine)
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def test_ensure_default_admin_is_idempotent(monkeypatch) -> None:
    monkeypatch.setattr(settings, "app_env", "dev")
    session_local = _build_session_local()

    with session_local() as session:
        existed = ensure_default_admin(session)
        assert existed is False
        admins = session.scalars(select(User).where(User.email == settings.admin_email)).all()
        assert len(admins) == 1

    with session_local() as session:
        existed = ensure_default_admin(session)
        assert existed is True
        admins = session.scalars(select(User).where(User.email == settings.admin_email)).all()
        assert len(admins) == 1
        assert admins[0].is_active is True
        assert admins[0].role == "AGENCY_ADMIN"
        assert verify_password(settings.admin_password, admins[0].password_hash)


def test_ensure_default_admin_fixes_role_and_reactivates(monkeypatch) -> None:
    monkeypatch.setattr(settings, "app_env", "dev")
    session_local = _build_session_local()

    with session_local() as session:
        session.execute(
            text(
                """
                INSERT INTO users (email, first_name, last_name, password_hash, role, is_active, created_at)
                VALUES (:email, '', '', 'legacy-hash', 'CLINIC_USER', 0, CURRENT_TIMESTAMP)
                """
            ),
            {"email": settings.admin_email},
        )
        session.commit()

    with session_local() as session:
        existed = ensure_default_admin(session)
        assert existed is True
        admin = session.scalar(select(User).where(User.email == settings.admin_email).limit(1))
        assert admin is not None
        assert admin.is_active is True
        assert admin.role == "AGENCY_ADMIN"
        assert admin.password_hash == "legacy-hash"


def test_default_admin_not_created_outside_dev(monkeypatch) -> None:
    monkeypatch.setattr(settings, "app_env", "prod")
    session_local = _build_session_local()

    with session_local() as session:
        assert ensure_default_admin(session) is False
        assert session.scalars(select(User)).all() == []


def test_authenticate_user_records_last_login(monkeypatch) -> None:
    monkeypatch.setattr(settings, "app_env", "dev")
    session_local = _build_session_local()

    with session_local() as session:
        ensure_default_admin(session)
        assert authenticate_user(session, settings.admin_email.upper(), "wrong") is None
        user = authenticate_user(session, settings.admin_email.upper(), settings.admin_password)
        assert user is not None
        assert user.last_login_at is not None
