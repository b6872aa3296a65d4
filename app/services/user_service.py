"""User service operations."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.models.user import User, normalize_user_role
from app.schemas.impersonation import AdminIdentity, TargetIdentity


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email.strip().lower()).limit(1))


def get_user_by_id(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def list_users(db: Session) -> list[User]:
    return list(db.scalars(select(User).order_by(User.last_name, User.first_name, User.id)).all())


def create_user(
    db: Session,
    email: str,
    hashed_password: str,
    role: str,
    first_name: str = "",
    last_name: str = "",
    is_active: bool = True,
) -> User:
    user = User(
        email=email.strip().lower(),
        password_hash=hashed_password,
        role=normalize_user_role(role),
        first_name=first_name,
        last_name=last_name,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def admin_identity(user: User) -> AdminIdentity:
    return AdminIdentity.model_validate(user)


def target_identity(user: User) -> TargetIdentity:
    return TargetIdentity.model_validate(user)
