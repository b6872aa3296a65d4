"""Password hashing and bearer-token identity of the real operator.

Tokens always name the account that logged in. Impersonation never mints a
token for the target; the borrowed identity lives only in the session manager.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.core.config import settings
from app.db.session import get_db
from app.models.user import User
from app.services.user_service import get_user_by_id

logger = logging.getLogger(__name__)

pwd_context: CryptContext = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
bearer_scheme: HTTPBearer = HTTPBearer(auto_error=True)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(user: User, expires_minutes: int | None = None) -> str:
    """Sign a token for ``user`` carrying its id and role at login time."""
    issued_at = datetime.now(timezone.utc)
    claims: dict[str, Any] = {
        "sub": str(user.id),
        "role": user.role,
        "iat": issued_at,
        "exp": issued_at + timedelta(minutes=expires_minutes or settings.jwt_expire_minutes),
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def verify_token(token: str) -> dict[str, Any]:
    """Decode a token, raising 401 when the signature or expiry is invalid."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        logger.info("[AUTH] Rejected bearer token: %s", exc)
        raise _unauthorized("Could not validate credentials") from exc


def token_subject(token: str) -> int:
    """Return the user id a token was issued for."""
    subject = verify_token(token).get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise _unauthorized("Invalid authentication token") from exc


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the operator's own account; deactivated accounts lose access immediately."""
    user: User | None = get_user_by_id(db=db, user_id=token_subject(credentials.credentials))
    if user is None or not user.is_active:
        raise _unauthorized("User not found")
    return user
