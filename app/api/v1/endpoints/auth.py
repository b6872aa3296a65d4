"""Authentication endpoints (API JWT) for the operator's own identity."""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import create_access_token, get_current_user, get_password_hash
from app.db.session import get_db
from app.models.user import User, normalize_user_role
from app.schemas.auth import AuthUserResponse, LoginRequest, RegisterRequest, TokenResponse
from app.services.account_service import authenticate_user
from app.services.user_service import create_user, get_user_by_email

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/register", response_model=AuthUserResponse, status_code=status.HTTP_201_CREATED)
def register(payload: RegisterRequest, db: Session = Depends(get_db)) -> AuthUserResponse:
    try:
        role = normalize_user_role(payload.role)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    if role == "AGENCY_ADMIN":
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Agency admins cannot self-register")
    if get_user_by_email(db=db, email=payload.email) is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    user = create_user(
        db=db,
        email=payload.email,
        hashed_password=get_password_hash(payload.password),
        role=role,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    return AuthUserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
def login(payload: LoginRequest, db: Session = Depends(get_db)) -> TokenResponse:
    user: User | None = authenticate_user(db, payload.email, payload.password)
    if user is None:
        logger.info("[AUTH] Rejected login for %s", payload.email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Incorrect email or password")
    return TokenResponse(access_token=create_access_token(user), expires_in=settings.jwt_expire_minutes * 60)


@router.get("/me", response_model=AuthUserResponse)
def me(current_user: User = Depends(get_current_user)) -> AuthUserResponse:
    return AuthUserResponse.model_validate(current_user)
