"""Request and response bodies for the operator's own login."""

from pydantic import BaseModel, Field

from app.schemas.user import UserRead


class LoginRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    password: str = Field(min_length=1, max_length=128)


class RegisterRequest(LoginRequest):
    """Self-registration for agency and clinic staff; the role is normalized server-side."""

    password: str = Field(min_length=6, max_length=128)
    role: str = Field(min_length=1, max_length=32)
    first_name: str = Field(default="", max_length=128)
    last_name: str = Field(default="", max_length=128)


class TokenResponse(BaseModel):
    """Bearer token naming the real operator; ``expires_in`` is in seconds."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthUserResponse(UserRead):
    pass
