"""User listing schemas."""

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class UserListItem(UserRead):
    can_impersonate: bool = False


class DashboardRead(BaseModel):
    """What the dashboard shell renders for the acting identity."""

    user_id: int
    email: str
    role: str
    landing_route: str
    is_impersonating: bool
