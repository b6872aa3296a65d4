"""User listing for the agency user-management screen."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import require_agency_admin
from app.db.session import get_db
from app.models import User
from app.schemas.user import UserListItem
from app.services.security_guards import can_impersonate
from app.services.user_service import list_users

router: APIRouter = APIRouter()


@router.get("/", response_model=list[UserListItem], summary="List users")
def list_all_users(
    admin: User = Depends(require_agency_admin),
    db: Session = Depends(get_db),
) -> list[UserListItem]:
    return [
        UserListItem.model_validate(user).model_copy(update={"can_impersonate": can_impersonate(admin, user)})
        for user in list_users(db)
    ]
