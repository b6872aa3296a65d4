"""API v1 router composition."""

from fastapi import APIRouter

from app.api.v1.endpoints import audit, auth, dashboard, impersonation, users

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])
api_router.include_router(impersonation.router, prefix="/impersonation", tags=["impersonation"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
