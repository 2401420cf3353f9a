"""Master API router: includes all sub-routers."""

from fastapi import APIRouter

from .routes.accounts import router as accounts_router
from .routes.analytics import router as analytics_router
from .routes.auth import router as auth_router
from .routes.incidents import router as incidents_router

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(auth_router)
api_router.include_router(accounts_router)
api_router.include_router(incidents_router)
api_router.include_router(analytics_router)
