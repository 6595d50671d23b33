from fastapi import APIRouter

from wasabi.api.auth import router as auth_router
from wasabi.api.files import router as files_router
from wasabi.api.health import router as health_router
from wasabi.api.preference import router as preference_router

api_router = APIRouter()

# Include sub-routers
api_router.include_router(health_router, tags=["health"])
api_router.include_router(auth_router)
api_router.include_router(files_router)
api_router.include_router(preference_router)
