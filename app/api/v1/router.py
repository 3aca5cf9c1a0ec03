from fastapi import APIRouter

from app.api.v1.health import router as health_router
from app.api.v1.achievements import router as achievements_router
from app.api.v1.files import router as files_router


v1_router = APIRouter()

# ------------------------------------------------------------------
# SYSTEM / CORE
# ------------------------------------------------------------------
v1_router.include_router(health_router, tags=["health"])

# ------------------------------------------------------------------
# ACHIEVEMENTS
# ------------------------------------------------------------------
v1_router.include_router(achievements_router, tags=["achievements"])
v1_router.include_router(files_router, tags=["files"])
