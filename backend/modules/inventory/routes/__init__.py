"""Inventory routes package: assembles all sub-routers."""

from fastapi import APIRouter
from .servers import router as servers_router
from .server_items import router as server_items_router
from .locations import router as locations_router
from .server_models import router as server_models_router
from .users import router as users_router
from .activities import router as activities_router

router = APIRouter()
router.include_router(servers_router)
router.include_router(server_items_router)
router.include_router(locations_router)
router.include_router(server_models_router)
router.include_router(users_router)
router.include_router(activities_router)
