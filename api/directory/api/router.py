from fastapi import APIRouter

from directory.api.routes import admin, areas, health, providers

api_router = APIRouter()
api_router.include_router(health.router, tags=["health"])
api_router.include_router(providers.router, prefix="/providers", tags=["public"])
api_router.include_router(areas.router, prefix="/areas", tags=["public"])
api_router.include_router(admin.router, prefix="/admin", tags=["admin"])
