from fastapi import APIRouter

from siterouter.api.v1.endpoints import admin, health, resolve


api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(resolve.router)
api_router.include_router(admin.router)
