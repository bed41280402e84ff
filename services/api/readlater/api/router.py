from __future__ import annotations

from fastapi import APIRouter
from readlater.api.routes.health import router as health_router
from readlater.api.routes.library_items import router as library_items_router

api_router = APIRouter()

api_router.include_router(health_router)
api_router.include_router(library_items_router)
