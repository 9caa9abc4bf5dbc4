from fastapi import APIRouter

from app.api.v1.endpoints import (
    comparisons,
    items,
    statistics,
    model_config,
)

api_router = APIRouter()
api_router.include_router(comparisons.router, prefix="/comparisons", tags=["comparisons"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(statistics.router, prefix="/statistics", tags=["statistics"])
api_router.include_router(model_config.router, prefix="/model-config", tags=["model"])
