from fastapi import APIRouter

from .runs import router as runs_router
from .templates import router as templates_router

api_router = APIRouter(prefix="/api")
api_router.include_router(templates_router)
api_router.include_router(runs_router)

__all__ = ["api_router"]
