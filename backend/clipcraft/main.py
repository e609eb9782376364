import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .api import api_router
from .services import WorkspaceService, engine_provider


# Reuse uvicorn's logger so startup diagnostics are visible in normal dev logs.
logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create data directories; drop runs and engine storage on shutdown."""
    for directory in (settings.data_dir, settings.uploads_dir, settings.work_dir):
        directory.mkdir(parents=True, exist_ok=True)
    logger.info("ClipCraft data directory: %s", settings.data_dir)
    yield
    WorkspaceService.clear()
    engine_provider.shutdown()


app = FastAPI(
    title="ClipCraft",
    description="Turn long-form videos into ranked, captioned vertical clips",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(api_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "engine": engine_provider.state.value}
