from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware

from app.__version__ import __version__
from app.api.v1.api import api_router
from app.core.config import settings
from app.core.logging import configure_logging
from app.engine.config import EngineConfig

configure_logging(level=settings.LOG_LEVEL, json_logs=settings.LOG_JSON)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fail fast on invalid environment overrides
    EngineConfig.from_overrides(settings.ENGINE_OVERRIDES)
    logger.info("startup", version=__version__)
    yield


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=__version__,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)


@app.middleware("http")
async def reset_log_context(request: Request, call_next):
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(path=request.url.path)
    return await call_next(request)


# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
