"""ASGI application entry point.

``app`` serves Socket.IO at /socket.io and the FastAPI routes everywhere
else; run it with ``uvicorn main:app``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from trekmate.api.v1 import router as api_v1_router
from trekmate.core.config import settings
from trekmate.core.database import close_db
from trekmate.core.redis import close_redis_pool
from trekmate.realtime.handlers import register_handlers
from trekmate.realtime.server import create_asgi_app
from trekmate.services.errors import ServiceError

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    # SQL echo is controlled by the engine, keep its logger quieter
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    logger.info(f"Starting TrekMate API ({settings.app_env})")
    yield
    logger.info("Shutting down TrekMate API")
    await close_redis_pool()
    await close_db()


configure_logging()

api = FastAPI(
    title="TrekMate API",
    description="Trek tracking, hiking clubs, group treks and emergency SOS",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
api.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@api.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Fallback for service errors a route did not translate itself."""
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Include API router
api.include_router(api_v1_router, prefix=settings.api_prefix)


@api.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {
        "name": "TrekMate API",
        "version": "0.1.0",
        "docs": "/docs",
    }


register_handlers()
app = create_asgi_app(api)
