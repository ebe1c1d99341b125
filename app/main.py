"""LiveEdge FastAPI application.

In-play football signal engine: exposes emitted picks, performance,
risk state and strategy configuration.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api.routes import health, performance, picks, risk, strategies
from app.config import get_settings
from app.config.logging import configure_logging

settings = get_settings()
configure_logging(settings.log_level)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    logger.info("starting_liveedge", version="0.1.0")
    yield
    logger.info("shutting_down_liveedge")


# Create FastAPI application
app = FastAPI(
    title="LiveEdge",
    description="In-play football signal engine",
    version="0.1.0",
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router)
app.include_router(picks.router)
app.include_router(performance.router)
app.include_router(risk.router)
app.include_router(strategies.router)


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    """Custom 500 handler."""
    logger.error("server_error", path=request.url.path, error=str(exc))
    return JSONResponse({"detail": "Internal server error"}, status_code=500)
