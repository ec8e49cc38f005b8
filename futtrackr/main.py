"""FUTTrackr FastAPI application.

Performance analytics and insight engine for weekly competitive runs.
"""

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from futtrackr import __version__
from futtrackr.api.routes import analytics, health
from futtrackr.config import get_engine_config, get_settings
from futtrackr.errors import ValidationError

settings = get_settings()
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.dev.ConsoleRenderer()
        if settings.log_format == "console"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    config = get_engine_config()
    logger.info(
        "starting_futtrackr",
        version=__version__,
        run_match_cap=config.run_match_cap,
        debug=settings.debug,
    )
    yield
    logger.info("shutting_down_futtrackr")


# Create FastAPI application
app = FastAPI(
    title="FUTTrackr Analytics",
    description="Composite scores, form windows and insights for weekly runs",
    version=__version__,
    debug=settings.debug,
    lifespan=lifespan,
)

# Include API routers
app.include_router(health.router)
app.include_router(analytics.router)


# Error handlers
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    """Reject malformed match data that escaped a route."""
    logger.info("validation_error", path=request.url.path, field=exc.field)
    return JSONResponse(status_code=422, content={"detail": exc.to_dict()})


@app.exception_handler(500)
async def server_error_handler(request: Request, exc):
    """Custom 500 handler."""
    logger.error("server_error", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})
