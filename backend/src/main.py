"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.config import get_settings
from src.database import engine, init_db
from src.middleware import logging_middleware, register_exception_handlers
from src.routers import health, reports
from src.utils.logger import configure_logging, get_logger

settings = get_settings()

# Configure logging early
configure_logging(log_level=settings.log_level, debug=settings.debug)
log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    log.info(
        "starting application",
        debug=settings.debug,
        log_level=settings.log_level,
        autosave_enabled=settings.autosave_enabled,
    )
    await init_db()
    log.info("database initialized")

    yield

    log.info("shutting down application")
    await engine.dispose()
    log.info("database connections closed")


app = FastAPI(
    title="Shipyard Daily Reports API",
    description="Daily work-report hydration, editing and persistence",
    version="0.1.0",
    lifespan=lifespan,
)

# Register exception handlers first
register_exception_handlers(app)

_cors_origins = settings.get_cors_origins_list()
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins or ["*"],
    allow_credentials=bool(_cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

app.middleware("http")(logging_middleware)

app.include_router(health.router, prefix="/api/v1", tags=["Health"])
app.include_router(reports.router, prefix="/api/v1", tags=["Reports"])


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Shipyard Daily Reports API",
        "version": "0.1.0",
        "endpoints": {
            "health": "/api/v1/health",
            "daily_report": "/api/v1/reports/daily",
            "returned_inbox": "/api/v1/reports/returned",
            "hours": "/api/v1/reports/hours",
        },
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
