"""
Netwatch Monitor - FastAPI Application
Main entry point for the API server
"""

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn
import structlog
from contextlib import asynccontextmanager

from netwatch_monitor.api.routes import health, netwatch, router_profiles
from netwatch_monitor.collectors.netwatch_poller import NetwatchPoller
from netwatch_monitor.collectors.snapshot_source import RouterOSRestSource
from netwatch_monitor.core.config import settings
from netwatch_monitor.core.exceptions import (
    ConflictError, NotFoundError, RouterConnectionError, ValidationError
)
from netwatch_monitor.database.connection import SessionLocal, init_database
from netwatch_monitor.models.router_profile import RouterProfile

# Configure structured logging
logging.basicConfig(format="%(message)s", level=settings.log_level.upper())
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting Netwatch Monitor API")
    # Startup
    await init_database()
    if settings.poller_enabled:
        db = SessionLocal()
        try:
            active_ids = [profile.id for profile in db.query(RouterProfile).filter(RouterProfile.is_active == True)]
        finally:
            db.close()
        for router_profile_id in active_ids:
            app.state.poller.start(router_profile_id)
    yield
    # Shutdown
    await app.state.poller.stop_all()
    logger.info("Shutting down Netwatch Monitor API")

# Create FastAPI application
app = FastAPI(
    title="Netwatch Monitor API",
    description="Router netwatch polling, device status tracking and summaries",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

app.state.snapshot_source = RouterOSRestSource(
    use_ssl=settings.routeros_use_ssl,
    port=settings.routeros_port,
    verify_ssl=settings.routeros_verify_ssl,
    timeout=settings.snapshot_timeout
)
app.state.poller = NetwatchPoller(app.state.snapshot_source)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(router_profiles.router, prefix="/api/v1", tags=["router-profiles"])
app.include_router(netwatch.router, prefix="/api/v1", tags=["netwatch"])

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Netwatch Monitor API",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/api/v1/health"
    }

@app.exception_handler(NotFoundError)
async def not_found_handler(request, exc):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(ConflictError)
async def conflict_handler(request, exc):
    return JSONResponse(
        status_code=409,
        content={"detail": str(exc), "device_count": exc.device_count}
    )

@app.exception_handler(ValidationError)
async def validation_handler(request, exc):
    return JSONResponse(status_code=422, content={"detail": str(exc)})

@app.exception_handler(RouterConnectionError)
async def router_connection_handler(request, exc):
    logger.warning("Router connection failed", path=request.url.path, kind=exc.kind, error=exc.message)
    return JSONResponse(
        status_code=504 if exc.kind == RouterConnectionError.TIMEOUT else 502,
        content={"detail": exc.message, "kind": exc.kind, "retryable": exc.retryable}
    )

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler"""
    logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

if __name__ == "__main__":
    uvicorn.run(
        "netwatch_monitor.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
