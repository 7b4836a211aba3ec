"""
FastAPI Application Entry Point

This is the main application module that sets up the FastAPI app,
configures middleware, and includes all routers.
"""

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from signed_proxy.config import settings
from signed_proxy.upstream import upstream
from signed_proxy.routers import info, health

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper()),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: create the upstream client and sessions
    - Shutdown: close the upstream client
    """
    logger.info("Starting Signed Proxy...")
    await upstream.connect()
    logger.info(f"Signed Proxy started, upstream {settings.upstream_base_url}")

    yield

    logger.info("Shutting down Signed Proxy...")
    await upstream.disconnect()
    logger.info("Signed Proxy stopped")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    # Signed Proxy API

    Aggregates two signed exchanges with a single upstream service:

    - **Server time**: begin/end handshake on the access endpoint,
      with observe calls on the clock endpoint while begin is in flight
    - **Audit log**: read the cursor, fetch entries, acknowledge them

    Each upstream request carries a fresh nonce and a SHA-256 signature
    over its path, action, nonce and a shared secret.
    """,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    lifespan=lifespan
)


# ============================================================================
# Middleware
# ============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
    max_age=3600,
)


@app.middleware("http")
async def add_request_timing(request: Request, call_next):
    """Add request timing header for monitoring."""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests."""
    logger.debug(f"{request.method} {request.url.path}")
    response = await call_next(request)
    return response


# ============================================================================
# Exception Handlers
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Returns generic error responses to prevent information leakage.
    Detailed errors are logged internally.
    """
    logger.exception(f"Unhandled exception: {exc}")

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )


# ============================================================================
# Include Routers
# ============================================================================

# Aggregated server time and audit log
app.include_router(info.router)

# Health check and monitoring
app.include_router(health.router)


# ============================================================================
# Root Endpoint
# ============================================================================

@app.get("/", tags=["root"])
async def root():
    """
    Root endpoint.

    Returns basic service information.
    """
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "status": "running"
    }


# ============================================================================
# Development Server
# ============================================================================

if __name__ == "__main__":
    import uvicorn

    logger.info(f"Server will run at {settings.host}:{settings.port}")
    uvicorn.run(
        "signed_proxy.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
