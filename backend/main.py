import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import init_db, close_db
from routers import (
    nodes_router,
    cables_router,
    connections_router,
    customers_router,
    geojson_router,
)
from schemas import error_response
from services.topology_store import (
    EntityNotFoundError,
    TopologyConflictError,
    TopologyStoreError,
    TopologyValidationError,
)
from utils.logging_utils import setup_logging, get_logger
from utils.audit import audit

setup_logging(level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle startup and shutdown events."""
    # Startup
    logger.info("=" * 60)
    logger.info("SPECTRA STARTING UP")
    logger.info(f"App: {settings.APP_NAME} v{settings.APP_VERSION}")

    start = time.perf_counter()
    await init_db()
    logger.info(
        f"Database initialized in {(time.perf_counter() - start) * 1000:.1f}ms"
    )

    # Run startup health checks
    from services.health import run_health_checks
    health = await run_health_checks()
    for check in health.checks:
        status_icon = "+" if check.status == "ok" else "!"
        detail = ""
        if check.message:
            detail += f" ({check.message})"
        if check.response_time_ms is not None:
            detail += f" [{check.response_time_ms:.1f}ms]"
        logger.info(f"  {status_icon} {check.name}: {check.status}{detail}")
    if health.status != "healthy":
        logger.warning(f"STARTUP HEALTH: {health.status.upper()} - some checks failed")

    # Demo mode: seed the demo network on first startup
    if settings.DEMO_MODE:
        from database import AsyncSessionLocal
        from sqlalchemy import func as sa_func
        from models import Node
        async with AsyncSessionLocal() as db:
            count = await db.scalar(sa_func.count(Node.id))
        if count == 0:
            logger.info("DEMO_MODE: No data found, seeding demo network...")
            import subprocess
            import sys
            script = Path(__file__).resolve().parent / "scripts" / "seed_demo_data.py"
            db_path = settings.DATABASE_URL.replace("sqlite:///", "")
            if script.exists():
                subprocess.run(
                    [sys.executable, str(script), "--db", db_path],
                    check=False,
                )
                logger.info("DEMO_MODE: Demo network seeded")
            else:
                logger.warning("DEMO_MODE: Seed script not found")
                audit.log_seed_data(status="skipped")

    logger.info("STARTUP COMPLETE - Ready to accept requests")
    logger.info("=" * 60)

    yield

    # Shutdown
    logger.info("SPECTRA SHUTTING DOWN")
    await close_db()
    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)


# ── Error handlers ────────────────────────────────────────────────────

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
):
    """
    Return user-friendly error messages when request validation fails.

    Instead of Pydantic's raw error output, this returns a structured
    response with per-field error messages.
    """
    errors = []
    for error in exc.errors():
        # Build a dotted field path (skip the top-level "body"/"query" prefix)
        loc_parts = [str(x) for x in error.get("loc", [])]
        if loc_parts and loc_parts[0] in ("body", "query", "path"):
            loc_parts = loc_parts[1:]
        field = ".".join(loc_parts) if loc_parts else "unknown"

        msg = error.get("msg", "Validation error")
        # Pydantic wraps custom ValueError messages in "Value error, ..."
        if msg.startswith("Value error, "):
            msg = msg[len("Value error, "):]

        errors.append({
            "field": field,
            "message": msg,
            "type": error.get("type", "unknown"),
        })

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_response("Validation failed", errors=errors),
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(EntityNotFoundError)
async def not_found_handler(request: Request, exc: EntityNotFoundError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=error_response(exc.message))


@app.exception_handler(TopologyValidationError)
async def topology_validation_handler(request: Request, exc: TopologyValidationError):
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=error_response(exc.message))


@app.exception_handler(TopologyConflictError)
async def conflict_handler(request: Request, exc: TopologyConflictError):
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content=error_response(exc.message))


@app.exception_handler(TopologyStoreError)
async def store_error_handler(request: Request, exc: TopologyStoreError):
    logger.error(f"{request.method} {request.url.path} failed during '{exc.operation}'")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("Internal server error"),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response("Internal server error"),
    )


# ── Request ID + request logging middleware ───────────────────────────

@app.middleware("http")
async def request_lifecycle(request: Request, call_next):
    """Assign a request ID, log timing, and add the ID to response headers."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    audit.set_request_id(request_id)
    if request.client:
        audit.set_actor(f"client:{request.client.host}")

    start_time = time.perf_counter()
    logger.debug(f"→ {request.method} {request.url.path}")

    response = await call_next(request)

    duration_ms = (time.perf_counter() - start_time) * 1000
    status_indicator = "+" if response.status_code < 400 else "!"
    logger.info(
        f"{status_indicator} {request.method} {request.url.path} "
        f"[{response.status_code}] {duration_ms:.1f}ms rid={request_id[:8]}"
    )

    response.headers["X-Request-ID"] = request_id
    return response


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# Include routers
app.include_router(nodes_router)
app.include_router(cables_router)
app.include_router(connections_router)
app.include_router(customers_router)
app.include_router(geojson_router)


@app.get("/api/health", tags=["health"])
@app.get("/health", tags=["health"], include_in_schema=False)
async def health_check():
    """Health check endpoint with component status breakdown."""
    from services.health import run_health_checks
    health = await run_health_checks()
    status_code = 200 if health.status == "healthy" else 503
    return JSONResponse(content=health.model_dump(), status_code=status_code)


@app.get("/api/info", tags=["info"])
async def get_app_info():
    """Get application version and changelog."""
    changelog_path = Path(__file__).parent / "CHANGELOG.md"
    try:
        changelog = changelog_path.read_text()
    except FileNotFoundError:
        changelog = "Changelog not available."

    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "demo_mode": settings.DEMO_MODE,
        "changelog": changelog,
    }


@app.get("/api", tags=["root"])
async def api_root():
    """API root endpoint."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "openapi": "/openapi.json",
        "endpoints": {
            "health": "/api/health",
            "nodes": "/api/nodes",
            "cables": "/api/cables",
            "connections": "/api/connections",
            "customers": "/api/customers",
            "geojson": "/api/geojson",
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
