from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.api.v1.router import api_router
from app.database import init_db, async_session_factory
from app.jobs.scheduler import start_scheduler, shutdown_scheduler, get_job_status


logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    - Create missing tables
    - Start background scheduler (when the invoice job is enabled)
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    await init_db()

    start_scheduler()

    yield

    # Shutdown
    shutdown_scheduler()
    logger.info("Shutting down...")


# OpenAPI Tags with detailed descriptions
OPENAPI_TAGS = [
    {"name": "Usage Billing", "description": "Usage-based invoice generation per contract billing period"},
    {"name": "Freight", "description": "Freight quotes from distance/weight rate tables"},
    {"name": "Health", "description": "Service and database health"},
]

FULL_API_DESCRIPTION = """
## Warehouse Billing & Freight API

### Modules

| Module | Description |
|--------|-------------|
| **Usage Billing** | Meters inbound pallets, outbound items and storage pallet-days per contract, prices them with included/minimum/overage terms and issues one invoice per period |
| **Freight** | Resolves freight and toll from distance brackets and weight, per table or ranked across all tables of a payer |

### Error Codes

| Code | Description |
|------|-------------|
| 400 | Bad Request - Duplicate period or distance outside the table |
| 404 | Not Found - Contract, invoice or active freight table missing |
| 422 | Unprocessable Entity - Request validation failed |
| 500 | Internal Server Error |

### Support

- **API Docs**: /docs (Swagger UI)
- **ReDoc**: /redoc (Alternative docs)
- **Health Check**: /health
"""

# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=FULL_API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API router
app.include_router(api_router)


# Global exception handler for anything the endpoints did not translate
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Return a structured error payload for unhandled failures."""
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")

    error_detail = {
        "error": str(exc),
        "type": type(exc).__name__,
        "path": str(request.url.path),
        "method": request.method,
    }
    # Get origin from request
    origin = request.headers.get("origin", "")

    response = JSONResponse(
        status_code=500,
        content=error_detail
    )

    # Add CORS headers if origin is allowed
    if origin in settings.cors_origins_list or "*" in settings.cors_origins_list:
        response.headers["Access-Control-Allow-Origin"] = origin
        response.headers["Access-Control-Allow-Credentials"] = "true"

    return response


# Health check endpoint
@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    from sqlalchemy import text
    from datetime import datetime, timezone

    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        },
        "jobs": get_job_status(),
    }

    # Check database connectivity
    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        logger.error(f"Health check database error: {e}")
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    # Return 503 if unhealthy
    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status

