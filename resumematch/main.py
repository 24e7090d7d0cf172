"""
ResumeMatch API

1. Resume analysis pipeline, history and study plans under /api/resumes
2. Middleware order: CORS -> CorrelationId -> Logging
3. init_db() and service wiring only at startup
4. Uniform error envelope for every exception type
"""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Union

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from resumematch.core.config import settings
from resumematch.core.exceptions import AppException, StageError
from resumematch.core.logging import setup_logging
from resumematch.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from resumematch.core.schemas import ApiResponse
from resumematch.database import SessionLocal, init_db
from resumematch.dependencies import ServiceBundle, build_services, get_services
from resumematch.routers.api_router import api_router
from resumematch.schemas.resume import SubmissionData

# ============================================================================
# LOGGING SETUP
# ============================================================================
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# ============================================================================
# LIFESPAN MANAGEMENT
# ============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    - Startup: initialize the key-value schema and build the service bundle
    - Shutdown: nothing to release beyond the engine pool
    """
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")

    try:
        init_db()
        logger.info("Key-value store initialized")
    except Exception as e:
        logger.error(f"Key-value store initialization failed: {e}")
        raise

    app.state.services = build_services(settings, SessionLocal)
    logger.info(f"Object storage root: {app.state.services.object_store.root}")

    yield

    logger.info("Gracefully shutting down...")


# ============================================================================
# FASTAPI INSTANCE
# ============================================================================
app = FastAPI(
    title=settings.app_name,
    version=settings.version,
    description="Resume critique pipeline with cached study plans",
    docs_url="/docs",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# ============================================================================
# MIDDLEWARE STACK
# Add in REVERSE order (last added runs first)
# ============================================================================
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[settings.request_id_header, "X-Process-Time"],
)

# ============================================================================
# EXCEPTION HANDLERS
# ============================================================================
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle FastAPI validation errors (422) with structured format."""
    errors = []
    for error in exc.errors():
        field = error["loc"][-1] if len(error["loc"]) > 0 else "unknown"
        errors.append({
            "field": str(field),
            "msg": error["msg"]
        })

    logger.warning(f"Validation Error: {errors}")
    return JSONResponse(
        status_code=422,
        content={"success": False, "errors": errors}
    )


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Handle domain-specific application exceptions."""
    logger.warning(f"AppException: {exc.message}", extra={"code": exc.error_code})
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "errors": [{"msg": exc.message, "code": exc.error_code, "details": exc.details}]
        }
    )


@app.exception_handler(StageError)
async def stage_exception_handler(request: Request, exc: StageError):
    """A submission that stopped at one stage: error plus the partial submission."""
    logger.warning(f"Submission failed at stage {exc.stage}: {exc.message}", extra={"code": exc.error_code})
    body = ApiResponse[SubmissionData].fail(
        exc.message, code=exc.error_code, details=exc.details, data=exc.data
    )
    return JSONResponse(status_code=exc.status_code, content=body.to_dict())


@app.exception_handler(StarletteHTTPException)
@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: Union[HTTPException, StarletteHTTPException]):
    """Handle standard HTTP exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "errors": [{"msg": exc.detail if isinstance(exc.detail, str) else "Request failed"}]
        }
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Fallback handler for unhandled server errors."""
    logger.exception("Unhandled server error", extra={"path": request.url.path})
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "errors": [{"msg": "An unexpected server error occurred."}]
        }
    )


# ============================================================================
# ROUTER INCLUSION
# ============================================================================
app.include_router(api_router, prefix=settings.api_prefix)

# ============================================================================
# OPERATIONAL ENDPOINTS (at root level)
# ============================================================================
@app.get("/", tags=["Health"])
def root():
    """API root endpoint."""
    return {
        "message": "ResumeMatch API",
        "version": settings.version,
        "docs": "/docs",
    }


@app.get("/health", tags=["Health"])
def health_check():
    """Liveness probe for load balancers and orchestrators."""
    return {
        "status": "up",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.version,
        "environment": settings.environment,
    }


@app.get("/readiness", tags=["Health"])
async def readiness_check(services: ServiceBundle = Depends(get_services)):
    """Readiness probe - verifies key-value store connectivity."""
    try:
        await services.kv.ping()
        return {
            "status": "ready",
            "components": {"kv_store": "connected"},
        }
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        raise HTTPException(status_code=503, detail="Service not ready")
