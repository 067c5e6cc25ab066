"""
GeoCivic - FastAPI Application Entry Point

Civic issue reporting with a geofenced resolution protocol.

DESIGN PRINCIPLES:
- Citizens file, admins dispatch, staff resolve on site, citizens verify on site
- Every status change is recorded with its civic coin rewards in one atomic write
- Roles come from the user directory, never from the client
- Notifications are best-effort and never undo a committed transition
"""

import logging
import sys
import traceback
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from geocivic.core.settings import settings
from geocivic.config.firebase import initialize_firestore
from geocivic.routes import admin, health, reports, staff, users
from geocivic.services.errors import (
    DuplicateVote,
    GeoCivicError,
    GeofenceViolation,
    InsufficientBalance,
    InvalidCoordinate,
    InvalidReport,
    InvalidStateForTransition,
    MissingEvidence,
    MissingLocation,
    NotificationDeliveryFailed,
    ReportCorrupted,
    ReportNotFound,
    StaffNotFound,
    StorageUnavailable,
    UserNotFound,
    WrongActor,
)

logger = logging.getLogger(__name__)

# Most specific class first; the first isinstance match wins.
ERROR_STATUS_CODES = [
    (WrongActor, status.HTTP_403_FORBIDDEN),
    (InvalidStateForTransition, status.HTTP_409_CONFLICT),
    (DuplicateVote, status.HTTP_409_CONFLICT),
    (InsufficientBalance, status.HTTP_409_CONFLICT),
    (GeofenceViolation, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MissingEvidence, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MissingLocation, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidReport, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidCoordinate, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ReportNotFound, status.HTTP_404_NOT_FOUND),
    (UserNotFound, status.HTTP_404_NOT_FOUND),
    (StaffNotFound, status.HTTP_404_NOT_FOUND),
    (StorageUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
    (NotificationDeliveryFailed, status.HTTP_502_BAD_GATEWAY),
    (ReportCorrupted, status.HTTP_500_INTERNAL_SERVER_ERROR),
]


def status_code_for(exc: GeoCivicError) -> int:
    for error_class, code in ERROR_STATUS_CODES:
        if isinstance(exc, error_class):
            return code
    return status.HTTP_400_BAD_REQUEST


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Civic issue reporting with geofenced resolution and verification",
    debug=settings.DEBUG
)


# Domain errors carry their own HTTP mapping
@app.exception_handler(GeoCivicError)
async def domain_exception_handler(request: Request, exc: GeoCivicError):
    code = status_code_for(exc)
    if code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} - {exc.code}: {exc.message}")
    else:
        logger.info(f"⚠️ {request.method} {request.url.path} - {exc.code}: {exc.message}")
    return JSONResponse(status_code=code, content=exc.to_dict())


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.write("🔥 GLOBAL EXCEPTION HANDLER CAUGHT EXCEPTION\n")
    sys.stderr.write(f"Path: {request.url.path}\n")
    sys.stderr.write(f"Method: {request.method}\n")
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.write(traceback.format_exc())
    sys.stderr.write("=" * 80 + "\n")
    sys.stderr.flush()

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": f"Internal server error: {str(exc)}"}
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log request validation errors before returning them."""
    logger.warning(f"⚠️ {request.method} {request.url.path} - validation failed: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"detail": exc.errors()}
    )


# Allowed origins are configured explicitly via CORS_ORIGINS, never "*".
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: logging and the Firestore connection
    """
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        initialize_firestore()
    except Exception as e:
        logger.warning(f"⚠️ Firestore initialization failed: {e}")
        logger.warning("   The app will start but database operations may fail.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(reports.router)
app.include_router(admin.router)
app.include_router(staff.router)
app.include_router(users.router)

# Locally stored evidence is served back under the same prefix it is stored with
if settings.EVIDENCE_PROVIDER == "local":
    app.mount("/uploads", StaticFiles(directory=settings.EVIDENCE_UPLOAD_DIR, check_dir=False), name="uploads")


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health"
    }
