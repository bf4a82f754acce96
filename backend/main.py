"""
ChargeSphere - Main Application
FastAPI entry point with all configuration.
"""

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from contextlib import asynccontextmanager
import logging
import sys

# Import routers
from routers import (
    auth_router,
    users_router,
    bookings_router,
    admin_router,
    reviews_router,
    recommendations_router,
)

# Import utilities
from database.firebase_db import init_firebase
from services.exceptions import ChargeSphereError, ValidationError, format_validation_errors
from utils.helpers import utc_now
from utils.scheduler import get_scheduler, start_scheduler, stop_scheduler
from config import get_settings

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle manager.
    Connects Firebase on startup and runs the booking scheduler.
    """
    logger.info("Starting ChargeSphere...")
    settings = get_settings()

    try:
        init_firebase()
        logger.info("Firebase initialized")

        if settings.enable_scheduler:
            start_scheduler()
        else:
            logger.info("Scheduler disabled by configuration")

        logger.info("ChargeSphere is ready")

    except Exception as e:
        logger.error(f"Startup error: {e}")
        raise

    yield

    logger.info("Shutting down ChargeSphere...")
    try:
        stop_scheduler()
    except Exception as e:
        logger.error(f"Shutdown error: {e}")


# Create the FastAPI application
app = FastAPI(
    title="ChargeSphere",
    description="""
    ## EV Charging Station Booking & Review API

    * **Bookings**: reserve a charging slot or rental vehicle; admins approve or reject
    * **Reviews**: one review per station per user, with rating statistics
    * **Favorites**: keep a list of preferred stations
    * **Recommendations**: rank nearby stations by distance, availability, rating and price

    ### Security

    * Firebase ID token in the `Authorization: Bearer <token>` header
    * Admin endpoints require the `admin` role
    """,
    version=VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan
)

settings = get_settings()

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ==================== EXCEPTION HANDLERS ====================

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Report every invalid field of the request at once."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": format_validation_errors(exc.errors())
        }
    )


@app.exception_handler(ChargeSphereError)
async def domain_exception_handler(request: Request, exc: ChargeSphereError):
    """Render domain errors with the status code they carry."""
    content = {"detail": exc.message}
    if isinstance(exc, ValidationError):
        content["errors"] = exc.errors

    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unexpected error: {exc}", exc_info=True)

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server error"}
    )


# ==================== ROUTERS ====================

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(bookings_router)
app.include_router(admin_router)
app.include_router(reviews_router)
app.include_router(recommendations_router)


# ==================== ROOT ENDPOINTS ====================

@app.get(
    "/",
    tags=["Health"],
    summary="Root Endpoint",
    description="Returns basic API information."
)
async def root():
    return {
        "name": "ChargeSphere",
        "version": VERSION,
        "status": "operational",
        "documentation": "/docs",
        "timestamp": utc_now().isoformat()
    }


@app.get(
    "/health",
    tags=["Health"],
    summary="Health Check",
    description="Returns system health status."
)
async def health_check():
    """
    Health check endpoint.
    Used by monitoring and load balancer health checks.
    """
    scheduler = get_scheduler()

    return {
        "status": "healthy",
        "services": {
            "firebase": "connected",
            "scheduler": "running" if scheduler.is_running() else "stopped",
        },
        "timestamp": utc_now().isoformat()
    }


@app.get(
    "/api/v1/info",
    tags=["Health"],
    summary="API Information",
    description="Returns version, endpoints and configuration details."
)
async def api_info():
    return {
        "name": "ChargeSphere API",
        "version": VERSION,
        "endpoints": {
            "auth": "/auth",
            "users": "/users",
            "bookings": "/bookings",
            "reviews": "/reviews",
            "recommendations": "/recommendations",
            "admin": "/admin"
        },
        "booking_transitions": "strict" if settings.strict_booking_transitions else "permissive",
        "documentation": {
            "swagger": "/docs",
            "redoc": "/redoc"
        }
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug,
        log_level="info"
    )
