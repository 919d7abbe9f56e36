from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.config import settings
from app.api.v1.router import api_router
from app.core.errors import BookingError, kind_for_status
from app.database import init_db, async_session_factory
from app.jobs.scheduler import start_scheduler, shutdown_scheduler

logger = logging.getLogger(__name__)


async def auto_seed_admin():
    """Create the first super admin from SEED_ADMIN_EMAIL / SEED_ADMIN_PASSWORD."""
    if not settings.SEED_ADMIN_EMAIL or not settings.SEED_ADMIN_PASSWORD:
        return

    from app.services.auth_service import AuthService

    async with async_session_factory() as session:
        admin = await AuthService(session).ensure_seed_admin(
            settings.SEED_ADMIN_EMAIL,
            settings.SEED_ADMIN_PASSWORD,
        )
        await session.commit()
        if admin:
            logger.info(f"Created super admin {admin.email}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    await init_db()
    await auto_seed_admin()

    if settings.SCHEDULER_ENABLED:
        start_scheduler()

    yield

    shutdown_scheduler()
    logger.info("Shutting down...")


OPENAPI_TAGS = [
    {"name": "Authentication", "description": "JWT login for admin, office and medicine users"},
    {"name": "Bookings", "description": "Medicine shipment booking, image upload and address lookup"},
    {"name": "Consignment", "description": "Consignment number availability for the booking user"},
    {"name": "Pincode", "description": "Serviceable city, district and area resolution"},
    {"name": "OTP", "description": "Phone verification by SMS code"},
    {"name": "Admin - Pincodes", "description": "Serviceable pincode management"},
    {"name": "Admin - Coloaders", "description": "Partner carrier registration and approval"},
    {"name": "Admin - Employees", "description": "Employee records"},
    {"name": "Admin - Pricing", "description": "Customer and corporate rate cards"},
    {"name": "Admin - Consignment", "description": "Consignment number pools"},
    {"name": "Admin - Bookings", "description": "Back office booking list"},
    {"name": "Admin - Users", "description": "Login accounts (super admin only)"},
]

API_DESCRIPTION = """
## Courier Booking Back Office API

Medicine shipment booking with server-side charge calculation and
consignment number allocation, plus the admin and office back office.

### Authentication

Include the token from `/api/auth/login` as `Authorization: Bearer <token>`.

### Errors

Every error response has the shape
`{"success": false, "kind": "...", "message": "...", "details": [...]}` where
`kind` is one of validation, conflict, not_found, unauthorized, forbidden or internal.
"""

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description=API_DESCRIPTION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_tags=OPENAPI_TAGS,
    swagger_ui_parameters={
        "deepLinking": True,
        "persistAuthorization": True,
        "filter": True,
    },
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)


@app.exception_handler(BookingError)
async def booking_error_handler(request: Request, exc: BookingError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {
        "success": False,
        "kind": kind_for_status(exc.status_code),
        "message": exc.detail if isinstance(exc.detail, str) else "Request failed",
    }
    if not isinstance(exc.detail, str):
        content["details"] = jsonable_encoder(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ())[1:]),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "kind": "validation",
            "message": "Invalid request data",
            "details": details,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "kind": "internal",
            "message": "Internal server error",
        },
    )


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint with database validation."""
    health_status = {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {
            "database": "unknown"
        }
    }

    try:
        async with async_session_factory() as session:
            result = await session.execute(text("SELECT 1"))
            result.scalar()
            health_status["checks"]["database"] = "connected"
    except Exception as e:
        health_status["status"] = "unhealthy"
        health_status["checks"]["database"] = f"error: {str(e)}"

    if health_status["status"] == "unhealthy":
        return JSONResponse(status_code=503, content=health_status)

    return health_status


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "redoc": "/redoc",
    }
