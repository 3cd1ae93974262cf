"""
FastAPI application entry point.
Main application instance with middleware and route configuration.
"""
from fastapi import FastAPI, Request, status, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
import logging
import asyncio

from sitecms import database
from sitecms.config import settings
from sitecms.database import get_db, init_db, close_db
from sitecms.errors import SiteError
from sitecms.services.cloudinary_service import validate_cloudinary_config
from sitecms.site_settings import SiteFlags, has_dev_access, is_request_allowed
from sitecms.store import ContentStore
from sitecms.utils.rate_limit import limiter
from sitecms.routes import auth, cms, gallery, site

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.API_TITLE,
    description=settings.API_DESCRIPTION,
    version=settings.API_VERSION,
)

app.state.limiter = limiter
app.state.site_flags = SiteFlags(max_age=settings.SETTINGS_CACHE_SECONDS)
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


async def _maintenance_mode(request: Request) -> bool:
    flag = request.app.state.site_flags.maintenance_mode
    if flag.fresh:
        return flag.value
    try:
        async with database.AsyncSessionLocal() as session:
            return await flag.refresh(ContentStore(session))
    except Exception as e:
        # Unreachable database: serve with the last known value
        logger.error(f"Could not read maintenance mode: {str(e)}")
        flag.mark_stale()
        return flag.value


@app.middleware("http")
async def maintenance_gate(request: Request, call_next):
    """
    Turn public requests away with 503 while maintenance mode is on.
    Admin, auth and health routes stay reachable, as does anyone holding the
    dev-access key.
    """
    if request.method == "OPTIONS":
        return await call_next(request)

    maintenance = await _maintenance_mode(request)
    dev_access = has_dev_access(
        request.headers.get("X-Dev-Access") or request.cookies.get("dev_access"),
        settings.DEV_ACCESS_KEY,
    )
    request.state.maintenance_mode = maintenance

    if not is_request_allowed(request.url.path, maintenance, dev_access):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "error": "Under maintenance",
                "detail": "We're currently performing scheduled maintenance. We'll be back online shortly.",
                "maintenance_mode": True,
            },
            headers={"Retry-After": "300"},
        )
    return await call_next(request)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log each request with its response status."""
    method = request.method
    path = request.url.path
    try:
        response = await call_next(request)
    except Exception as e:
        logger.error(f"Error processing {method} {path}: {str(e)} ({type(e).__name__})", exc_info=True)
        raise
    logger.info(f"{method} {path} -> {response.status_code}")
    return response


# Added last so it wraps the other middleware, including 503 maintenance responses
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,
)

app.include_router(gallery.router, prefix="/api", tags=["gallery"])
app.include_router(cms.router, prefix="/api")
app.include_router(auth.router, prefix="/api")
app.include_router(site.router, prefix="/api")


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Handle HTTP exceptions (401, 403, 404, etc.) with a JSON error body."""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(f"HTTPException on {request.method} {request.url.path}: {exc.status_code} {exc.detail}")

    if isinstance(exc.detail, dict):
        content = exc.detail
    else:
        content = {"error": exc.detail, "detail": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=content, headers=exc.headers)


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg", ""), "type": error.get("type", "")}
        for error in exc.errors()
    ]


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle request validation errors."""
    logger.warning(f"Validation error on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Validation error", "detail": jsonable_errors(exc)},
    )


@app.exception_handler(SiteError)
async def site_error_handler(request: Request, exc: SiteError):
    """Domain errors that escaped a route's own handling."""
    logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=exc.to_dict())


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle general exceptions."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {str(exc)} ({type(exc).__name__})",
        exc_info=True
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal server error", "detail": "An unexpected error occurred"},
    )


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {"message": settings.API_TITLE, "status": "healthy", "version": settings.API_VERSION}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


@app.get("/health/db")
async def health_check_db(db: AsyncSession = Depends(get_db)):
    """Database health check: runs SELECT 1."""
    try:
        result = await db.execute(text("SELECT 1"))
        return {"database": "connected", "status": "healthy", "result": result.scalar()}
    except Exception as e:
        logger.error(f"Database health check failed: {str(e)}", exc_info=True)
        return {"database": "error", "status": "unhealthy", "error": "Database connection failed"}


@app.get("/health/cloudinary")
async def health_check_cloudinary():
    if validate_cloudinary_config():
        return {"cloudinary": "configured", "status": "healthy", "cloud_name": settings.CLOUDINARY_CLOUD_NAME}
    return {
        "cloudinary": "not_configured",
        "status": "warning",
        "message": "Cloudinary credentials not set in environment variables",
    }


@app.on_event("startup")
async def startup_event():
    """
    Verify the database on startup.
    Non-blocking: the app still starts if the database is unreachable.
    """
    try:
        await init_db()
    except Exception as e:
        logger.error(
            f"Failed to initialize database on startup: {str(e)}\n"
            f"The application will continue to run, but database-dependent endpoints will fail."
        )


@app.on_event("shutdown")
async def shutdown_event():
    """Close database connections on application shutdown."""
    try:
        await close_db()
    except Exception as e:
        if not isinstance(e, (KeyboardInterrupt, asyncio.CancelledError)):
            logger.warning(f"Error during database shutdown: {str(e)}")
