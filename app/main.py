import logging
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from app.api.v1.router import api_router
from app.config import settings
from app.core.constants import StatusCodeError
from app.core.exceptions import AppException
from app.core.logging_config import setup_logging, cleanup_old_logs
from app.core.logging_utils import get_request_id, sanitize_log_message
from app.database import init_db, close_db
from app.middleware.logging_middleware import LoggingMiddleware
from app.middleware.rate_limit import setup_rate_limiting
from app.middleware.security import setup_security_middleware

logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
)


@app.on_event("startup")
async def startup_event():
    """Initialize logging, cleanup old logs and create missing tables."""
    setup_logging()
    cleanup_old_logs()
    await init_db()
    logger.info("Application startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    await close_db()
    logger.info("Application shutdown complete")


# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["Authorization", "Content-Type", "X-API-KEY", "X-Request-ID", "Accept", "Origin"],
)

# Security middleware (request size limit + security headers)
setup_security_middleware(app, max_request_size=settings.MAX_REQUEST_SIZE)

# Logging middleware (after CORS, before routes)
if settings.LOG_ENABLE_REQUEST_LOGGING:
    app.add_middleware(LoggingMiddleware)

# Rate limiting
setup_rate_limiting(app)

# Include API router
app.include_router(api_router, prefix=settings.API_V1_STR)


def _request_context(request: Request) -> dict:
    return {
        "Path": request.url.path,
        "Method": request.method,
        "IP": request.client.host if request.client else None,
        "RequestID": get_request_id(request),
    }


@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """Every application error is answered as ``{"detail", "code"}``."""
    log = logger.error if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR else logger.warning
    log(
        sanitize_log_message(
            f"{type(exc).__name__}",
            StatusCode=exc.status_code,
            Code=int(exc.code),
            Detail=exc.detail,
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": int(exc.code)},
        headers=exc.headers
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning(
        sanitize_log_message(
            "Request validation failed",
            Errors=[error.get("loc") for error in exc.errors()],
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": jsonable_encoder(exc.errors()),
            "code": int(StatusCodeError.REQUEST_VALIDATION_ERROR),
        }
    )


# Generic exception handler for unhandled exceptions
@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(
        sanitize_log_message(
            f"Unhandled exception: {type(exc).__name__}",
            ExceptionType=type(exc).__name__,
            ExceptionMessage=str(exc),
            **_request_context(request)
        )
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error" if settings.ENVIRONMENT == "production" else str(exc),
            "code": int(StatusCodeError.UNKNOWN_ERROR),
        }
    )


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "version": settings.VERSION}


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.PROJECT_NAME,
        "version": settings.VERSION,
        "docs": f"{settings.API_V1_STR}/docs"
    }
