"""
Quiz Portal
FastAPI application factory and configuration
"""

import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

# Import API routers
from .api import (
    admin,
    analytics,
    attempt_sessions,
    auth,
    quizzes,
    students,
    teachers
)
from .exceptions import AppException
from .utils.helpers import error_body
from ..config import get_settings

# Configure logging
logger = logging.getLogger(__name__)


class RequestContextMiddleware:
    """Middleware to add request timing"""

    def __init__(self, app, log_requests: bool = False):
        self.app = app
        self.log_requests = log_requests

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.time()
        status_holder = {}

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                process_time = time.time() - start_time
                status_holder["status"] = message["status"]
                message["headers"] = list(message.get("headers", []))
                message["headers"].append(
                    (b"x-process-time", f"{process_time:.6f}".encode())
                )
            await send(message)

        await self.app(scope, receive, send_wrapper)

        if self.log_requests:
            logger.info(
                f"{scope['method']} {scope.get('root_path', '')}{scope['path']} "
                f"-> {status_holder.get('status')} in {time.time() - start_time:.3f}s"
            )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application"""

    settings = get_settings()

    # Create FastAPI instance
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="Quizzes for grades 6 to 12: teachers author, students attempt, admins oversee",
        version=settings.VERSION,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json" if settings.DEBUG else None,
        default_response_class=JSONResponse
    )

    # Add custom middleware
    app.add_middleware(RequestContextMiddleware, log_requests=settings.ENABLE_REQUEST_LOGGING)

    # Add security middleware
    if not settings.DEBUG:
        app.add_middleware(
            TrustedHostMiddleware,
            allowed_hosts=settings.allowed_hosts_list
        )

    # Add compression middleware
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_hosts_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["x-process-time"]
    )

    # Exception handlers
    @app.exception_handler(AppException)
    async def app_exception_handler(request: Request, exc: AppException):
        """Handle custom application exceptions"""
        if exc.status_code >= 500:
            logger.error(f"❌ {exc.error_code}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.error_code, exc.message, jsonable_encoder(exc.details))
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors"""
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=error_body(
                "VALIDATION_ERROR",
                "Request validation failed",
                jsonable_encoder(exc.errors())
            )
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions"""
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body("HTTP_ERROR", str(exc.detail))
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions"""
        logger.exception(f"Unexpected error: {exc}")

        message = str(exc) if settings.DEBUG else "An internal server error occurred"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body("INTERNAL_ERROR", message)
        )

    # Include API routers
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(students.router, prefix="/students", tags=["Students"])
    app.include_router(teachers.router, prefix="/teachers", tags=["Teachers"])
    app.include_router(quizzes.router, prefix="/quizzes", tags=["Quizzes"])
    app.include_router(attempt_sessions.router, prefix="/attempt-sessions", tags=["Attempt Sessions"])
    app.include_router(admin.router, prefix="/admin", tags=["Administration"])
    app.include_router(analytics.router, prefix="/analytics", tags=["Analytics"])

    logger.info("✅ Backend API configured successfully")
    return app


# Export the app factory
__all__ = ["create_app", "RequestContextMiddleware"]
