#!/usr/bin/env python3
"""
Quiz Portal
Main application entry point
"""

import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from .backend.app import create_app
from .backend.database.connection import (
    check_database_health,
    close_database_connections,
    database_transaction,
    init_database
)
from .backend.dependencies import close_live_attempts, close_redis_client
from .backend.repositories import Repositories
from .backend.services.identity import IdentityService
from .backend.utils.helpers import setup_logging
from .config import get_settings

# Configure logging
logger = logging.getLogger(__name__)


async def bootstrap_admin():
    """Make sure the configured admin account exists"""
    async with database_transaction() as session:
        admin = await IdentityService(Repositories(session)).ensure_bootstrap_admin()

    if admin is not None:
        logger.info(f"✅ Admin account ready: {admin.email}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events"""

    # Startup
    logger.info("🚀 Starting Quiz Portal...")

    await init_database()
    await bootstrap_admin()

    logger.info("🎉 Application startup complete!")

    yield

    # Shutdown
    logger.info("🛑 Shutting down application...")
    await close_live_attempts()
    await close_redis_client()
    await close_database_connections()
    logger.info("✅ Application shutdown complete")


def create_main_app() -> FastAPI:
    """Create and configure the main FastAPI application"""

    settings = get_settings()

    main_app = FastAPI(
        title=settings.APP_NAME,
        description="Role-based quiz portal for admins, teachers and students",
        version=settings.VERSION,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        lifespan=lifespan
    )

    # Mount the backend API
    main_app.mount("/api", create_app())

    # Health check endpoint
    @main_app.get("/health")
    async def health_check():
        """Application health check endpoint"""
        database = await check_database_health()
        return {
            "status": "healthy" if database["status"] == "healthy" else "degraded",
            "version": settings.VERSION,
            "environment": settings.ENVIRONMENT,
            "database": database["database"]
        }

    return main_app


def run_server():
    """Run the server with uvicorn"""
    settings = get_settings()

    uvicorn.run(
        "quiz_portal.main:create_main_app",
        factory=True,
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
        access_log=settings.DEBUG
    )


def main():
    """Main entry point"""
    setup_logging()

    settings = get_settings()
    logger.info(f"Starting application in {settings.ENVIRONMENT} mode")

    try:
        run_server()
    except KeyboardInterrupt:
        logger.info("Application stopped by user")
    except OSError as e:
        logger.error(f"Application failed to start: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
