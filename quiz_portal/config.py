"""
Quiz Portal
Application configuration and settings management
"""

import os
import secrets
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    # Application Settings
    APP_NAME: str = "Quiz Portal"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Server Configuration
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Security Settings
    JWT_SECRET_KEY: str = Field(default_factory=lambda: secrets.token_urlsafe(32))
    JWT_ALGORITHM: str = "HS256"
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 30
    JWT_REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    PASSWORD_MIN_LENGTH: int = 6
    BCRYPT_ROUNDS: int = 12

    # CORS Settings (comma-separated)
    ALLOWED_HOSTS: str = "*"

    @property
    def allowed_hosts_list(self) -> List[str]:
        return [host.strip() for host in self.ALLOWED_HOSTS.split(",") if host.strip()]

    # Database Configuration
    DATABASE_URL: Optional[str] = None
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "quiz_portal"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "password"
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_ECHO: bool = False

    @property
    def database_url(self) -> str:
        """Generate database URL from components or use provided URL"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # For development, use SQLite
        if self.ENVIRONMENT == "development":
            return "sqlite:///./quiz_portal.db"

        password = quote_plus(self.DB_PASSWORD)
        return f"postgresql://{self.DB_USER}:{password}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Redis Configuration (token revocation on logout); disabled when unset
    REDIS_URL: Optional[str] = None
    REDIS_RETRY_SECONDS: float = 30.0  # wait after a failed connection

    # Federated sign-in (OpenID Connect ID tokens)
    FEDERATED_CLIENT_ID: Optional[str] = None
    FEDERATED_JWKS_URL: str = "https://www.googleapis.com/oauth2/v3/certs"
    FEDERATED_ISSUERS: str = "https://accounts.google.com,accounts.google.com"

    @property
    def federated_issuers_list(self) -> List[str]:
        return [issuer.strip() for issuer in self.FEDERATED_ISSUERS.split(",") if issuer.strip()]

    # Bootstrap admin account, created or repaired on startup
    BOOTSTRAP_ADMIN_EMAIL: Optional[str] = "admin@quiz.com"
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = None
    BOOTSTRAP_ADMIN_NAME: str = "Admin User"

    # Quiz Configuration
    DEFAULT_QUIZ_TIME_LIMIT: int = 15  # minutes
    MAX_QUIZ_TIME_LIMIT: int = 120  # minutes
    MIN_ANSWERS_PER_QUESTION: int = 2
    COUNTDOWN_TICK_SECONDS: float = 1.0  # one countdown second of wall time

    # Analytics Configuration
    TOP_PERFORMER_MIN_ATTEMPTS: int = 2
    TOP_PERFORMER_LIMIT: int = 5
    RECENT_QUIZZES_LIMIT: int = 5

    # Monitoring and Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    ENABLE_REQUEST_LOGGING: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore"
    )


class DevelopmentSettings(Settings):
    """Development environment specific settings"""
    DEBUG: bool = True
    ENVIRONMENT: str = "development"
    ENABLE_REQUEST_LOGGING: bool = True
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = "admin123"


class ProductionSettings(Settings):
    """Production environment specific settings"""
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    DB_ECHO: bool = False
    ENABLE_REQUEST_LOGGING: bool = False

    # Require these in production
    JWT_SECRET_KEY: str = Field(...)
    DATABASE_URL: str = Field(...)


class TestingSettings(Settings):
    """Testing environment specific settings"""
    DEBUG: bool = True
    ENVIRONMENT: str = "testing"
    DATABASE_URL: str = "sqlite:///:memory:"
    ENABLE_REQUEST_LOGGING: bool = False
    REDIS_URL: Optional[str] = None
    BOOTSTRAP_ADMIN_PASSWORD: Optional[str] = "admin123"
    FEDERATED_CLIENT_ID: Optional[str] = "test-client-id"

    # Faster settings for tests
    BCRYPT_ROUNDS: int = 4
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = 5


@lru_cache()
def get_settings() -> Settings:
    """Get application settings with caching"""
    environment = os.getenv("ENVIRONMENT", "development").lower()

    if environment == "production":
        return ProductionSettings()
    elif environment == "testing":
        return TestingSettings()
    else:
        return DevelopmentSettings()


def get_database_url() -> str:
    """Get the database URL for the current environment"""
    return get_settings().database_url


def get_redis_url() -> Optional[str]:
    """Get the Redis URL for the current environment, if one is configured"""
    return get_settings().REDIS_URL


# Export commonly used settings
__all__ = [
    "Settings",
    "DevelopmentSettings",
    "ProductionSettings",
    "TestingSettings",
    "get_settings",
    "get_database_url",
    "get_redis_url"
]
