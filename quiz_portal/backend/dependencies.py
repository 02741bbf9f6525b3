"""
Quiz Portal
Dependency injection components: sessions, identity and role checks
"""

import logging
import time
from typing import Any, Dict, Optional

import redis.asyncio as redis
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from .database.connection import database_transaction, get_db
from .database.models import UserRole
from .exceptions import AuthenticationException, AuthorizationException, TokenInvalidException
from .repositories import Repositories
from .schemas import AttemptRecord, QuizRecord
from .security import decode_token, token_time_left
from .services.attempt_engine import AttemptEngine
from .services.attempt_sessions import LiveAttempt, LiveAttemptRegistry
from .services.identity import RequestContext, resolve_context
from ..config import get_redis_url, get_settings

# Configure logging
logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

# Redis connection
_redis_client: Optional[redis.Redis] = None
# Monotonic time before which no reconnect is tried after a failure
_redis_retry_at: float = 0.0


async def get_redis_client() -> Optional[redis.Redis]:
    """Get Redis client instance, or None when Redis is not configured or reachable"""
    global _redis_client, _redis_retry_at

    redis_url = get_redis_url()
    if not redis_url:
        return None

    if _redis_client is None and time.monotonic() >= _redis_retry_at:
        client = redis.from_url(
            redis_url,
            encoding="utf-8",
            decode_responses=True,
            health_check_interval=30
        )
        try:
            # Test connection
            await client.ping()
            _redis_client = client
            logger.info("✅ Redis connection established")
        except (redis.RedisError, OSError) as e:
            retry_seconds = get_settings().REDIS_RETRY_SECONDS
            _redis_retry_at = time.monotonic() + retry_seconds
            logger.warning(f"⚠️ Redis connection failed, retrying in {retry_seconds:g}s: {e}")
            await client.aclose()

    return _redis_client


async def close_redis_client():
    global _redis_client, _redis_retry_at

    _redis_retry_at = 0.0
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


# Timed attempt sessions
_live_attempts: Optional[LiveAttemptRegistry] = None


async def _submit_expired_attempt(live: LiveAttempt) -> AttemptRecord:
    """Record an expired session's selections in a transaction of its own"""
    async with database_transaction() as session:
        return await AttemptEngine(Repositories(session)).submit(
            live.quiz_id, live.snapshot(), live.student
        )


def get_live_attempts() -> LiveAttemptRegistry:
    global _live_attempts

    if _live_attempts is None:
        _live_attempts = LiveAttemptRegistry(
            _submit_expired_attempt,
            tick_seconds=get_settings().COUNTDOWN_TICK_SECONDS
        )
    return _live_attempts


async def close_live_attempts():
    global _live_attempts

    if _live_attempts is not None:
        await _live_attempts.close()
        _live_attempts = None
        logger.info("✅ Attempt countdowns stopped")


def _revocation_key(payload: Dict[str, Any]) -> str:
    return f"revoked:{payload.get('jti', payload['sub'])}"


async def revoke_token(payload: Dict[str, Any]) -> bool:
    """Deny-list an access token until it expires; False when Redis is unavailable"""
    redis_client = await get_redis_client()
    if not redis_client:
        logger.warning("⚠️ Token revocation skipped: Redis not available")
        return False

    ttl = token_time_left(payload)
    if ttl <= 0:
        return True

    try:
        await redis_client.setex(_revocation_key(payload), ttl, "1")
    except redis.RedisError as e:
        logger.warning(f"⚠️ Token revocation failed: {e}")
        return False
    return True


async def is_token_revoked(payload: Dict[str, Any]) -> bool:
    redis_client = await get_redis_client()
    if not redis_client:
        return False

    try:
        return bool(await redis_client.get(_revocation_key(payload)))
    except redis.RedisError as e:
        logger.warning(f"⚠️ Revocation check failed: {e}")
        return False


def get_repositories(db: AsyncSession = Depends(get_db)) -> Repositories:
    return Repositories(db)


async def get_request_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repos: Repositories = Depends(get_repositories)
) -> RequestContext:
    """Resolve the bearer token into the request's identity"""
    if not credentials:
        raise AuthenticationException("Authentication required")

    payload = decode_token(credentials.credentials)
    if await is_token_revoked(payload):
        raise TokenInvalidException("Token has been revoked")

    return await resolve_context(payload, repos.users, token=credentials.credentials)


def require_role(*allowed_roles: UserRole):
    """Factory function to create role-based dependencies"""

    async def check_role(context: RequestContext = Depends(get_request_context)) -> RequestContext:
        if context.role not in allowed_roles:
            raise AuthorizationException(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}",
                required_role=allowed_roles[0].value if len(allowed_roles) == 1 else None
            )
        return context

    return check_role


# Pre-built role dependencies
require_student = require_role(UserRole.STUDENT)
require_teacher = require_role(UserRole.TEACHER)
require_admin = require_role(UserRole.ADMIN)
require_teacher_or_admin = require_role(UserRole.TEACHER, UserRole.ADMIN)
require_any_role = require_role(UserRole.STUDENT, UserRole.TEACHER, UserRole.ADMIN)


class PermissionChecker:
    """Permission checking system"""

    @staticmethod
    def can_view_quiz_results(context: RequestContext, quiz: QuizRecord) -> bool:
        # Admins can view any quiz's results
        if context.is_admin:
            return True

        # Teachers can view results of their own quizzes
        return context.is_teacher and quiz.teacher_id == context.principal_id

    @staticmethod
    def can_view_quiz(context: RequestContext, quiz: QuizRecord) -> bool:
        if context.is_admin:
            return True
        if context.is_teacher:
            return quiz.teacher_id == context.principal_id

        # Students only see quizzes for their own grade
        return context.user.grade == quiz.target_grade


__all__ = [
    "get_db",
    "get_redis_client",
    "close_redis_client",
    "get_live_attempts",
    "close_live_attempts",
    "revoke_token",
    "is_token_revoked",
    "get_repositories",
    "get_request_context",
    "require_role",
    "require_student",
    "require_teacher",
    "require_admin",
    "require_teacher_or_admin",
    "require_any_role",
    "PermissionChecker"
]
