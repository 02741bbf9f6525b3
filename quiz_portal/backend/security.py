"""
Quiz Portal
Password hashing, JWT issuing and federated ID token verification
"""

import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from .exceptions import (
    AuthenticationException,
    IdentityProviderException,
    TokenExpiredException,
    TokenInvalidException
)
from ..config import get_settings

# Configure logging
logger = logging.getLogger(__name__)

ACCESS_TOKEN = "access"
REFRESH_TOKEN = "refresh"


@lru_cache()
def get_password_context() -> CryptContext:
    settings = get_settings()
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=settings.BCRYPT_ROUNDS
    )


def hash_password(password: str) -> str:
    """Hash password using bcrypt"""
    return get_password_context().hash(password)


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash; accounts without a hash never match"""
    if not hashed_password:
        return False
    return get_password_context().verify(plain_password, hashed_password)


def _encode(data: Dict[str, Any], token_type: str, expires_delta: timedelta) -> str:
    settings = get_settings()
    now = datetime.now(timezone.utc)
    to_encode = data.copy()
    to_encode.update({
        "iat": now,
        "exp": now + expires_delta,
        "jti": uuid.uuid4().hex,
        "type": token_type
    })
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    return _encode(data, ACCESS_TOKEN, expires_delta)


def create_refresh_token(data: Dict[str, Any]) -> str:
    """Create JWT refresh token"""
    settings = get_settings()
    return _encode(data, REFRESH_TOKEN, timedelta(days=settings.JWT_REFRESH_TOKEN_EXPIRE_DAYS))


def decode_token(token: str, expected_type: str = ACCESS_TOKEN) -> Dict[str, Any]:
    """Verify a token issued by this service and check its type claim"""
    settings = get_settings()

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except jwt.ExpiredSignatureError:
        if expected_type == REFRESH_TOKEN:
            raise TokenExpiredException("Refresh token has expired")
        raise TokenExpiredException()
    except jwt.InvalidTokenError:
        raise TokenInvalidException()

    if payload.get("type") != expected_type:
        raise TokenInvalidException("Invalid token type")
    if not payload.get("sub"):
        raise TokenInvalidException("Invalid token payload")

    return payload


def token_time_left(payload: Dict[str, Any]) -> int:
    """Seconds until the token expires, never negative"""
    exp = payload.get("exp")
    if not exp:
        return 0
    return max(int(exp - datetime.now(timezone.utc).timestamp()), 0)


@lru_cache()
def get_jwks_client(jwks_url: str) -> jwt.PyJWKClient:
    return jwt.PyJWKClient(jwks_url)


def verify_federated_id_token(id_token: str) -> Dict[str, Any]:
    """Verify an OpenID Connect ID token against the provider's published keys.

    Returns the verified claims. The audience must be the configured client id
    and the issuer one of the configured issuers.
    """
    settings = get_settings()
    if not settings.FEDERATED_CLIENT_ID:
        raise IdentityProviderException("Federated sign-in is not configured")

    try:
        signing_key = get_jwks_client(settings.FEDERATED_JWKS_URL).get_signing_key_from_jwt(id_token)
        claims = jwt.decode(
            id_token,
            signing_key.key,
            algorithms=["RS256"],
            audience=settings.FEDERATED_CLIENT_ID
        )
    except jwt.PyJWKClientError as e:
        logger.error(f"❌ Could not fetch identity provider keys: {e}")
        raise IdentityProviderException(str(e)) from e
    except jwt.ExpiredSignatureError:
        raise TokenExpiredException("ID token has expired")
    except jwt.InvalidTokenError as e:
        raise AuthenticationException(f"Invalid ID token: {e}")

    if claims.get("iss") not in settings.federated_issuers_list:
        raise AuthenticationException("ID token was issued by an unknown provider")
    if not claims.get("sub") or not claims.get("email"):
        raise AuthenticationException("ID token is missing the subject or email claim")

    return claims


__all__ = [
    "ACCESS_TOKEN",
    "REFRESH_TOKEN",
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "token_time_left",
    "verify_federated_id_token"
]
