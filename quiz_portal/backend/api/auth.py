"""
Quiz Portal
Authentication API routes
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, EmailStr, field_validator

from ..database.models import UserRole
from ..dependencies import get_repositories, get_request_context, revoke_token
from ..exceptions import AuthenticationException
from ..repositories import Repositories
from ..schemas import UserRecord
from ..security import REFRESH_TOKEN, decode_token, verify_federated_id_token
from ..services.identity import IdentityService, RequestContext, issue_tokens

# Configure logging
logger = logging.getLogger(__name__)

# Router instance
router = APIRouter()


# Pydantic models for requests/responses
class LoginRequest(BaseModel):
    email: EmailStr
    password: str
    role: Optional[UserRole] = None

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        if not v:
            raise ValueError("Password is required")
        return v


class FederatedLoginRequest(BaseModel):
    id_token: str


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserRecord


class LogoutResponse(BaseModel):
    message: str
    revoked: bool


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    repos: Repositories = Depends(get_repositories)
):
    """Sign in with email and password, optionally checking the account's role"""
    user = await IdentityService(repos).password_sign_in(
        request.email, request.password, expected_role=request.role
    )
    return TokenResponse(**issue_tokens(user), user=user)


@router.post("/federated", response_model=TokenResponse)
async def federated_login(
    request: FederatedLoginRequest,
    repos: Repositories = Depends(get_repositories)
):
    """Student sign-in with an identity provider ID token"""
    # Fetching the provider keys is blocking network I/O
    claims = await asyncio.to_thread(verify_federated_id_token, request.id_token)
    user = await IdentityService(repos).federated_sign_in(claims)
    await repos.session.commit()

    return TokenResponse(**issue_tokens(user), user=user)


@router.post("/refresh", response_model=TokenResponse)
async def refresh_token(
    request: RefreshTokenRequest,
    repos: Repositories = Depends(get_repositories)
):
    """Refresh access token using refresh token"""
    payload = decode_token(request.refresh_token, expected_type=REFRESH_TOKEN)

    user = await repos.users.get(payload["sub"])
    if user is None:
        raise AuthenticationException("User no longer exists")

    return TokenResponse(**issue_tokens(user), user=user)


@router.post("/logout", response_model=LogoutResponse)
async def logout(context: RequestContext = Depends(get_request_context)):
    """Logout user and revoke the access token"""
    revoked = await revoke_token(context.token_payload)
    logger.info(f"User {context.email} logged out")

    return LogoutResponse(message="Logged out successfully", revoked=revoked)


@router.get("/me", response_model=UserRecord)
async def get_current_user_profile(context: RequestContext = Depends(get_request_context)):
    """Get current user's profile information"""
    return context.user


__all__ = ["router"]
