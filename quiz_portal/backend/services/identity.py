"""
Quiz Portal
Identity resolution, sign-in and account management

Every operation receives the acting principal as an explicit RequestContext;
nothing here reads ambient session state.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..database.models import GRADES, AuthProvider, UserRole, utcnow
from ..exceptions import (
    AuthorizationException,
    DuplicateResourceException,
    InvalidCredentialsException,
    InvalidInputException,
    MissingFieldException,
    UserNotFoundException
)
from ..repositories import Repositories, UserRepository
from ..schemas import UserRecord
from ..security import create_access_token, create_refresh_token, hash_password, verify_password
from ...config import get_settings

# Configure logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestContext:
    """The authenticated principal for one request"""

    principal_id: str
    email: str
    role: UserRole
    user: UserRecord
    token: Optional[str] = None
    token_payload: Optional[Dict[str, Any]] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_teacher(self) -> bool:
        return self.role == UserRole.TEACHER

    @property
    def is_student(self) -> bool:
        return self.role == UserRole.STUDENT


async def resolve_context(
    token_payload: Dict[str, Any],
    users: UserRepository,
    token: Optional[str] = None
) -> RequestContext:
    """Build the request context from a verified token payload.

    The role always comes from the stored user document, so a role change
    takes effect on the next request even for tokens issued earlier.
    """
    user_id = token_payload["sub"]
    user = await users.get(user_id)
    if user is None:
        raise UserNotFoundException(user_id)

    return RequestContext(
        principal_id=user.id,
        email=user.email,
        role=user.role,
        user=user,
        token=token,
        token_payload=token_payload
    )


def _role_mismatch_message(actual: UserRole, expected: UserRole) -> str:
    article = "an" if expected.value[0] in "aeiou" else "a"
    return f"This account is registered as a {actual.value}, not {article} {expected.value}"


def issue_tokens(user: UserRecord) -> Dict[str, Any]:
    settings = get_settings()
    token_data = {"sub": user.id, "email": user.email, "role": user.role.value}
    return {
        "access_token": create_access_token(token_data),
        "refresh_token": create_refresh_token(token_data),
        "token_type": "bearer",
        "expires_in": settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES * 60
    }


class IdentityService:
    def __init__(self, repos: Repositories):
        self.repos = repos
        self.users = repos.users

    async def password_sign_in(
        self,
        email: str,
        password: str,
        expected_role: Optional[UserRole] = None
    ) -> UserRecord:
        found = await self.users.credentials_for(email)
        if found is None:
            raise InvalidCredentialsException()

        user, hashed_password = found
        if not verify_password(password, hashed_password):
            raise InvalidCredentialsException()

        if expected_role is not None and user.role != expected_role:
            raise AuthorizationException(
                _role_mismatch_message(user.role, expected_role),
                required_role=expected_role.value
            )

        logger.info(f"User {user.email} signed in as {user.role.value}")
        return user

    async def federated_sign_in(self, claims: Dict[str, Any]) -> UserRecord:
        """Sign in with verified ID token claims, creating a student on first use"""
        subject = claims["sub"]
        email = claims["email"]

        user = await self.users.get_by_subject(subject)
        if user is None:
            user = await self.users.get_by_email(email)

        if user is not None:
            logger.info(f"Returning federated user {user.email} ({user.role.value})")
            return user

        user = await self.users.add(
            email=email,
            name=claims.get("name") or None,
            role=UserRole.STUDENT,
            profile_complete=False,
            auth_provider=AuthProvider.FEDERATED,
            auth_subject=subject
        )
        logger.info(f"Created student account for {user.email} on first sign-in")
        return user

    async def complete_profile(
        self,
        context: RequestContext,
        name: Optional[str],
        grade: Optional[str]
    ) -> UserRecord:
        name = (name or "").strip()
        grade = (grade or "").strip()

        if not name:
            raise MissingFieldException("name", "Please enter your name")
        if not grade:
            raise MissingFieldException("grade", "Please select your grade")
        if grade not in GRADES:
            raise InvalidInputException("grade", f"must be one of {', '.join(GRADES)}", grade)

        user = await self.users.update(
            context.principal_id,
            name=name,
            grade=grade,
            profile_complete=True,
            updated_at=utcnow()
        )
        logger.info(f"Profile completed for {user.email} (grade {grade})")
        return user

    async def create_account(
        self,
        email: str,
        password: str,
        role: UserRole,
        name: Optional[str] = None,
        created_by: Optional[RequestContext] = None
    ) -> UserRecord:
        settings = get_settings()
        email = email.strip().lower()

        if len(password) < settings.PASSWORD_MIN_LENGTH:
            raise InvalidInputException(
                "password",
                f"must be at least {settings.PASSWORD_MIN_LENGTH} characters"
            )
        if await self.users.get_by_email(email) is not None:
            raise DuplicateResourceException("user", "email", email)

        user = await self.users.add(
            email=email,
            name=name,
            role=role,
            profile_complete=True,
            auth_provider=AuthProvider.PASSWORD,
            hashed_password=hash_password(password),
            created_by_id=created_by.principal_id if created_by else None
        )
        logger.info(f"Created {role.value} account {user.email}")
        return user

    async def ensure_bootstrap_admin(self) -> Optional[UserRecord]:
        """Create the configured admin account, or restore its admin role"""
        settings = get_settings()
        email = settings.BOOTSTRAP_ADMIN_EMAIL
        password = settings.BOOTSTRAP_ADMIN_PASSWORD

        if not email or not password:
            logger.info("No bootstrap admin configured")
            return None

        existing = await self.users.get_by_email(email)
        if existing is None:
            return await self.create_account(
                email, password, UserRole.ADMIN, name=settings.BOOTSTRAP_ADMIN_NAME
            )

        if existing.role != UserRole.ADMIN:
            logger.warning(f"⚠️ Bootstrap account {email} was a {existing.role.value}, restoring admin role")

        changes = {"role": UserRole.ADMIN, "name": existing.name or settings.BOOTSTRAP_ADMIN_NAME}
        found = await self.users.credentials_for(email)
        if found is not None and not found[1]:
            changes["hashed_password"] = hash_password(password)
        return await self.users.update(existing.id, **changes)


__all__ = [
    "RequestContext",
    "resolve_context",
    "issue_tokens",
    "IdentityService"
]
