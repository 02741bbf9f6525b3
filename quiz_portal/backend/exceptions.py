"""
Quiz Portal
Application errors and the HTTP status each one maps to.

Every error carries a human readable ``message``, a machine readable
``error_code`` and a ``details`` dict. The FastAPI handlers in ``app.py``
turn them into JSON responses; services and repositories only raise.
"""

from typing import Any, Dict, Optional

from fastapi import status


class AppException(Exception):
    """Base for all application errors"""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.details = dict(details or {})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
            "status_code": self.status_code
        }


# 401: who is calling could not be established
class AuthenticationException(AppException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details=details)


class InvalidCredentialsException(AuthenticationException):
    # Same message for unknown email and wrong password
    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, {"field": "credentials"})


class TokenExpiredException(AuthenticationException):
    def __init__(self, message: str = "Access token has expired"):
        super().__init__(message, {"action": "refresh_token"})


class TokenInvalidException(AuthenticationException):
    def __init__(self, message: str = "Invalid access token"):
        super().__init__(message, {"action": "login_required"})


# 403: the caller is known but their role does not allow the action
class AuthorizationException(AppException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "ACCESS_DENIED"

    def __init__(
        self,
        message: str = "Access denied",
        required_role: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details=details)
        if required_role:
            self.details["required_role"] = required_role


class ResourceOwnershipException(AuthorizationException):
    """The document exists but belongs to someone else (or another grade)"""

    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(
            f"You don't have access to this {resource_type}",
            details={"resource_type": resource_type, "resource_id": resource_id}
        )


# 422: the request is well formed but its content is not acceptable
class ValidationException(AppException):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details=details)
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["provided_value"] = str(value)


class InvalidInputException(ValidationException):
    def __init__(self, field: str, message: str, value: Optional[Any] = None):
        super().__init__(f"Invalid {field}: {message}", field=field, value=value)


class MissingFieldException(ValidationException):
    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(
            message or f"Missing required field: {field}",
            field=field,
            details={"validation_rule": "required"}
        )


class ValueRangeException(ValidationException):
    def __init__(
        self,
        field: str,
        value: Any,
        min_value: Optional[Any] = None,
        max_value: Optional[Any] = None
    ):
        if min_value is not None and max_value is not None:
            bounds = f" (allowed range: {min_value} - {max_value})"
        elif min_value is not None:
            bounds = f" (minimum: {min_value})"
        elif max_value is not None:
            bounds = f" (maximum: {max_value})"
        else:
            bounds = ""

        super().__init__(
            f"Value for {field} is out of range{bounds}",
            field=field,
            value=value,
            details={"min_value": min_value, "max_value": max_value, "validation_rule": "range"}
        )


# 404
class NotFoundException(AppException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id:
            details["resource_id"] = resource_id
        super().__init__(message, details=details)


class UserNotFoundException(NotFoundException):
    def __init__(self, identifier: str, identifier_type: str = "id"):
        super().__init__("User not found", "user", identifier)
        self.details["identifier_type"] = identifier_type


class QuizNotFoundException(NotFoundException):
    def __init__(self, quiz_id: str):
        super().__init__("Quiz not found", "quiz", quiz_id)


# 409
class ConflictException(AppException):
    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"

    def __init__(
        self,
        message: str = "Conflict with current state",
        conflict_type: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details=details)
        if conflict_type:
            self.details["conflict_type"] = conflict_type


class DuplicateResourceException(ConflictException):
    def __init__(self, resource_type: str, field: str, value: str):
        super().__init__(
            f"{resource_type.title()} with {field} '{value}' already exists",
            conflict_type="duplicate",
            details={
                "resource_type": resource_type,
                "duplicate_field": field,
                "duplicate_value": value
            }
        )


# 503 (or 500): a backing service failed or returned something unusable
class BackendException(AppException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_code = "BACKEND_ERROR"

    def __init__(
        self,
        service_name: str,
        message: str = "Backend service error",
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(f"{service_name} error: {message}", status_code=status_code, details=details)
        self.details["service"] = service_name


class DatabaseException(BackendException):
    def __init__(self, message: str = "Database operation failed", collection: Optional[str] = None):
        super().__init__("Database", message, details={"collection": collection} if collection else None)


class MalformedRecordException(BackendException):
    """A stored document failed schema validation when it was read"""

    def __init__(self, collection: str, document_id: Optional[str], reason: str):
        super().__init__(
            "Database",
            f"Malformed {collection} document",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"collection": collection, "document_id": document_id, "reason": reason}
        )


class IdentityProviderException(BackendException):
    def __init__(self, message: str = "Identity provider unavailable"):
        super().__init__("Identity Provider", message)


__all__ = [
    "AppException",
    "AuthenticationException",
    "InvalidCredentialsException",
    "TokenExpiredException",
    "TokenInvalidException",
    "AuthorizationException",
    "ResourceOwnershipException",
    "ValidationException",
    "InvalidInputException",
    "MissingFieldException",
    "ValueRangeException",
    "NotFoundException",
    "UserNotFoundException",
    "QuizNotFoundException",
    "ConflictException",
    "DuplicateResourceException",
    "BackendException",
    "DatabaseException",
    "MalformedRecordException",
    "IdentityProviderException"
]
