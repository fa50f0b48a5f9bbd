# groupchat/common/exceptions/exceptions.py
# =============================================================================
# Custom exceptions for groupchat
# =============================================================================
#
# Every error carries a stable `code` that the API layer copies into the
# structured error envelope and the client transport uses to rebuild the
# same exception type on the other side of the wire.
# =============================================================================

from typing import Any, Dict, Optional, Type


class GroupChatException(Exception):
    """Base exception for groupchat"""
    code: str = "INTERNAL"

    def __init__(self, message: str = "", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_error_dict(self) -> Dict[str, Any]:
        """Structured error entry for the response envelope."""
        error: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            error["details"] = self.details
        return error


class AuthenticationError(GroupChatException):
    """Raised when the request credential is missing or invalid"""
    code = "UNAUTHENTICATED"


class AuthorizationError(GroupChatException):
    """Raised when an authenticated user is not allowed to act (not a member, not a friend)"""
    code = "UNAUTHORIZED"


class ValidationError(GroupChatException):
    """Raised when validation fails (conflicting pagination arguments, malformed input)"""
    code = "VALIDATION_ERROR"


class NotFoundError(GroupChatException):
    """Raised when a resource is not found"""
    code = "NOT_FOUND"


# Alias for compatibility
ResourceNotFoundError = NotFoundError


class ConflictError(GroupChatException):
    """Raised when an optimistic cache entry could not be reconciled"""
    code = "CONFLICT"


class DomainError(GroupChatException):
    """Raised for domain-specific errors"""
    code = "DOMAIN_ERROR"


class InfrastructureError(GroupChatException):
    """Raised for infrastructure errors"""
    code = "INFRASTRUCTURE_ERROR"


_CODE_TO_EXCEPTION: Dict[str, Type[GroupChatException]] = {
    cls.code: cls
    for cls in (
        AuthenticationError,
        AuthorizationError,
        ValidationError,
        NotFoundError,
        ConflictError,
        DomainError,
        InfrastructureError,
    )
}


def exception_from_error_dict(error: Dict[str, Any]) -> GroupChatException:
    """Rebuild a taxonomy exception from a structured error entry."""
    exc_class = _CODE_TO_EXCEPTION.get(error.get("code", ""), GroupChatException)
    return exc_class(error.get("message", ""), details=error.get("details"))
