"""
Custom exception hierarchy for structured error handling.

WHY: Custom exceptions provide:
1. Consistent error handling across the API
2. HTTP status code mapping for FastAPI
3. Structured error responses with contextual data
4. No sensitive data leaks in error messages

IMPORTANT: NEVER raise the base Exception class. Always use custom exceptions.
"""

from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Base exception class for all application exceptions.

    WHY: Centralizing exception handling in a base class ensures consistent
    error responses, HTTP status code mapping, and prevents sensitive data
    leaks in error messages.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500
    default_message: str = "An unexpected error occurred"

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        **context: Any,
    ):
        """
        Initialize exception with message and context.

        Args:
            message: Human-readable error message
            status_code: HTTP status code (overrides class default)
            **context: Additional context for debugging (filtered in to_dict)
        """
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Serialize exception to dictionary for JSON response.

        Returns:
            Dictionary with error details (sensitive fields filtered out)
        """
        sensitive_fields = {"password", "token", "secret", "key", "api_key"}
        filtered_context = {
            k: v for k, v in self.context.items() if k.lower() not in sensitive_fields
        }

        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "status_code": self.status_code,
            "details": filtered_context if filtered_context else None,
        }


# ============================================================================
# Authentication & Authorization Exceptions
# ============================================================================


class AuthenticationError(AppException):
    """
    Raised when authentication fails.

    HTTP Status: 401 Unauthorized
    """

    status_code = 401
    default_message = "Authentication failed"


class AuthorizationError(AppException):
    """
    Raised when user lacks permissions for an action.

    WHY: Distinguishing authorization (403) from authentication (401) helps
    frontends show appropriate messages ("You don't have permission" vs
    "Please log in").

    HTTP Status: 403 Forbidden
    """

    status_code = 403
    default_message = "You do not have permission to perform this action"


class TokenExpiredError(AuthenticationError):
    """Raised when JWT token has expired."""

    default_message = "Token has expired"


class TokenInvalidError(AuthenticationError):
    """Raised when JWT token is malformed or has invalid signature."""

    default_message = "Token is invalid"


class AccessDeniedError(AuthorizationError):
    """
    Raised on a role or ownership mismatch.

    WHY: A client principal may only ever see its own client's invoices,
    billing state and files. Unlike a generic 404, the portal answers 403
    so the client UI can tell "not yours" apart from "does not exist".

    HTTP Status: 403 Forbidden
    """

    default_message = "Access denied"


class FileAccessRestrictedError(AuthorizationError):
    """
    Raised by file read endpoints when the billing gate denies access.

    WHAT: Wraps a negative FileAccessDecision for the HTTP layer.

    WHY: The gate itself returns a decision, not an error. Only the
    endpoints that refuse to serve files turn a denial into a 403, and the
    decision payload (overdue counts and amounts) travels in ``details`` so
    the client UI can show what is owed.

    HTTP Status: 403 Forbidden
    """

    default_message = "File access restricted due to pending payments"


# ============================================================================
# Validation & Input Exceptions
# ============================================================================


class ValidationError(AppException):
    """
    Raised when input validation fails.

    HTTP Status: 400 Bad Request
    """

    status_code = 400
    default_message = "Validation failed"


class DuplicateInvoiceNumberError(ValidationError):
    """Raised when an invoice number is already taken."""

    default_message = "Invoice number already exists"


# ============================================================================
# Resource Exceptions
# ============================================================================


class ResourceNotFoundError(AppException):
    """
    Raised when a requested resource doesn't exist.

    HTTP Status: 404 Not Found
    """

    status_code = 404
    default_message = "Resource not found"


class ResourceAlreadyExistsError(AppException):
    """
    Raised when attempting to create a resource that already exists.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Resource already exists"


class InvoiceNotFoundError(ResourceNotFoundError):
    """Raised when an invoice doesn't exist."""

    default_message = "Invoice not found"


class PaymentNotFoundError(ResourceNotFoundError):
    """Raised when a payment doesn't exist on the invoice."""

    default_message = "Payment not found"


class ClientNotFoundError(ResourceNotFoundError):
    """Raised when a client doesn't exist."""

    default_message = "Client not found"


class ClientFileNotFoundError(ResourceNotFoundError):
    """Raised when a client file doesn't exist."""

    default_message = "File not found"


class ServiceNotFoundError(ResourceNotFoundError):
    """Raised when a catalog service doesn't exist."""

    default_message = "Service not found"


class UserNotFoundError(ResourceNotFoundError):
    """Raised when a user doesn't exist."""

    default_message = "User not found"


class ReminderNotFoundError(ResourceNotFoundError):
    """Raised when a deadline reminder doesn't exist."""

    default_message = "Reminder not found"


class ConcurrencyConflictError(AppException):
    """
    Raised when an invoice was modified by another request mid-update.

    WHAT: Optimistic-lock failure on the invoice version column.

    WHY: Two staff members recording payments against the same invoice at
    the same moment must not silently overwrite each other's recalculation.
    The losing request is rolled back and told to retry with fresh data.

    HTTP Status: 409 Conflict
    """

    status_code = 409
    default_message = "Invoice was modified concurrently, please retry"


# ============================================================================
# Storage Exceptions
# ============================================================================


class DatabaseError(AppException):
    """
    Raised when database operations fail.

    WHY: Database errors should be caught at the DAO layer and converted
    to application exceptions with safe error messages (no SQL exposed).

    HTTP Status: 500 Internal Server Error
    """

    status_code = 500
    default_message = "Database error"


class StorageError(DatabaseError):
    """Raised when persisting ledger state fails unexpectedly."""

    default_message = "Storage error"


class ExternalServiceError(AppException):
    """
    Base exception for external service failures.

    HTTP Status: 502 Bad Gateway
    """

    status_code = 502
    default_message = "External service error"


class FileStorageError(ExternalServiceError):
    """
    Raised when S3/object storage operations fail.

    WHY: File storage failures (upload, download) need specific handling
    and user messaging (e.g., "File upload failed, please try again").

    HTTP Status: 502 Bad Gateway
    """

    default_message = "File storage error"


class FileUploadError(ValidationError):
    """Raised when an uploaded file is rejected (size, empty, bad name)."""

    default_message = "File upload rejected"
