"""
StockFlow - Custom Exception Hierarchy

Provides structured, typed exceptions with error codes for consistent
error handling across the application.

Usage:
    from stockflow.exceptions import NotFoundError, ValidationError

    # In a service
    raise NotFoundError("Receipt", receipt_id)

    # Per-field validation failures
    raise ValidationError(errors={"items[0].quantity": "Quantity must be greater than zero"})
"""
from typing import Any, Dict, List, Optional


class StockFlowException(Exception):
    """
    Base exception for all StockFlow errors.

    Attributes:
        message: Human-readable error message
        error_code: Machine-readable error code (e.g., "NOT_FOUND", "VALIDATION_ERROR")
        status_code: HTTP status code to return
        details: Additional context for debugging
    """

    error_code: str = "STOCKFLOW_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


# ===================
# 400 Bad Request Errors
# ===================


class ValidationError(StockFlowException):
    """
    Raised when input validation fails.

    ``errors`` maps a field path (``items[2].unitPrice`` style) to a message.
    Raised before anything is written.
    """

    error_code = "VALIDATION_ERROR"
    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        *,
        field: Optional[str] = None,
        errors: Optional[Dict[str, str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.errors: Dict[str, str] = dict(errors or {})
        if field and field not in self.errors:
            self.errors[field] = message
        details = details or {}
        if self.errors:
            details["errors"] = self.errors
        super().__init__(message, details=details)


class InvalidActionError(ValidationError):
    """Raised when an unsupported action is requested."""

    error_code = "INVALID_ACTION"

    def __init__(
        self,
        action: Any,
        *,
        allowed: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["action"] = str(action)
        if allowed:
            details["allowed_actions"] = allowed
        message = f"Invalid action '{action}'"
        if allowed:
            message = f"Invalid action '{action}'. Expected one of: {', '.join(allowed)}"
        super().__init__(message, details=details)


class ConflictError(StockFlowException):
    """Raised when an operation conflicts with the current state of a resource."""

    error_code = "CONFLICT"
    status_code = 400

    def __init__(
        self,
        message: str = "Operation conflicts with current state",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class AlreadyPostedError(ConflictError):
    """Raised when posting a receipt that is no longer a draft."""

    error_code = "ALREADY_POSTED"

    def __init__(
        self,
        receipt_id: Any,
        *,
        current_status: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["receipt_id"] = str(receipt_id)
        if current_status:
            details["current_status"] = current_status
        super().__init__(f"Receipt {receipt_id} has already been posted", details=details)


class InvalidTransitionError(ConflictError):
    """Raised when a status transition is not allowed."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        resource: str,
        *,
        current_state: str,
        requested_state: str,
        allowed_states: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["current_state"] = current_state
        details["requested_state"] = requested_state
        if allowed_states is not None:
            details["allowed_states"] = allowed_states
        super().__init__(
            f"Invalid {resource} status transition: '{current_state}' -> '{requested_state}'",
            details=details,
        )


# ===================
# 404 Not Found Errors
# ===================


class NotFoundError(StockFlowException):
    """Raised when a resource is not found."""

    error_code = "NOT_FOUND"
    status_code = 404

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Any = None,
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        details["resource"] = resource
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        message = f"{resource} not found"
        if resource_id is not None:
            message = f"{resource} with ID {resource_id} not found"
        super().__init__(message, details=details)


# ===================
# 500 Internal Server Errors
# ===================


class DatabaseError(StockFlowException):
    """Raised when a database operation fails."""

    error_code = "DATABASE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str = "Database operation failed",
        *,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details=details)


class TransientInfrastructureError(DatabaseError):
    """Raised when the database connection dropped and the retry failed too."""

    error_code = "TRANSIENT_INFRASTRUCTURE_ERROR"

    def __init__(
        self,
        message: str = "Database connection lost; the operation was not applied",
        *,
        attempts: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        details = details or {}
        if attempts is not None:
            details["attempts"] = attempts
        super().__init__(message, details=details)
