"""
Common API Response Schemas

Standardized error and acknowledgement responses shared by every endpoint.
"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    """
    Standardized error response for all API errors.

    Error Codes:
        - VALIDATION_ERROR: Request validation failed (400)
        - INVALID_ACTION: Unsupported action (400)
        - ALREADY_POSTED: Receipt is no longer a draft (400)
        - INVALID_TRANSITION: Status change not allowed (400)
        - NOT_FOUND: Resource not found (404)
        - DATABASE_ERROR: Database operation failed (500)
        - TRANSIENT_INFRASTRUCTURE_ERROR: Connection lost twice (500)
        - INTERNAL_ERROR: Unexpected internal error (500)

    Example:
        {
            "error": "VALIDATION_ERROR",
            "message": "Invalid order",
            "details": {
                "errors": {"items[0].quantity": "Quantity must be greater than zero"}
            },
            "timestamp": "2025-12-23T10:30:00Z"
        }
    """
    error: str = Field(..., description="Machine-readable error code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error context; per-field messages under 'errors'"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the error occurred (UTC)"
    )


class OkResponse(BaseModel):
    """Acknowledgement for mutations that return no resource"""
    ok: bool = True
