"""Health and error response schemas shared by every router."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

API_VERSION = "0.1.0"


def _now() -> datetime:
    return datetime.now(timezone.utc)


class HealthStatus(str, Enum):
    """Health check status values."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class HealthResponse(BaseModel):
    """Liveness probe response."""

    status: HealthStatus = Field(description="Current health status")
    timestamp: datetime = Field(default_factory=_now, description="Check timestamp (UTC)")
    version: str = Field(default=API_VERSION, description="API version")


class CheckResult(BaseModel):
    """Outcome of one dependency probe (currently only Supabase)."""

    name: str = Field(description="Dependency name")
    healthy: bool = Field(description="Whether the dependency answered")
    latency_ms: float | None = Field(default=None, description="Probe round trip in milliseconds")
    error: str | None = Field(default=None, description="Failure message if unhealthy")


class ReadinessResponse(BaseModel):
    """Readiness probe response. Unhealthy if any check failed."""

    status: HealthStatus = Field(description="Overall readiness status")
    timestamp: datetime = Field(default_factory=_now, description="Check timestamp (UTC)")
    checks: list[CheckResult] = Field(default_factory=list, description="Individual check results")


class ErrorDetail(BaseModel):
    """Field-level error information."""

    loc: list[str] | None = Field(default=None, description="Location of error (e.g., field path)")
    msg: str = Field(description="Human-readable error message")
    type: str = Field(description="Error type identifier")


class ErrorResponse(BaseModel):
    """Body of every error response.

    `error` is the category (auth_error, validation_error, precondition_error,
    not_found, backend_error). `code` narrows auth errors down to an
    AuthErrorCode so clients can tell an expired token from a bad password.
    """

    error: str = Field(description="Error category")
    code: str | None = Field(default=None, description="Machine-readable code within the category")
    message: str = Field(description="Human-readable error description")
    details: list[ErrorDetail] | None = Field(default=None, description="Additional error details")
    request_id: str | None = Field(default=None, description="Request ID for tracing")
    timestamp: datetime = Field(default_factory=_now, description="Error timestamp (UTC)")

    @classmethod
    def from_exception(
        cls,
        error_type: str,
        message: str,
        details: list[dict[str, Any]] | None = None,
        request_id: str | None = None,
        code: str | None = None,
    ) -> "ErrorResponse":
        """Build an ErrorResponse from the attributes of a raised APIError.

        Args:
            error_type: Error category.
            message: Human-readable error description.
            details: Optional list of error detail dictionaries.
            request_id: Optional request ID for tracing.
            code: Optional code within the category.

        Returns:
            ErrorResponse: Formatted error response.
        """
        error_details = None
        if details:
            error_details = [
                ErrorDetail(
                    loc=d.get("loc"),
                    msg=d.get("msg", str(d)),
                    type=d.get("type", "error"),
                )
                for d in details
            ]

        return cls(
            error=error_type,
            code=code,
            message=message,
            details=error_details,
            request_id=request_id,
        )
