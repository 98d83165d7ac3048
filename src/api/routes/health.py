"""Health check endpoints for monitoring and deployment verification."""

import time
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, Response, status

from src.api.deps import CurrentUser
from src.api.middleware.auth import get_signing_key
from src.api.middleware.error_handler import AuthError
from src.core.supabase import check_database_connection
from src.schemas.auth import AuthenticatedResponse
from src.schemas.common import CheckResult, HealthResponse, HealthStatus, ReadinessResponse

router = APIRouter(tags=["health"])


async def check_signing_key() -> dict[str, Any]:
    """Check that the JWT signing key parses, so authenticated routes can work."""
    try:
        get_signing_key()
        return {"healthy": True}
    except AuthError as e:
        return {"healthy": False, "error": e.message}


async def _timed_check(name: str, probe: Callable[[], Awaitable[dict[str, Any]]]) -> CheckResult:
    start_time = time.perf_counter()
    result = await probe()
    latency_ms = (time.perf_counter() - start_time) * 1000
    return CheckResult(
        name=name,
        healthy=result["healthy"],
        latency_ms=round(latency_ms, 2),
        error=result.get("error"),
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used for liveness probes.",
)
async def health_check() -> HealthResponse:
    """Return basic health status."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "Supabase reachable and signing key loaded"},
        503: {"description": "A dependency is unavailable"},
    },
    summary="Readiness check",
    description="Checks Supabase connectivity and the JWT signing key. Used for readiness probes.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Report readiness; 503 if any check fails.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of each check.
    """
    checks = [
        await _timed_check("database", check_database_connection),
        await _timed_check("signing_key", check_signing_key),
    ]

    all_healthy = all(check.healthy for check in checks)
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY,
        checks=checks,
    )


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    summary="Authenticated health check",
    description="Protected endpoint to verify authentication is working correctly.",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Authentication required or invalid token"},
    },
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    """Echo the identity carried by the bearer token.

    Args:
        user: The authenticated user context from JWT.

    Returns:
        AuthenticatedResponse: User information from the token.
    """
    return AuthenticatedResponse(
        authenticated=True,
        user_id=str(user.user_id),
        email=user.email,
    )
