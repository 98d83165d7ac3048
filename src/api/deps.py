"""FastAPI dependency injection functions."""

from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header

from src.api.middleware.auth import decode_jwt
from src.api.middleware.error_handler import AuthError, AuthErrorCode
from src.schemas.auth import UserContext
from src.services.membership_store import MembershipStore
from src.services.session_provider import SessionProvider


async def get_bearer_token(
    authorization: Annotated[str, Header(description="Bearer token")] = "",
) -> str:
    """Extract the raw token from the Authorization header.

    Raises:
        AuthError: If the header is missing or malformed.
    """
    if not authorization:
        raise AuthError("Authorization header required", AuthErrorCode.UNAUTHORIZED)

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthError(
            "Invalid authorization header format. Expected: Bearer <token>",
            AuthErrorCode.INVALID_TOKEN,
        )

    return parts[1]


BearerToken = Annotated[str, Depends(get_bearer_token)]


async def get_current_user(token: BearerToken) -> UserContext:
    """Validate the bearer token and return the user it identifies.

    Args:
        token: Raw JWT from the Authorization header.

    Returns:
        UserContext: The authenticated user's context.

    Raises:
        AuthError: If the token is invalid or expired.
    """
    payload = decode_jwt(token)
    return payload.to_user_context()


CurrentUser = Annotated[UserContext, Depends(get_current_user)]


async def get_session_provider() -> AsyncGenerator[SessionProvider, None]:
    """Provide an unauthenticated session provider for credential routes."""
    provider = SessionProvider()
    try:
        yield provider
    finally:
        provider.close()


async def get_user_session(user: CurrentUser, token: BearerToken) -> AsyncGenerator[SessionProvider, None]:
    """Provide a session provider seeded with the request's verified identity."""
    provider = SessionProvider(identity=user, access_token=token)
    try:
        yield provider
    finally:
        provider.close()


Session = Annotated[SessionProvider, Depends(get_session_provider)]
UserSession = Annotated[SessionProvider, Depends(get_user_session)]


async def get_membership_store(session: UserSession) -> AsyncGenerator[MembershipStore, None]:
    """Provide a membership store bound to the request's identity."""
    store = MembershipStore(session)
    try:
        yield store
    finally:
        await store.close()


Store = Annotated[MembershipStore, Depends(get_membership_store)]
