"""Authentication API routes."""

from fastapi import APIRouter, status

from src.api.deps import Session, UserSession
from src.schemas.auth import (
    LoginRequest,
    OAuthRequest,
    OAuthResponse,
    ResendCodeRequest,
    ResendCodeResponse,
    SessionResponse,
    SignOutResponse,
    SignupRequest,
    VerifyCodeRequest,
)
from src.services.session_provider import SessionProvider

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_response(session: SessionProvider, user_id: str, email: str | None, display_name: str | None) -> SessionResponse:
    tokens = session.session_tokens()
    return SessionResponse(
        user_id=user_id,
        email=email,
        display_name=display_name,
        verification_required=not tokens,
        **tokens,
    )


@router.post(
    "/signup",
    response_model=SessionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Sign up new user",
    description="Create an account with email and password. A one-time code is emailed for verification.",
)
async def signup(data: SignupRequest, session: Session) -> SessionResponse:
    """Sign up a new user with email and password.

    Args:
        data: Signup request with email, password, and display name.
        session: Session provider for this request.

    Returns:
        SessionResponse: The new identity, with tokens only if no verification is required.
    """
    user = await session.sign_up_with_password(data.email, data.password, data.display_name)
    return _session_response(session, str(user.user_id), user.email, user.display_name)


@router.post(
    "/login",
    response_model=SessionResponse,
    summary="Sign in with password",
)
async def login(data: LoginRequest, session: Session) -> SessionResponse:
    """Sign in with email and password."""
    user = await session.sign_in_with_password(data.email, data.password)
    return _session_response(session, str(user.user_id), user.email, user.display_name)


@router.post(
    "/oauth",
    response_model=OAuthResponse,
    summary="Start third-party sign-in",
)
async def oauth(data: OAuthRequest, session: Session) -> OAuthResponse:
    """Return the provider URL the browser should be sent to."""
    url = await session.sign_in_with_oauth(data.provider)
    return OAuthResponse(provider=data.provider, url=url)


@router.post(
    "/verify-otp",
    response_model=SessionResponse,
    summary="Verify one-time code",
    description="Verify the sign-up code emailed to the user and open a session.",
)
async def verify_otp(data: VerifyCodeRequest, session: Session) -> SessionResponse:
    """Verify a one-time code."""
    user = await session.verify_one_time_code(data.email, data.code)
    return _session_response(session, str(user.user_id), user.email, user.display_name)


@router.post(
    "/resend-otp",
    response_model=ResendCodeResponse,
    summary="Resend one-time code",
    description="Resend the sign-up code. Allowed once per cooldown period per address.",
)
async def resend_otp(data: ResendCodeRequest, session: Session) -> ResendCodeResponse:
    """Resend a one-time code."""
    retry_after = await session.resend_one_time_code(data.email)
    return ResendCodeResponse(email_sent=True, retry_after=retry_after)


@router.post(
    "/logout",
    response_model=SignOutResponse,
    summary="Sign out",
)
async def logout(session: UserSession) -> SignOutResponse:
    """End the session and return the unauthenticated entry point."""
    redirect_url = await session.sign_out()
    return SignOutResponse(message="Signed out successfully", redirect_url=redirect_url)
