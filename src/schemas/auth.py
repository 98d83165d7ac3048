"""Authentication schemas for identities, tokens and credential requests."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class UserContext(BaseModel):
    """The authenticated identity.

    Populated either from a validated JWT or from a Supabase auth session.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True)

    user_id: UUID = Field(description="Unique identifier for the user (from JWT sub claim)")
    email: str | None = Field(default=None, description="User's email address if available")
    display_name: str | None = Field(default=None, description="User's display name from auth metadata")
    role: str | None = Field(default=None, description="Auth role claim (e.g., 'authenticated')")


class TokenPayload(BaseModel):
    """JWT token payload structure for Supabase tokens."""

    model_config = ConfigDict(from_attributes=True)

    sub: str = Field(description="Subject - the user's UUID")
    email: str | None = Field(default=None, description="User's email address")
    role: str | None = Field(default=None, description="User's role")
    full_name: str | None = Field(default=None, description="Display name from user_metadata")
    exp: int = Field(description="Expiration timestamp (Unix epoch)")
    iat: int = Field(description="Issued at timestamp (Unix epoch)")
    aud: str | None = Field(default=None, description="Audience - intended recipient")
    iss: str | None = Field(default=None, description="Issuer - token issuer URL")

    @property
    def expiration_datetime(self) -> datetime:
        """Get expiration as datetime object."""
        return datetime.fromtimestamp(self.exp)

    def to_user_context(self) -> UserContext:
        """Convert token payload to UserContext.

        Returns:
            UserContext: User context derived from token claims.
        """
        return UserContext(
            user_id=UUID(self.sub),
            email=self.email,
            display_name=self.full_name,
            role=self.role,
        )


class AuthenticatedResponse(BaseModel):
    """Response for authenticated health endpoint."""

    model_config = ConfigDict(from_attributes=True)

    authenticated: bool = Field(default=True, description="Authentication status")
    user_id: str = Field(description="Authenticated user ID")
    email: str | None = Field(default=None, description="User email if available")


# Credential requests


class SignupRequest(BaseModel):
    """Request schema for user signup."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., description="User's password", min_length=8, max_length=100)
    display_name: str = Field(..., description="User's display name", min_length=1, max_length=255)


class LoginRequest(BaseModel):
    """Request schema for password sign-in."""

    email: EmailStr = Field(..., description="User's email address")
    password: str = Field(..., description="User's password")


class OAuthRequest(BaseModel):
    """Request schema for third-party sign-in."""

    provider: str = Field(default="google", description="OAuth provider name")


class VerifyCodeRequest(BaseModel):
    """Request schema for one-time code verification."""

    email: EmailStr = Field(..., description="Email the code was sent to")
    code: str = Field(..., description="One-time code from the verification email")


class ResendCodeRequest(BaseModel):
    """Request schema for resending a one-time code."""

    email: EmailStr = Field(..., description="Email to resend the code to")


# Credential responses


class SessionResponse(BaseModel):
    """Identity and tokens after a credential operation."""

    user_id: str = Field(description="Authenticated user ID")
    email: str | None = Field(default=None, description="User's email address")
    display_name: str | None = Field(default=None, description="User's display name")
    access_token: str | None = Field(default=None, description="JWT access token, absent until verified")
    refresh_token: str | None = Field(default=None, description="Refresh token")
    expires_in: int | None = Field(default=None, description="Access token lifetime in seconds")
    verification_required: bool = Field(default=False, description="True when a one-time code must be verified first")


class OAuthResponse(BaseModel):
    """Provider URL to send the browser to."""

    provider: str = Field(description="OAuth provider name")
    url: str = Field(description="Authorization URL")


class SignOutResponse(BaseModel):
    """Sign-out result with the unauthenticated entry point."""

    message: str = Field(description="Status message")
    redirect_url: str = Field(description="Where the client should navigate next")


class ResendCodeResponse(BaseModel):
    """Result of a one-time code resend."""

    email_sent: bool = Field(description="Whether the code was sent")
    retry_after: int = Field(description="Seconds until another resend is allowed")
