"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="company-dashboard-api", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Frontend and auth redirects
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Frontend application URL used for OAuth callbacks",
    )
    auth_redirect_url: str = Field(
        default="http://localhost:3000/auth/callback",
        description="Redirect URL after email verification",
    )
    auth_entry_path: str = Field(
        default="/auth",
        description="Unauthenticated entry point clients are sent to after sign-out",
    )

    # Supabase
    supabase_url: str = Field(..., description="Supabase project URL")
    supabase_secret_key: str = Field(..., description="Supabase secret key for backend operations")
    supabase_signing_key_jwk: str = Field(..., description="Supabase signing key JWK (JSON string) for JWT token verification")
    jwt_audience: str = Field(default="authenticated", description="Expected aud claim of access tokens")

    # One-time codes
    otp_length: int = Field(default=6, description="Number of digits in an email one-time code")
    otp_resend_cooldown_seconds: int = Field(default=60, description="Seconds before a one-time code may be resent")

    # Invoices
    invoice_due_days: int = Field(default=30, description="Default days between invoice date and due date")
    invoice_currency: str = Field(default="USD", description="Currency used to format invoice totals")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def jwt_issuer(self) -> str:
        """Issuer claim Supabase Auth puts on this project's tokens."""
        return f"{self.supabase_url.rstrip('/')}/auth/v1"

    @property
    def oauth_redirect_url(self) -> str:
        """URL the OAuth provider sends the browser back to."""
        return f"{self.frontend_url.rstrip('/')}/auth/callback"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
