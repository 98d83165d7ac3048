"""Session provider: owns the authenticated identity and credential lifecycle."""

import asyncio
import logging
import re
from typing import Any, Callable
from uuid import UUID

from src.api.middleware.error_handler import AuthError, AuthErrorCode
from src.core.config import get_settings
from src.core.cooldown import CooldownRegistry, get_cooldown_registry
from src.core.supabase import create_auth_client
from src.schemas.auth import UserContext

logger = logging.getLogger(__name__)

IdentityObserver = Callable[[UserContext | None], None]


def identity_from_user(user: Any) -> UserContext:
    """Build a UserContext from a Supabase auth user."""
    metadata = getattr(user, "user_metadata", None) or {}
    return UserContext(
        user_id=UUID(str(user.id)),
        email=getattr(user, "email", None),
        display_name=metadata.get("full_name"),
        role=getattr(user, "role", None),
    )


def _auth_error(action: str, error: Exception) -> AuthError:
    """Translate a Supabase auth failure into an AuthError with a readable message."""
    error_msg = str(error)
    lowered = error_msg.lower()

    if "invalid" in lowered and "credentials" in lowered:
        return AuthError("Invalid email or password", AuthErrorCode.INVALID_CREDENTIALS)
    if "email not confirmed" in lowered or "not verified" in lowered:
        return AuthError("Please verify your email before signing in", AuthErrorCode.INVALID_CREDENTIALS)
    if "already registered" in lowered or "already exists" in lowered:
        return AuthError("An account with this email already exists", AuthErrorCode.INVALID_CREDENTIALS)
    if "expired" in lowered or ("invalid" in lowered and ("otp" in lowered or "token" in lowered)):
        return AuthError("Invalid or expired verification code", AuthErrorCode.INVALID_CODE)
    if "rate limit" in lowered or "security purposes" in lowered:
        return AuthError("Too many requests. Please wait before trying again.", AuthErrorCode.COOLDOWN_ACTIVE)

    return AuthError(f"{action} failed: {error_msg}", AuthErrorCode.PROVIDER_ERROR)


def _running_on(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


class SessionProvider:
    """Owns the current identity and notifies observers when it changes.

    Wraps an isolated Supabase auth client. Identity changes made by the
    client itself (token refresh, expiry, sign-out elsewhere) arrive through
    on_auth_state_change and are forwarded to every subscriber.
    """

    def __init__(
        self,
        client: Any | None = None,
        identity: UserContext | None = None,
        access_token: str | None = None,
        cooldowns: CooldownRegistry | None = None,
        on_navigate: Callable[[str], None] | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            client: Supabase client to use for auth. A fresh isolated one is created if omitted.
            identity: Identity already established elsewhere (e.g. from a verified JWT).
            access_token: The JWT that established `identity`, used to revoke it on sign-out.
            cooldowns: Registry guarding one-time code resends.
            on_navigate: Called with the entry point path after sign-out.
        """
        self.client = client or create_auth_client()
        self.settings = get_settings()
        self.cooldowns = cooldowns or get_cooldown_registry()
        self.on_navigate = on_navigate
        self.access_token = access_token
        self.session: Any | None = None
        self._current_user = identity
        self._observers: list[IdentityObserver] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._subscription = self.client.auth.on_auth_state_change(self._handle_auth_event)

    @property
    def current_user(self) -> UserContext | None:
        return self._current_user

    def subscribe(self, observer: IdentityObserver) -> Callable[[], None]:
        """Register an identity observer.

        Returns:
            Callable that removes the observer.
        """
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def close(self) -> None:
        """Detach from the auth client and drop all observers."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self._observers.clear()

    def _set_user(self, user: UserContext | None) -> None:
        if user == self._current_user:
            return
        self._current_user = user
        logger.info("Identity changed: %s", user.user_id if user else None)
        for observer in list(self._observers):
            try:
                observer(user)
            except Exception:
                logger.exception("Identity observer failed")

    async def _call(self, method: Callable[..., Any], *args: Any) -> Any:
        """Run a blocking auth client call in a worker thread."""
        self._loop = asyncio.get_running_loop()
        return await asyncio.to_thread(method, *args)

    def _handle_auth_event(self, event: Any, session: Any | None) -> None:
        # Events raised inside a worker-thread call are replayed on the loop.
        loop = self._loop
        if loop is not None and not loop.is_closed() and not _running_on(loop):
            loop.call_soon_threadsafe(self._apply_auth_event, event, session)
            return
        self._apply_auth_event(event, session)

    def _apply_auth_event(self, event: Any, session: Any | None) -> None:
        logger.debug("Auth state change: %s", event)
        self.session = session
        user = getattr(session, "user", None)
        self._set_user(identity_from_user(user) if user else None)

    def _apply_response(self, response: Any) -> UserContext | None:
        if response.session is not None:
            self.session = response.session
        if response.user is not None and response.session is not None:
            self._set_user(identity_from_user(response.user))
        return identity_from_user(response.user) if response.user else None

    def session_tokens(self) -> dict[str, Any]:
        """Access/refresh tokens of the current session, if any."""
        if self.session is None:
            return {}
        return {
            "access_token": self.session.access_token,
            "refresh_token": self.session.refresh_token,
            "expires_in": self.session.expires_in or 3600,
        }

    async def restore(self) -> UserContext | None:
        """Load the persisted session from the auth client.

        Returns:
            UserContext | None: The restored identity.
        """
        try:
            session = await self._call(self.client.auth.get_session)
        except Exception as e:
            logger.error("Session restore failed: %s", e)
            raise _auth_error("Session restore", e) from e

        self.session = session
        user = getattr(session, "user", None)
        self._set_user(identity_from_user(user) if user else None)
        return self._current_user

    async def sign_in_with_password(self, email: str, password: str) -> UserContext:
        """Sign in with email and password.

        Raises:
            AuthError: If the credentials are rejected.
        """
        try:
            response = await self._call(
                self.client.auth.sign_in_with_password,
                {
                    "email": email,
                    "password": password,
                },
            )
        except Exception as e:
            logger.error("Sign-in failed: %s", e)
            raise _auth_error("Sign-in", e) from e

        if not response.user or not response.session:
            raise AuthError("Sign-in failed: no session created", AuthErrorCode.INVALID_CREDENTIALS)

        logger.info("User signed in: %s", response.user.id)
        return self._apply_response(response)

    async def sign_up_with_password(self, email: str, password: str, display_name: str) -> UserContext:
        """Create an account. A one-time code is emailed when verification is required.

        Starts the resend cooldown for the address so the code cannot be
        re-requested immediately.

        Raises:
            AuthError: If the account cannot be created.
        """
        try:
            response = await self._call(
                self.client.auth.sign_up,
                {
                    "email": email,
                    "password": password,
                    "options": {
                        "email_redirect_to": self.settings.auth_redirect_url,
                        "data": {"full_name": display_name},
                    },
                },
            )
        except Exception as e:
            logger.error("Sign-up failed: %s", e)
            raise _auth_error("Sign-up", e) from e

        if not response.user:
            raise AuthError("Failed to create user account", AuthErrorCode.PROVIDER_ERROR)

        logger.info("User signed up: %s", response.user.id)
        if response.session is None:
            self.cooldowns.get(email).start()
        return self._apply_response(response)

    async def sign_out(self) -> str:
        """End the session.

        Returns:
            str: The unauthenticated entry point to navigate to.

        Raises:
            AuthError: If the backend rejects the sign-out.
        """
        try:
            if self.session is None and self.access_token:
                # Identity came from a bearer token, not a client-held session.
                await self._call(self.client.auth.admin.sign_out, self.access_token)
            else:
                await self._call(self.client.auth.sign_out)
        except Exception as e:
            logger.error("Sign-out failed: %s", e)
            raise _auth_error("Sign-out", e) from e

        self.access_token = None
        self.session = None
        self._set_user(None)
        logger.info("User signed out")

        entry_point = self.settings.auth_entry_path
        if self.on_navigate is not None:
            self.on_navigate(entry_point)
        return entry_point

    async def sign_in_with_oauth(self, provider: str) -> str:
        """Start a third-party sign-in.

        Returns:
            str: Provider authorization URL to send the browser to.

        Raises:
            AuthError: If the provider is unknown or the request fails.
        """
        try:
            response = await self._call(
                self.client.auth.sign_in_with_oauth,
                {
                    "provider": provider,
                    "options": {"redirect_to": self.settings.oauth_redirect_url},
                },
            )
        except Exception as e:
            logger.error("OAuth sign-in failed for %s: %s", provider, e)
            raise _auth_error("OAuth sign-in", e) from e

        if not response.url:
            raise AuthError(f"No authorization URL returned for {provider}", AuthErrorCode.PROVIDER_ERROR)
        return response.url

    async def verify_one_time_code(self, email: str, code: str) -> UserContext:
        """Verify the sign-up code emailed to the user.

        Raises:
            AuthError: If the code is malformed, invalid or expired.
        """
        length = self.settings.otp_length
        if not re.fullmatch(rf"\d{{{length}}}", code or ""):
            raise AuthError(f"Verification code must be {length} digits", AuthErrorCode.INVALID_CODE)

        try:
            response = await self._call(
                self.client.auth.verify_otp,
                {
                    "email": email,
                    "token": code,
                    "type": "signup",
                },
            )
        except Exception as e:
            logger.error("Code verification failed: %s", e)
            raise _auth_error("Code verification", e) from e

        if not response.user:
            raise AuthError("Invalid or expired verification code", AuthErrorCode.INVALID_CODE)

        logger.info("Email verified for user: %s", response.user.id)
        return self._apply_response(response)

    async def resend_one_time_code(self, email: str) -> int:
        """Resend the sign-up code, respecting the per-address cooldown.

        Returns:
            int: Seconds until another resend is allowed.

        Raises:
            AuthError: If the cooldown is still running or the resend fails.
        """
        cooldown = self.cooldowns.get(email)
        if not cooldown.can_resend:
            raise AuthError(
                f"Please wait {cooldown.remaining}s before requesting a new code",
                AuthErrorCode.COOLDOWN_ACTIVE,
            )

        # Started before sending so a concurrent resend for the address is refused
        cooldown.start()
        try:
            await self._call(
                self.client.auth.resend,
                {
                    "type": "signup",
                    "email": email,
                },
            )
        except Exception as e:
            cooldown.reset()
            logger.error("Resend code failed: %s", e)
            raise _auth_error("Resend code", e) from e

        logger.info("Verification code resent to: %s", email)
        return cooldown.remaining
