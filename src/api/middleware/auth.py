"""JWT verification for Supabase-issued access tokens.

Tokens are ES256-signed by the project's asymmetric signing key. Only the
public JWK is configured here; audience and issuer must match the project.
"""

import json
from functools import lru_cache
from typing import Any

import jwt
from jwt import PyJWK

from src.api.middleware.error_handler import AuthError, AuthErrorCode
from src.core.config import get_settings
from src.schemas.auth import TokenPayload

ALGORITHMS = ["ES256"]
REQUIRED_CLAIMS = ["exp", "iat", "sub"]


@lru_cache
def get_signing_key() -> Any:
    """Load the public key from the signing key JWK setting.

    Returns:
        Public key for JWT verification.

    Raises:
        AuthError: If the JWK is missing or unparseable.
    """
    jwk_json = get_settings().supabase_signing_key_jwk
    if not jwk_json:
        raise AuthError("Signing key not configured", AuthErrorCode.INVALID_TOKEN)

    try:
        jwk_data = json.loads(jwk_json)
    except json.JSONDecodeError as e:
        raise AuthError(f"Invalid signing key JWK format: {e}", AuthErrorCode.INVALID_TOKEN) from e

    try:
        return PyJWK.from_dict(jwk_data).key
    except jwt.PyJWKError as e:
        raise AuthError(f"Unusable signing key: {e}", AuthErrorCode.INVALID_TOKEN) from e


def decode_jwt(token: str) -> TokenPayload:
    """Verify an access token and return its claims.

    Checks signature, expiry, audience and (when the token carries one)
    issuer. The display name is read from user_metadata.full_name.

    Args:
        token: The raw JWT.

    Returns:
        TokenPayload: Validated token payload.

    Raises:
        AuthError: With TOKEN_EXPIRED, INVALID_SIGNATURE or INVALID_TOKEN.
    """
    settings = get_settings()

    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            get_signing_key(),
            algorithms=ALGORITHMS,
            audience=settings.jwt_audience,
            options={"require": REQUIRED_CLAIMS},
        )
    except AuthError:
        raise
    except jwt.ExpiredSignatureError as e:
        raise AuthError("Token has expired", AuthErrorCode.TOKEN_EXPIRED) from e
    except jwt.InvalidSignatureError as e:
        raise AuthError("Invalid token signature", AuthErrorCode.INVALID_SIGNATURE) from e
    except jwt.MissingRequiredClaimError as e:
        raise AuthError(f"Token missing required claim: {e}", AuthErrorCode.INVALID_TOKEN) from e
    except jwt.InvalidAudienceError as e:
        raise AuthError("Token was not issued for this API", AuthErrorCode.INVALID_TOKEN) from e
    except jwt.DecodeError as e:
        raise AuthError(f"Invalid token format: {e}", AuthErrorCode.INVALID_TOKEN) from e
    except jwt.InvalidTokenError as e:
        raise AuthError(f"Token validation failed: {e}", AuthErrorCode.INVALID_TOKEN) from e

    # Supabase always sets iss; tokens minted elsewhere may not
    issuer = payload.get("iss")
    if issuer is not None and issuer != settings.jwt_issuer:
        raise AuthError("Token was issued by another project", AuthErrorCode.INVALID_TOKEN)

    metadata = payload.get("user_metadata") or {}
    return TokenPayload(
        sub=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        full_name=metadata.get("full_name"),
        exp=payload["exp"],
        iat=payload["iat"],
        aud=payload.get("aud"),
        iss=issuer,
    )
