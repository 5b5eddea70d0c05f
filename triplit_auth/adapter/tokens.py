"""
Session token issuance.

When the auth framework creates a session, the adapter signs a JWT that the
Triplit client presents as its session token. Claims are copied from the
owning user:

- sub: user id
- email, emailVerified, name, role, username
- exp: session expiry, seconds since epoch

Tokens are HS256-signed with the UTF-8 encoded secret. This module does NOT
verify tokens; the Triplit server does.
"""

import logging
import math
from datetime import datetime, timezone
from typing import Any, Dict, Mapping, Optional, Union

import jwt

from triplit_auth.config import SECRET_ENV_VAR, get_env
from triplit_auth.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

# user field -> claim
USER_CLAIMS = {
    "id": "sub",
    "email": "email",
    "emailVerified": "emailVerified",
    "name": "name",
    "role": "role",
    "username": "username",
}

ExpiresAt = Union[datetime, int, float, str]


def resolve_secret(secret_key: Optional[str] = None) -> str:
    """
    Return the configured signing secret.

    Raises:
        ConfigurationError: If neither secret_key nor BETTER_AUTH_SECRET is set
    """
    secret = secret_key or get_env(SECRET_ENV_VAR)
    if not secret:
        raise ConfigurationError()
    return secret


def expires_at_to_epoch(expires_at: ExpiresAt) -> int:
    """
    Convert a session expiry to whole seconds since epoch (floored).

    Accepts a datetime (naive values are UTC), epoch milliseconds, or an
    ISO-8601 string.
    """
    if isinstance(expires_at, bool):
        raise ValueError(f"Invalid expiresAt: {expires_at!r}")

    if isinstance(expires_at, (int, float)):
        millis = expires_at
    else:
        if isinstance(expires_at, str):
            try:
                expires_at = datetime.fromisoformat(expires_at.replace("Z", "+00:00"))
            except ValueError as e:
                raise ValueError(f"Invalid expiresAt: {e}")
        if not isinstance(expires_at, datetime):
            raise ValueError(f"Invalid expiresAt: {expires_at!r}")
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        # Whole milliseconds, matching the resolution of stored timestamps
        millis = math.floor(expires_at.timestamp() * 1000)

    return math.floor(millis / 1000)


def build_session_claims(user: Mapping[str, Any], expires_at: ExpiresAt) -> Dict[str, Any]:
    """Build the token payload for a session owned by ``user``."""
    # Fields the user record lacks are left out of the payload
    claims = {claim: user[field] for field, claim in USER_CLAIMS.items() if field in user}
    claims["exp"] = expires_at_to_epoch(expires_at)
    return claims


def mint_session_token(user: Mapping[str, Any], expires_at: ExpiresAt, secret: str) -> str:
    """
    Sign a session token for ``user``.

    Args:
        user: Stored user entity
        expires_at: Session expiry
        secret: Signing secret

    Returns:
        Compact JWS string
    """
    claims = build_session_claims(user, expires_at)
    token = jwt.encode(claims, secret.encode("utf-8"), algorithm=ALGORITHM)

    logger.debug(
        "Issued session token",
        extra={"user_id": claims.get("sub"), "exp": claims["exp"]},
    )

    return token
