"""Bearer token helpers shared by the HTTP and WebSocket entry points."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from lifehub.core.errors import AuthenticationError
from lifehub.core.settings import settings


@dataclass(frozen=True)
class TokenClaims:
    """Identity asserted by a verified access token."""

    user_id: int
    username: str | None


def create_access_token(
    user_id: int,
    username: str | None = None,
    expires_minutes: int | None = None,
) -> str:
    """Create a JWT access token for ``user_id``."""
    minutes = expires_minutes if expires_minutes is not None else settings.access_token_expire_minutes
    to_encode: dict[str, object] = {
        "sub": str(user_id),
        "exp": datetime.now(UTC) + timedelta(minutes=minutes),
    }
    if username is not None:
        to_encode["username"] = username
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_access_token(token: str | None) -> TokenClaims:
    """Verify ``token`` and return its claims.

    Raises:
        AuthenticationError: If the token is missing, expired, forged or lacks a subject.
    """
    if not token:
        raise AuthenticationError("Authentication error: No token provided")
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as err:
        raise AuthenticationError("Authentication error: Invalid token") from err

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError) as err:
        raise AuthenticationError("Authentication error: Invalid token") from err
    return TokenClaims(user_id=user_id, username=payload.get("username"))
