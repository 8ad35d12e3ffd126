import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from dealer_analytics.core.config import settings

logger = logging.getLogger(__name__)


def create_token(
    subject: str,
    token_type: str,
    expires_delta: timedelta,
    extra_claims: dict[str, Any] | None = None,
) -> tuple[str, str]:
    """Create a JWT token with the given subject and expiration.

    Returns:
        tuple[str, str]: (token, jti) - The encoded JWT token and its unique identifier.
    """
    jti = str(uuid.uuid4())
    expire = datetime.now(timezone.utc) + expires_delta
    to_encode: dict[str, Any] = {
        **(extra_claims or {}),
        "sub": str(subject),
        "exp": expire,
        "type": token_type,
        "jti": jti,
    }
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)
    return token, jti


def create_access_token(
    subject: str | int,
    *,
    email: str | None = None,
    role: str | None = None,
    expires_delta: timedelta | None = None,
) -> tuple[str, str]:
    """Create an access token for a dashboard user.

    Returns:
        tuple[str, str]: (token, jti)
    """
    claims = {k: v for k, v in {"email": email, "role": role}.items() if v is not None}
    return create_token(
        subject=str(subject),
        token_type="access",
        expires_delta=expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        extra_claims=claims,
    )


def decode_token(token: str) -> dict[str, Any] | None:
    """Decode and validate a JWT token. Returns None if invalid."""
    try:
        payload: dict[str, Any] = jwt.decode(
            token,
            settings.SECRET_KEY,
            algorithms=[settings.ALGORITHM],
            options={"require": ["exp", "sub"]},
        )
        return payload
    except jwt.PyJWTError as e:
        logger.debug("Token rejected: %s", e)
        return None
