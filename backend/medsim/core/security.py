"""PIN hashing and bearer tokens for the training floor.

Users sign in with a short numeric PIN rather than a password, and
instructors re-enter the same PIN to confirm sensitive actions. Tokens carry
the user's role so audit entries and logs can be read without a user lookup.
"""

import re
from datetime import UTC, datetime, timedelta
from typing import Any

import bcrypt
from jose import jwt

from medsim.core.config import get_settings

PIN_PATTERN = re.compile(r"^\d{4,8}$")


def validate_pin(pin: str) -> str:
    """Return ``pin`` unchanged, or raise ``ValueError`` if it is not 4-8 digits."""
    if not PIN_PATTERN.fullmatch(pin or ""):
        raise ValueError("PIN must be 4 to 8 digits")
    return pin


def get_pin_hash(pin: str) -> str:
    """Hash a PIN for storage using bcrypt."""
    return bcrypt.hashpw(validate_pin(pin).encode(), bcrypt.gensalt()).decode()


def verify_pin(plain_pin: str, hashed_pin: str) -> bool:
    """Check an entered PIN against the stored hash.

    Entries that cannot be a PIN are refused without touching bcrypt.
    """
    if not PIN_PATTERN.fullmatch(plain_pin or ""):
        return False
    try:
        return bcrypt.checkpw(plain_pin.encode(), hashed_pin.encode())
    except (ValueError, TypeError):  # malformed stored hash
        return False


def create_access_token(
    subject: str, role: str, expires_delta: timedelta | None = None
) -> str:
    """Issue a JWT for ``subject`` (a user id) carrying its ``role``."""
    settings = get_settings()
    issued_at = datetime.now(UTC)
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_expire_minutes)
    claims: dict[str, Any] = {
        "sub": subject,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + expires_delta,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """Decode a JWT; raises ``JWTError`` when invalid, expired or missing ``sub``."""
    settings = get_settings()
    return jwt.decode(
        token,
        settings.jwt_secret_key,
        algorithms=[settings.jwt_algorithm],
        options={"require_sub": True, "require_exp": True},
    )
