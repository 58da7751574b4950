"""Authentication service helpers."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.security import create_access_token, verify_pin
from medsim.models.user import User
from medsim.services import user_service


async def authenticate_user(
    session: AsyncSession, username: str, pin: str
) -> User | None:
    """Validate credentials and return a user if correct."""
    user = await user_service.get_user_by_username(session, username=username.lower())
    if user is None:
        return None
    if not verify_pin(pin, user.hashed_pin):
        return None
    return user


async def create_access_token_for_user(user: User) -> str:
    """Generate a JWT for a user."""
    return create_access_token(str(user.id), role=user.role.value)
