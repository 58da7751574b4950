"""User data access helpers."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.security import get_pin_hash
from medsim.models.user import User, UserRole


async def get_user_by_username(session: AsyncSession, username: str) -> User | None:
    """Return a user by username."""
    result = await session.execute(select(User).where(User.username == username))
    return result.scalar_one_or_none()


async def create_user(
    session: AsyncSession, *, username: str, pin: str, role: UserRole
) -> User:
    """Persist a new user with a hashed PIN."""
    user = User(username=username.lower(), hashed_pin=get_pin_hash(pin), role=role)
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise exc
    await session.refresh(user)
    return user
