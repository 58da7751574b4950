"""Role and PIN helpers for explicit authorization checks."""

from __future__ import annotations

from fastapi import HTTPException, status

from medsim.core.security import verify_pin
from medsim.models.user import User, UserRole

STAFF_ROLES = {UserRole.ADMIN, UserRole.INSTRUCTOR}


def require_roles(user: User, allowed: set[UserRole]) -> None:
    """Raise HTTP 403 if a user is not a member of the allowed role set."""

    if user.role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


def require_instructor_pin(user: User, pin: str | None) -> None:
    """Gate a sensitive action on staff role plus a re-entered PIN.

    Administrators are trusted without the PIN; instructors must supply their
    own.
    """

    require_roles(user, STAFF_ROLES)
    if user.role == UserRole.ADMIN:
        return
    if not pin:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "PIN_REQUIRED", "message": "Instructor PIN is required"},
        )
    if not verify_pin(pin, user.hashed_pin):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "INVALID_PIN", "message": "Invalid instructor PIN"},
        )


__all__ = ["STAFF_ROLES", "require_instructor_pin", "require_roles"]
