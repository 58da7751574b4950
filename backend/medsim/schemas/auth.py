"""Authentication schemas."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, ConfigDict

from medsim.models.user import UserRole


class Token(BaseModel):
    """Bearer token response."""

    access_token: str
    token_type: str = "bearer"


class UserRead(BaseModel):
    """Public view of a simulator user."""

    id: uuid.UUID
    username: str
    role: UserRole

    model_config = ConfigDict(from_attributes=True)


class PinConfirmation(BaseModel):
    """Instructors re-enter their PIN for sensitive actions; admins may omit it."""

    pin: str | None = None
