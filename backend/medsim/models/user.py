"""User model for instructors, students and administrators."""
from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from medsim.db.base import Base
from medsim.models.mixins import TimestampMixin


class UserRole(str, enum.Enum):
    """Role enumeration for simulator permissions."""

    ADMIN = "admin"
    INSTRUCTOR = "instructor"
    STUDENT = "student"


class User(TimestampMixin, Base):
    """A simulator user who signs in with a username and PIN."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    username: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    hashed_pin: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[UserRole] = mapped_column(Enum(UserRole), nullable=False)
