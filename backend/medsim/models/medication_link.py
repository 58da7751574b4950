"""Medication link (protocol template) model."""
from __future__ import annotations

import enum
import uuid

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from medsim.db.base import Base
from medsim.models.mixins import TimestampMixin


class StartAfter(str, enum.Enum):
    """When the follow-up window is meant to open."""

    AFTER_FIRST_ADMIN = "after_first_admin"
    IMMEDIATE = "immediate"


class MedicationLink(TimestampMixin, Base):
    """If the trigger medicine is given, offer the follow-up after a delay."""

    __tablename__ = "medication_links"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    trigger_medicine_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medicines.id"), nullable=False, index=True
    )
    follow_medicine_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medicines.id"), nullable=False
    )
    follow_frequency: Mapped[str] = mapped_column(String(120), nullable=False)
    follow_duration_hours: Mapped[int] = mapped_column(Integer(), nullable=False)
    delay_minutes: Mapped[int] = mapped_column(Integer(), nullable=False, default=0)
    start_after: Mapped[StartAfter] = mapped_column(
        Enum(StartAfter), nullable=False, default=StartAfter.AFTER_FIRST_ADMIN
    )
    required_prompt: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    default_dose_override: Mapped[str | None] = mapped_column(String(120))
