"""Prescription model."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medsim.db.base import Base
from medsim.db.types import UTCDateTime
from medsim.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from medsim.models.medicine import Medicine
    from medsim.models.patient import Patient


class ScheduleState(str, enum.Enum):
    """Whether a prescription window is open for administration."""

    INACTIVE = "inactive"
    ACTIVE = "active"


class Prescription(TimestampMixin, Base):
    """A per-patient medication order.

    Follow-up prescriptions created by a protocol start without a window
    (``start_date``/``end_date`` unset) and are opened when the trigger dose
    is given.
    """

    __tablename__ = "prescriptions"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medicine_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medicines.id"), nullable=False
    )
    dosage: Mapped[str] = mapped_column(String(120), nullable=False)
    periodicity: Mapped[str] = mapped_column(String(120), nullable=False)
    duration: Mapped[str | None] = mapped_column(String(120))
    route: Mapped[str] = mapped_column(String(32), nullable=False, default="Oral")
    start_date: Mapped[datetime | None] = mapped_column(UTCDateTime())
    end_date: Mapped[datetime | None] = mapped_column(UTCDateTime())
    total_doses: Mapped[int | None] = mapped_column(Integer())
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    patient: Mapped["Patient"] = relationship("Patient", back_populates="prescriptions")
    medicine: Mapped["Medicine"] = relationship("Medicine")

    @property
    def schedule_state(self) -> ScheduleState:
        if self.start_date is None or self.end_date is None:
            return ScheduleState.INACTIVE
        return ScheduleState.ACTIVE
