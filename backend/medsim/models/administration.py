"""Medication administration event model."""
from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime

from sqlalchemy import Enum, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from medsim.db.base import Base
from medsim.db.types import UTCDateTime


class AdministrationStatus(str, enum.Enum):
    """Outcome recorded at the bedside."""

    COLLECTED = "collected"
    ADMINISTERED = "administered"
    WARNING = "warning"
    ERROR = "error"


class Administration(Base):
    """Append-only record of one dosing event."""

    __tablename__ = "administrations"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medicine_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medicines.id"), nullable=False
    )
    prescription_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("prescriptions.id", ondelete="CASCADE"), index=True
    )
    status: Mapped[AdministrationStatus] = mapped_column(
        Enum(AdministrationStatus), nullable=False
    )
    administered_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL")
    )
    administered_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=lambda: datetime.now(UTC)
    )
    message: Mapped[str] = mapped_column(String(1024), nullable=False, default="")
