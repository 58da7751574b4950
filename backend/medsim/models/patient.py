"""Patient model (training chart subject)."""
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from medsim.db.base import Base
from medsim.models.mixins import TimestampMixin

if TYPE_CHECKING:  # pragma: no cover - typing only imports
    from medsim.models.prescription import Prescription


class Patient(TimestampMixin, Base):
    """A simulated patient; chart details are managed outside this service."""

    __tablename__ = "patients"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mrn: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    bed: Mapped[str | None] = mapped_column(String(32))
    allergies: Mapped[str | None] = mapped_column(String(1024))

    prescriptions: Mapped[list["Prescription"]] = relationship(
        "Prescription", back_populates="patient", cascade="all, delete-orphan"
    )
