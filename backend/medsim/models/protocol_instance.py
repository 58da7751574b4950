"""Per-patient protocol instance model."""
from __future__ import annotations

import enum
import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from medsim.db.base import Base
from medsim.db.types import UTCDateTime
from medsim.models.mixins import TimestampMixin


class ProtocolState(str, enum.Enum):
    """Activation is one-way: pending instances become activated, never back."""

    PENDING = "pending"
    ACTIVATED = "activated"


class ProtocolInstance(TimestampMixin, Base):
    """Binds one trigger prescription to one follow-up prescription under a link."""

    __tablename__ = "protocol_instances"
    __table_args__ = (
        UniqueConstraint(
            "link_id", "trigger_prescription_id", name="uq_protocol_link_trigger"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    patient_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("patients.id", ondelete="CASCADE"), nullable=False, index=True
    )
    link_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("medication_links.id"), nullable=False, index=True
    )
    trigger_prescription_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False
    )
    follow_prescription_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("prescriptions.id", ondelete="CASCADE"), nullable=False
    )
    activated_at: Mapped[datetime | None] = mapped_column(UTCDateTime())

    @property
    def state(self) -> ProtocolState:
        if self.activated_at is None:
            return ProtocolState.PENDING
        return ProtocolState.ACTIVATED
