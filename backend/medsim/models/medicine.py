"""Medicine catalog model."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column

from medsim.db.base import Base
from medsim.models.mixins import TimestampMixin


class Medicine(TimestampMixin, Base):
    """A catalog entry stocked in the simulated dispensing cabinet."""

    __tablename__ = "medicines"

    id: Mapped[uuid.UUID] = mapped_column(
        primary_key=True, default=uuid.uuid4, unique=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str | None] = mapped_column(String(120))
    default_dose: Mapped[str] = mapped_column(
        String(120), nullable=False, default="Standard dose"
    )
    default_route: Mapped[str] = mapped_column(String(32), nullable=False, default="PO")
    default_frequency: Mapped[str] = mapped_column(
        String(120), nullable=False, default="once daily"
    )
    is_narcotic: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_prn: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
