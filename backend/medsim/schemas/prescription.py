"""Prescription schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from medsim.models.prescription import ScheduleState
from medsim.schemas.medication_link import MedicationLinkRead


class PrescriptionCreate(BaseModel):
    """Payload for writing a prescription."""

    medicine_id: uuid.UUID
    dosage: str = Field(min_length=1, max_length=120)
    periodicity: str = Field(min_length=1, max_length=120)
    duration: str | None = None
    route: str = "Oral"
    start_date: datetime | None = None
    end_date: datetime | None = None
    pin: str | None = None


class PrescriptionRead(BaseModel):
    """Serialized prescription."""

    id: uuid.UUID
    patient_id: uuid.UUID
    medicine_id: uuid.UUID
    dosage: str
    periodicity: str
    duration: str | None
    route: str
    start_date: datetime | None
    end_date: datetime | None
    total_doses: int | None
    completed: bool
    schedule_state: ScheduleState
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PrescriptionSummary(PrescriptionRead):
    """Prescription with the doses-remaining display text."""

    doses_remaining: str


class PrescriptionCreated(PrescriptionRead):
    """Created prescription plus the protocols that may be instantiated for it."""

    available_protocols: list[MedicationLinkRead] = Field(default_factory=list)
