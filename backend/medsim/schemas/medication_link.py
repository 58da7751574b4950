"""Medication link schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from medsim.models.medication_link import StartAfter


class MedicationLinkBase(BaseModel):
    """Shared medication link fields."""

    trigger_medicine_id: uuid.UUID
    follow_medicine_id: uuid.UUID
    follow_frequency: str = Field(min_length=1, max_length=120)
    follow_duration_hours: int = Field(gt=0)
    delay_minutes: int = Field(default=0, ge=0)
    start_after: StartAfter = StartAfter.AFTER_FIRST_ADMIN
    required_prompt: bool = True
    default_dose_override: str | None = None


class MedicationLinkCreate(MedicationLinkBase):
    """Payload for creating a medication link."""


class MedicationLinkUpdate(BaseModel):
    """Mutable medication link fields."""

    trigger_medicine_id: uuid.UUID | None = None
    follow_medicine_id: uuid.UUID | None = None
    follow_frequency: str | None = Field(default=None, min_length=1, max_length=120)
    follow_duration_hours: int | None = Field(default=None, gt=0)
    delay_minutes: int | None = Field(default=None, ge=0)
    start_after: StartAfter | None = None
    required_prompt: bool | None = None
    default_dose_override: str | None = None


class MedicationLinkRead(MedicationLinkBase):
    """Serialized medication link."""

    id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
