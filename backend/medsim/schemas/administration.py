"""Administration schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, model_validator

from medsim.models.administration import AdministrationStatus

_PRESCRIPTION_REQUIRED = {
    AdministrationStatus.COLLECTED,
    AdministrationStatus.ADMINISTERED,
}


class AdministrationCreate(BaseModel):
    """Payload for recording a dose."""

    patient_id: uuid.UUID
    medicine_id: uuid.UUID
    prescription_id: uuid.UUID | None = None
    status: AdministrationStatus
    message: str = ""

    @model_validator(mode="after")
    def _require_prescription(self) -> "AdministrationCreate":
        if self.status in _PRESCRIPTION_REQUIRED and self.prescription_id is None:
            raise ValueError(
                "prescription_id is required for collected/administered records"
            )
        return self


class AdministrationRead(BaseModel):
    """Serialized administration."""

    id: uuid.UUID
    patient_id: uuid.UUID
    medicine_id: uuid.UUID
    prescription_id: uuid.UUID | None
    status: AdministrationStatus
    administered_by: uuid.UUID | None
    administered_at: datetime
    message: str

    model_config = ConfigDict(from_attributes=True)


class AdministrationRecorded(BaseModel):
    """Recorded administration with protocol activation outcome."""

    administration: AdministrationRead
    activated_protocol_ids: list[uuid.UUID]
    protocol_activation_warning: str | None = None
