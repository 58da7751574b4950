"""Protocol instance schemas."""

from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict

from medsim.models.protocol_instance import ProtocolState
from medsim.schemas.prescription import PrescriptionRead


class ProtocolOverrides(BaseModel):
    """Optional values replacing the link and medicine defaults."""

    dosage: str | None = None
    periodicity: str | None = None
    route: str | None = None
    duration: str | None = None


class ProtocolInstantiateRequest(BaseModel):
    """Instantiate a medication link against a trigger prescription."""

    link_id: uuid.UUID
    trigger_prescription_id: uuid.UUID
    overrides: ProtocolOverrides | None = None
    pin: str | None = None


class ProtocolInstanceRead(BaseModel):
    """Serialized protocol instance."""

    id: uuid.UUID
    patient_id: uuid.UUID
    link_id: uuid.UUID
    trigger_prescription_id: uuid.UUID
    follow_prescription_id: uuid.UUID
    activated_at: datetime | None
    state: ProtocolState
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ProtocolInstantiateResponse(BaseModel):
    """Result of a successful instantiation."""

    message: str
    follow_prescription: PrescriptionRead
    protocol_instance: ProtocolInstanceRead


class FollowUpCheckRequest(BaseModel):
    """Preview whether a prescription is a gated follow-up."""

    prescription_id: uuid.UUID


class FollowUpStatusRead(BaseModel):
    """Read-only follow-up preview used before attempting administration."""

    is_follow_up: bool
    trigger_administered: bool
    trigger_medicine_id: uuid.UUID | None = None
    trigger_prescription_id: uuid.UUID | None = None
