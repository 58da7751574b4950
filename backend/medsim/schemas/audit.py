"""Audit event schemas."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict


class AuditEventRead(BaseModel):
    """Serialized audit event."""

    id: uuid.UUID
    user_id: uuid.UUID | None
    event_type: str
    entity_type: str | None
    entity_id: str | None
    description: str | None
    payload: dict[str, Any] | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
