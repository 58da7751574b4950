"""Virtual clock schemas."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ClockAdvanceRequest(BaseModel):
    """Jump the training clock forward."""

    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0)
    pin: str | None = None


class ClockResetRequest(BaseModel):
    """Return the training clock to real time."""

    pin: str | None = None


class ClockStatusRead(BaseModel):
    """Current virtual clock snapshot."""

    current_time: datetime
    is_simulating: bool
    offset_hours: int
    offset_minutes: int

    model_config = ConfigDict(from_attributes=True)


class ClockChangeResponse(BaseModel):
    """Response for clock jumps and resets."""

    message: str
    current_time: datetime
    status: ClockStatusRead
