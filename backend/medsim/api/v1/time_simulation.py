"""Virtual clock (time travel) endpoints for instructors."""
from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.core.clock import VirtualClock
from medsim.models.user import User
from medsim.schemas.clock import (
    ClockAdvanceRequest,
    ClockChangeResponse,
    ClockResetRequest,
    ClockStatusRead,
)
from medsim.security.permissions import require_instructor_pin
from medsim.services import audit_service

router = APIRouter(prefix="/time-simulation")


def _status(clock: VirtualClock) -> ClockStatusRead:
    return ClockStatusRead.model_validate(clock.status())


@router.get("/status", response_model=ClockStatusRead, summary="Virtual clock status")
async def clock_status(
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    clock: Annotated[VirtualClock, Depends(deps.get_clock)],
) -> ClockStatusRead:
    return _status(clock)


@router.post(
    "/advance", response_model=ClockChangeResponse, summary="Advance the virtual clock"
)
async def advance_clock(
    payload: ClockAdvanceRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    clock: Annotated[VirtualClock, Depends(deps.get_clock)],
) -> ClockChangeResponse:
    require_instructor_pin(current_user, payload.pin)
    if payload.hours == 0 and payload.minutes == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "error": "INVALID_ADVANCE",
                "message": "Specify a positive number of hours or minutes",
            },
        )
    current = clock.advance(hours=payload.hours, minutes=payload.minutes)
    await audit_service.record_event(
        session,
        event_type="clock.advanced",
        user_id=current_user.id,
        entity_type="clock",
        description=f"Advanced {payload.hours}h {payload.minutes}m",
        payload={
            "hours": payload.hours,
            "minutes": payload.minutes,
            "current_time": current.isoformat(),
        },
    )
    return ClockChangeResponse(
        message=f"Time advanced by {payload.hours}h {payload.minutes}m",
        current_time=current,
        status=_status(clock),
    )


@router.post(
    "/reset", response_model=ClockChangeResponse, summary="Reset the virtual clock"
)
async def reset_clock(
    payload: ClockResetRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    clock: Annotated[VirtualClock, Depends(deps.get_clock)],
) -> ClockChangeResponse:
    require_instructor_pin(current_user, payload.pin)
    current = clock.reset()
    await audit_service.record_event(
        session,
        event_type="clock.reset",
        user_id=current_user.id,
        entity_type="clock",
        payload={"current_time": current.isoformat()},
    )
    return ClockChangeResponse(
        message="Time reset to real time", current_time=current, status=_status(clock)
    )
