"""Medication administration endpoints."""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.api.errors import rejection_http_error, service_http_error
from medsim.core.clock import VirtualClock
from medsim.models.user import User
from medsim.schemas.administration import (
    AdministrationCreate,
    AdministrationRead,
    AdministrationRecorded,
)
from medsim.schemas.auth import PinConfirmation
from medsim.security.permissions import require_instructor_pin
from medsim.services import administration_guard, administration_service
from medsim.services.errors import ProtocolError

router = APIRouter()


@router.post(
    "/administrations",
    response_model=AdministrationRecorded,
    status_code=status.HTTP_201_CREATED,
    summary="Record a medication administration",
)
async def record_administration(
    payload: AdministrationCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    clock: Annotated[VirtualClock, Depends(deps.get_clock)],
) -> AdministrationRecorded:
    acting_user_id = current_user.id
    decision = await administration_guard.evaluate_administration(
        session, payload, clock=clock, acting_user_id=acting_user_id
    )
    if not decision.allowed:
        raise rejection_http_error(decision)
    result = await administration_service.record_administration(
        session, payload, clock=clock, acting_user_id=acting_user_id
    )
    return AdministrationRecorded(
        administration=AdministrationRead.model_validate(result.administration),
        activated_protocol_ids=result.activated_protocol_ids,
        protocol_activation_warning=result.protocol_activation_warning,
    )


@router.get(
    "/patients/{patient_id}/administrations",
    response_model=list[AdministrationRead],
    summary="List patient administrations",
)
async def list_administrations(
    patient_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[AdministrationRead]:
    administrations = await administration_service.list_administrations_for_patient(
        session, patient_id=patient_id
    )
    return [AdministrationRead.model_validate(obj) for obj in administrations]


@router.delete(
    "/administrations/{administration_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an administration record",
)
async def delete_administration(
    administration_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    confirmation: Annotated[PinConfirmation | None, Body()] = None,
) -> None:
    require_instructor_pin(current_user, confirmation.pin if confirmation else None)
    try:
        await administration_service.delete_administration(
            session,
            administration_id=administration_id,
            acting_user_id=current_user.id,
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
