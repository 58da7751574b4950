"""Protocol instance endpoints."""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.api.errors import service_http_error
from medsim.models.user import User
from medsim.schemas.prescription import PrescriptionRead
from medsim.schemas.protocol import (
    FollowUpCheckRequest,
    FollowUpStatusRead,
    ProtocolInstanceRead,
    ProtocolInstantiateRequest,
    ProtocolInstantiateResponse,
)
from medsim.security.permissions import require_instructor_pin
from medsim.services import protocol_instance_service
from medsim.services.errors import ProtocolError

router = APIRouter(prefix="/patients/{patient_id}/protocols")


@router.get(
    "", response_model=list[ProtocolInstanceRead], summary="List protocol instances"
)
async def list_protocol_instances(
    patient_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[ProtocolInstanceRead]:
    instances = await protocol_instance_service.list_protocol_instances(
        session, patient_id=patient_id
    )
    return [ProtocolInstanceRead.model_validate(instance) for instance in instances]


@router.post(
    "/instantiate",
    response_model=ProtocolInstantiateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Instantiate a medication protocol",
)
async def instantiate_protocol(
    patient_id: uuid.UUID,
    payload: ProtocolInstantiateRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> ProtocolInstantiateResponse:
    require_instructor_pin(current_user, payload.pin)
    try:
        created = await protocol_instance_service.instantiate_protocol(
            session,
            patient_id=patient_id,
            link_id=payload.link_id,
            trigger_prescription_id=payload.trigger_prescription_id,
            overrides=payload.overrides,
            acting_user_id=current_user.id,
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
    return ProtocolInstantiateResponse(
        message="Protocol instantiated successfully",
        follow_prescription=PrescriptionRead.model_validate(created.follow_prescription),
        protocol_instance=ProtocolInstanceRead.model_validate(created.protocol_instance),
    )


@router.post(
    "/check-followup",
    response_model=FollowUpStatusRead,
    summary="Preview follow-up gating for a prescription",
)
async def check_follow_up(
    patient_id: uuid.UUID,
    payload: FollowUpCheckRequest,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> FollowUpStatusRead:
    try:
        result = await protocol_instance_service.check_follow_up_status(
            session, patient_id=patient_id, prescription_id=payload.prescription_id
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
    return FollowUpStatusRead(
        is_follow_up=result.is_follow_up,
        trigger_administered=result.trigger_administered,
        trigger_medicine_id=result.trigger_medicine_id,
        trigger_prescription_id=result.trigger_prescription_id,
    )
