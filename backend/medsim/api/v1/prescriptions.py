"""Prescription endpoints."""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.api.errors import service_http_error
from medsim.models.user import User
from medsim.schemas.medication_link import MedicationLinkRead
from medsim.schemas.prescription import (
    PrescriptionCreate,
    PrescriptionCreated,
    PrescriptionRead,
    PrescriptionSummary,
)
from medsim.security.permissions import require_instructor_pin
from medsim.services import (
    administration_service,
    medication_link_service,
    prescription_service,
)
from medsim.services.errors import ProtocolError

router = APIRouter(prefix="/patients/{patient_id}/prescriptions")


@router.get(
    "", response_model=list[PrescriptionSummary], summary="List patient prescriptions"
)
async def list_prescriptions(
    patient_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> list[PrescriptionSummary]:
    prescriptions = await prescription_service.list_prescriptions_for_patient(
        session, patient_id=patient_id
    )
    administrations = await administration_service.list_administrations_for_patient(
        session, patient_id=patient_id
    )
    return [
        PrescriptionSummary(
            **PrescriptionRead.model_validate(prescription).model_dump(),
            doses_remaining=prescription_service.calculate_remaining_doses(
                prescription, administrations
            ),
        )
        for prescription in prescriptions
    ]


@router.post(
    "",
    response_model=PrescriptionCreated,
    status_code=status.HTTP_201_CREATED,
    summary="Write a prescription",
)
async def create_prescription(
    patient_id: uuid.UUID,
    payload: PrescriptionCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> PrescriptionCreated:
    require_instructor_pin(current_user, payload.pin)
    try:
        prescription = await prescription_service.create_prescription(
            session,
            patient_id=patient_id,
            payload=payload,
            acting_user_id=current_user.id,
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
    links = await medication_link_service.list_links_by_trigger(
        session, trigger_medicine_id=prescription.medicine_id
    )
    return PrescriptionCreated(
        **PrescriptionRead.model_validate(prescription).model_dump(),
        available_protocols=[MedicationLinkRead.model_validate(link) for link in links],
    )
