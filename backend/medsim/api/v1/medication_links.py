"""Medication link (protocol template) endpoints."""
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.api import deps
from medsim.api.errors import service_http_error
from medsim.models.user import User
from medsim.schemas.medication_link import (
    MedicationLinkCreate,
    MedicationLinkRead,
    MedicationLinkUpdate,
)
from medsim.security.permissions import STAFF_ROLES, require_roles
from medsim.services import medication_link_service
from medsim.services.errors import ProtocolError

router = APIRouter(prefix="/medication-links")


async def _get_link_or_404(session: AsyncSession, link_id: uuid.UUID):
    link = await medication_link_service.get_medication_link(session, link_id)
    if link is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "NOT_FOUND", "message": "Medication link not found"},
        )
    return link


@router.get("", response_model=list[MedicationLinkRead], summary="List medication links")
async def list_medication_links(
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
    trigger_medicine_id: Annotated[uuid.UUID | None, Query()] = None,
) -> list[MedicationLinkRead]:
    if trigger_medicine_id is not None:
        links = await medication_link_service.list_links_by_trigger(
            session, trigger_medicine_id=trigger_medicine_id
        )
    else:
        links = await medication_link_service.list_medication_links(session)
    return [MedicationLinkRead.model_validate(link) for link in links]


@router.post(
    "",
    response_model=MedicationLinkRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create medication link",
)
async def create_medication_link(
    payload: MedicationLinkCreate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationLinkRead:
    require_roles(current_user, STAFF_ROLES)
    try:
        link = await medication_link_service.create_medication_link(
            session, payload, acting_user_id=current_user.id
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
    return MedicationLinkRead.model_validate(link)


@router.get(
    "/{link_id}", response_model=MedicationLinkRead, summary="Get medication link"
)
async def get_medication_link(
    link_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationLinkRead:
    link = await _get_link_or_404(session, link_id)
    return MedicationLinkRead.model_validate(link)


@router.patch(
    "/{link_id}", response_model=MedicationLinkRead, summary="Update medication link"
)
async def update_medication_link(
    link_id: uuid.UUID,
    payload: MedicationLinkUpdate,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> MedicationLinkRead:
    require_roles(current_user, STAFF_ROLES)
    link = await _get_link_or_404(session, link_id)
    try:
        link = await medication_link_service.update_medication_link(
            session, link=link, payload=payload, acting_user_id=current_user.id
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
    return MedicationLinkRead.model_validate(link)


@router.delete(
    "/{link_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete medication link",
)
async def delete_medication_link(
    link_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(deps.get_db_session)],
    current_user: Annotated[User, Depends(deps.get_current_active_user)],
) -> None:
    require_roles(current_user, STAFF_ROLES)
    link = await _get_link_or_404(session, link_id)
    try:
        await medication_link_service.delete_medication_link(
            session, link=link, acting_user_id=current_user.id
        )
    except ProtocolError as exc:
        raise service_http_error(exc) from exc
