"""Medication link (protocol template) registry."""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.config import get_settings
from medsim.models.medication_link import MedicationLink
from medsim.models.medicine import Medicine
from medsim.models.protocol_instance import ProtocolInstance
from medsim.schemas.medication_link import MedicationLinkCreate, MedicationLinkUpdate
from medsim.services import audit_service
from medsim.services.errors import InvalidLinkError, LinkInUseError, NotFoundError

logger = logging.getLogger(__name__)


async def list_medication_links(session: AsyncSession) -> list[MedicationLink]:
    """Return every medication link."""
    stmt: Select[tuple[MedicationLink]] = select(MedicationLink).order_by(
        MedicationLink.created_at
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_links_by_trigger(
    session: AsyncSession, *, trigger_medicine_id: uuid.UUID
) -> list[MedicationLink]:
    """Return the protocols offered when ``trigger_medicine_id`` is prescribed."""
    result = await session.execute(
        select(MedicationLink)
        .where(MedicationLink.trigger_medicine_id == trigger_medicine_id)
        .order_by(MedicationLink.created_at)
    )
    return list(result.scalars().all())


async def get_medication_link(
    session: AsyncSession, link_id: uuid.UUID
) -> MedicationLink | None:
    return await session.get(MedicationLink, link_id)


async def count_instances_for_link(session: AsyncSession, link_id: uuid.UUID) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(ProtocolInstance)
        .where(ProtocolInstance.link_id == link_id)
    )
    return int(result.scalar_one())


async def _validate_medicines(
    session: AsyncSession,
    *,
    trigger_medicine_id: uuid.UUID,
    follow_medicine_id: uuid.UUID,
) -> None:
    for medicine_id in {trigger_medicine_id, follow_medicine_id}:
        if await session.get(Medicine, medicine_id) is None:
            raise NotFoundError("Medicine not found", medicine_id=str(medicine_id))
    if (
        trigger_medicine_id == follow_medicine_id
        and not get_settings().allow_self_referential_links
    ):
        raise InvalidLinkError(
            "Trigger and follow-up medicines must be different",
            medicine_id=str(trigger_medicine_id),
        )


async def create_medication_link(
    session: AsyncSession,
    payload: MedicationLinkCreate,
    *,
    acting_user_id: uuid.UUID | None = None,
) -> MedicationLink:
    """Create a protocol template."""
    await _validate_medicines(
        session,
        trigger_medicine_id=payload.trigger_medicine_id,
        follow_medicine_id=payload.follow_medicine_id,
    )
    link = MedicationLink(**payload.model_dump())
    session.add(link)
    await session.flush()
    await audit_service.record_event(
        session,
        event_type="medication_link.created",
        user_id=acting_user_id,
        entity_type="medication_link",
        entity_id=link.id,
        payload=payload.model_dump(mode="json"),
        commit=False,
    )
    await session.commit()
    await session.refresh(link)
    return link


async def update_medication_link(
    session: AsyncSession,
    *,
    link: MedicationLink,
    payload: MedicationLinkUpdate,
    acting_user_id: uuid.UUID | None = None,
) -> MedicationLink:
    """Update a protocol template in place."""
    updates = payload.model_dump(exclude_unset=True)
    await _validate_medicines(
        session,
        trigger_medicine_id=updates.get("trigger_medicine_id", link.trigger_medicine_id),
        follow_medicine_id=updates.get("follow_medicine_id", link.follow_medicine_id),
    )
    for field, value in updates.items():
        setattr(link, field, value)
    await audit_service.record_event(
        session,
        event_type="medication_link.updated",
        user_id=acting_user_id,
        entity_type="medication_link",
        entity_id=link.id,
        payload=payload.model_dump(mode="json", exclude_unset=True),
        commit=False,
    )
    await session.commit()
    await session.refresh(link)
    return link


async def delete_medication_link(
    session: AsyncSession,
    *,
    link: MedicationLink,
    acting_user_id: uuid.UUID | None = None,
) -> None:
    """Delete a link unless protocol instances still reference it."""
    blocking = await count_instances_for_link(session, link.id)
    if blocking:
        logger.warning(
            "Refusing to delete medication link %s: %s protocol instance(s) reference it",
            link.id,
            blocking,
        )
        raise LinkInUseError(
            "Cannot delete medication link with existing protocol instances",
            active_instances=blocking,
        )
    link_id = link.id
    await session.delete(link)
    await audit_service.record_event(
        session,
        event_type="medication_link.deleted",
        user_id=acting_user_id,
        entity_type="medication_link",
        entity_id=link_id,
        commit=False,
    )
    await session.commit()
