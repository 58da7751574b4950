"""Per-patient protocol instance tracking."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import Select, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.clock import as_utc
from medsim.models.administration import Administration, AdministrationStatus
from medsim.models.medication_link import MedicationLink
from medsim.models.medicine import Medicine
from medsim.models.prescription import Prescription
from medsim.models.protocol_instance import ProtocolInstance
from medsim.schemas.protocol import ProtocolOverrides
from medsim.services import audit_service
from medsim.services.errors import (
    DuplicateProtocolError,
    FollowMedicineNotFoundError,
    MedicineMismatchError,
    NotFoundError,
    PatientMismatchError,
)
from medsim.services.prescription_service import build_prescription

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class InstantiatedProtocol:
    """Follow-up prescription and the instance tying it to its trigger."""

    follow_prescription: Prescription
    protocol_instance: ProtocolInstance


@dataclass(slots=True, frozen=True)
class FollowUpStatus:
    """Read-only preview of whether a prescription is a gated follow-up."""

    is_follow_up: bool
    trigger_administered: bool
    trigger_medicine_id: uuid.UUID | None = None
    trigger_prescription_id: uuid.UUID | None = None


async def list_protocol_instances(
    session: AsyncSession, *, patient_id: uuid.UUID
) -> list[ProtocolInstance]:
    stmt: Select[tuple[ProtocolInstance]] = (
        select(ProtocolInstance)
        .where(ProtocolInstance.patient_id == patient_id)
        .order_by(ProtocolInstance.created_at)
    )
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def find_follow_up_instance(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    prescription_id: uuid.UUID,
) -> ProtocolInstance | None:
    """Return the instance whose follow-up is ``prescription_id``, if any."""
    result = await session.execute(
        select(ProtocolInstance)
        .where(
            ProtocolInstance.patient_id == patient_id,
            ProtocolInstance.follow_prescription_id == prescription_id,
        )
        .order_by(ProtocolInstance.created_at)
        .limit(1)
    )
    return result.scalars().first()


async def find_pending_by_trigger(
    session: AsyncSession,
    *,
    trigger_prescription_id: uuid.UUID,
    patient_id: uuid.UUID | None = None,
) -> list[ProtocolInstance]:
    """Instances still waiting for ``trigger_prescription_id`` to be given."""
    stmt = select(ProtocolInstance).where(
        ProtocolInstance.trigger_prescription_id == trigger_prescription_id,
        ProtocolInstance.activated_at.is_(None),
    )
    if patient_id is not None:
        stmt = stmt.where(ProtocolInstance.patient_id == patient_id)
    result = await session.execute(stmt.order_by(ProtocolInstance.created_at))
    return list(result.scalars().all())


async def latest_trigger_administration(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    trigger_prescription_id: uuid.UUID,
) -> Administration | None:
    """Most recent administered dose of the trigger prescription."""
    result = await session.execute(
        select(Administration)
        .where(
            Administration.patient_id == patient_id,
            Administration.prescription_id == trigger_prescription_id,
            Administration.status == AdministrationStatus.ADMINISTERED,
        )
        .order_by(Administration.administered_at.desc())
        .limit(1)
    )
    return result.scalars().first()


def _first_set(*values: str | None) -> str | None:
    """First value that is not ``None``; empty strings are kept."""
    for value in values:
        if value is not None:
            return value
    return None


async def instantiate_protocol(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    link_id: uuid.UUID,
    trigger_prescription_id: uuid.UUID,
    overrides: ProtocolOverrides | None = None,
    acting_user_id: uuid.UUID | None = None,
) -> InstantiatedProtocol:
    """Create an inactive follow-up prescription and its pending instance.

    Preconditions are checked in order and the first failure is raised:
    trigger prescription exists, belongs to the patient, the link exists,
    the trigger medicine matches the link, and the pair is not already
    instantiated.
    """
    trigger = await session.get(Prescription, trigger_prescription_id)
    if trigger is None:
        raise NotFoundError(
            "Trigger prescription not found",
            trigger_prescription_id=str(trigger_prescription_id),
        )
    if trigger.patient_id != patient_id:
        raise PatientMismatchError(
            "Trigger prescription does not belong to the specified patient"
        )

    link = await session.get(MedicationLink, link_id)
    if link is None:
        raise NotFoundError("Medication link not found", link_id=str(link_id))
    if trigger.medicine_id != link.trigger_medicine_id:
        raise MedicineMismatchError(
            "Trigger prescription medicine does not match protocol requirements"
        )

    duplicate = await session.execute(
        select(ProtocolInstance.id).where(
            ProtocolInstance.patient_id == patient_id,
            ProtocolInstance.link_id == link_id,
            ProtocolInstance.trigger_prescription_id == trigger_prescription_id,
        )
    )
    if duplicate.first() is not None:
        raise DuplicateProtocolError(
            "Protocol has already been instantiated for this trigger prescription"
        )

    follow_medicine = await session.get(Medicine, link.follow_medicine_id)
    if follow_medicine is None:
        raise FollowMedicineNotFoundError("Follow-up medicine not found")

    overrides = overrides or ProtocolOverrides()
    follow_prescription = build_prescription(
        patient_id=patient_id,
        medicine_id=link.follow_medicine_id,
        dosage=_first_set(
            overrides.dosage, link.default_dose_override, follow_medicine.default_dose
        ),
        periodicity=_first_set(overrides.periodicity, link.follow_frequency),
        duration=_first_set(
            overrides.duration, f"{link.follow_duration_hours} hours"
        ),
        route=_first_set(overrides.route, follow_medicine.default_route),
    )
    session.add(follow_prescription)
    await session.flush()

    instance = ProtocolInstance(
        patient_id=patient_id,
        link_id=link_id,
        trigger_prescription_id=trigger_prescription_id,
        follow_prescription_id=follow_prescription.id,
        activated_at=None,
    )
    session.add(instance)
    try:
        await session.flush()
    except IntegrityError as exc:
        await session.rollback()
        raise DuplicateProtocolError(
            "Protocol has already been instantiated for this trigger prescription"
        ) from exc

    await audit_service.record_event(
        session,
        event_type="protocol_instance.created",
        user_id=acting_user_id,
        entity_type="protocol_instance",
        entity_id=instance.id,
        payload={
            "patient_id": str(patient_id),
            "link_id": str(link_id),
            "trigger_prescription_id": str(trigger_prescription_id),
            "follow_prescription_id": str(follow_prescription.id),
        },
        commit=False,
    )
    await session.commit()
    await session.refresh(follow_prescription)
    await session.refresh(instance)
    logger.info(
        "Protocol %s instantiated for patient %s (link %s)",
        instance.id,
        patient_id,
        link_id,
    )
    return InstantiatedProtocol(
        follow_prescription=follow_prescription, protocol_instance=instance
    )


async def mark_activated(
    session: AsyncSession, *, instance_id: uuid.UUID, activated_at: datetime
) -> bool:
    """Flip a pending instance to activated inside the caller's transaction.

    The update only matches rows whose ``activated_at`` is still unset, so an
    instance is activated at most once even if two callers race. Returns
    ``True`` when this call performed the transition.
    """
    result = await session.execute(
        update(ProtocolInstance)
        .where(
            ProtocolInstance.id == instance_id,
            ProtocolInstance.activated_at.is_(None),
        )
        .values(activated_at=as_utc(activated_at))
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def activate_protocol_instance(
    session: AsyncSession, *, instance_id: uuid.UUID, activated_at: datetime
) -> ProtocolInstance:
    """Activate one instance; already-activated instances are returned unchanged."""
    instance = await session.get(ProtocolInstance, instance_id)
    if instance is None:
        raise NotFoundError("Protocol instance not found", instance_id=str(instance_id))
    changed = await mark_activated(
        session, instance_id=instance_id, activated_at=activated_at
    )
    await session.commit()
    await session.refresh(instance)
    if not changed:
        logger.info("Protocol instance %s was already activated", instance_id)
    return instance


async def check_follow_up_status(
    session: AsyncSession, *, patient_id: uuid.UUID, prescription_id: uuid.UUID
) -> FollowUpStatus:
    """Preview whether administering ``prescription_id`` is gated by a trigger."""
    instance = await find_follow_up_instance(
        session, patient_id=patient_id, prescription_id=prescription_id
    )
    if instance is None:
        return FollowUpStatus(is_follow_up=False, trigger_administered=True)

    trigger = await session.get(Prescription, instance.trigger_prescription_id)
    if trigger is None:
        raise NotFoundError("Trigger prescription not found")
    trigger_admin = await latest_trigger_administration(
        session,
        patient_id=patient_id,
        trigger_prescription_id=instance.trigger_prescription_id,
    )
    return FollowUpStatus(
        is_follow_up=True,
        trigger_administered=trigger_admin is not None,
        trigger_medicine_id=trigger.medicine_id,
        trigger_prescription_id=instance.trigger_prescription_id,
    )
