"""Administration recording, listing and deletion."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.clock import VirtualClock
from medsim.models.administration import Administration, AdministrationStatus
from medsim.schemas.administration import AdministrationCreate
from medsim.services import audit_service, prescription_service, protocol_activator
from medsim.services.errors import NotFoundError

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AdministrationResult:
    """Persisted administration plus the outcome of the follow-on steps."""

    administration: Administration
    activated_protocol_ids: list[uuid.UUID] = field(default_factory=list)
    protocol_activation_warning: str | None = None


async def list_administrations_for_patient(
    session: AsyncSession, *, patient_id: uuid.UUID
) -> list[Administration]:
    result = await session.execute(
        select(Administration)
        .where(Administration.patient_id == patient_id)
        .order_by(Administration.administered_at.desc())
    )
    return list(result.scalars().all())


async def record_administration(
    session: AsyncSession,
    payload: AdministrationCreate,
    *,
    clock: VirtualClock,
    acting_user_id: uuid.UUID | None = None,
) -> AdministrationResult:
    """Persist an administration the guard has allowed, then activate protocols.

    The administration is committed first. Protocol activation and completion
    tracking run afterwards on a best-effort basis: their failures are logged
    and reported through the result, never by undoing the administration.
    """
    administered_at = clock.now()
    administration = Administration(
        patient_id=payload.patient_id,
        medicine_id=payload.medicine_id,
        prescription_id=payload.prescription_id,
        status=payload.status,
        administered_by=acting_user_id,
        administered_at=administered_at,
        message=payload.message,
    )
    session.add(administration)
    await session.flush()
    await audit_service.record_event(
        session,
        event_type="administration.recorded",
        user_id=acting_user_id,
        entity_type="administration",
        entity_id=administration.id,
        payload={
            "patient_id": str(payload.patient_id),
            "medicine_id": str(payload.medicine_id),
            "prescription_id": (
                str(payload.prescription_id) if payload.prescription_id else None
            ),
            "status": payload.status.value,
            "administered_at": administered_at.isoformat(),
        },
        commit=False,
    )
    await session.commit()
    await session.refresh(administration)

    result = AdministrationResult(administration=administration)
    if payload.status != AdministrationStatus.ADMINISTERED:
        return result

    administration_id = administration.id
    try:
        outcome = await protocol_activator.activate_protocols(
            session,
            patient_id=payload.patient_id,
            prescription_id=payload.prescription_id,
            administered_at=administered_at,
            administration_id=administration_id,
            acting_user_id=acting_user_id,
            processed_at=clock.now(),
        )
    except Exception as exc:
        await session.rollback()
        logger.exception(
            "Protocol activation failed after administration %s", administration_id
        )
        result.protocol_activation_warning = f"Protocol activation failed: {exc}"
    else:
        result.activated_protocol_ids = outcome.activated_ids
        result.protocol_activation_warning = outcome.warning

    if payload.prescription_id is not None:
        try:
            await prescription_service.update_completion(
                session,
                prescription_id=payload.prescription_id,
                acting_user_id=acting_user_id,
            )
        except Exception:
            await session.rollback()
            logger.exception(
                "Failed to update completion for prescription %s",
                payload.prescription_id,
            )

    result.administration = await session.get(Administration, administration_id)
    return result


async def delete_administration(
    session: AsyncSession,
    *,
    administration_id: uuid.UUID,
    acting_user_id: uuid.UUID | None = None,
) -> None:
    """Remove an administration record (instructor correction), audited."""
    administration = await session.get(Administration, administration_id)
    if administration is None:
        raise NotFoundError(
            "Administration not found", administration_id=str(administration_id)
        )
    snapshot = {
        "patient_id": str(administration.patient_id),
        "medicine_id": str(administration.medicine_id),
        "prescription_id": (
            str(administration.prescription_id)
            if administration.prescription_id
            else None
        ),
        "status": administration.status.value,
        "administered_at": administration.administered_at.isoformat(),
    }
    await session.delete(administration)
    await audit_service.record_event(
        session,
        event_type="administration.deleted",
        user_id=acting_user_id,
        entity_type="administration",
        entity_id=administration_id,
        payload=snapshot,
        commit=False,
    )
    await session.commit()
    logger.info("Administration %s deleted", administration_id)


__all__ = [
    "AdministrationResult",
    "delete_administration",
    "list_administrations_for_patient",
    "record_administration",
]
