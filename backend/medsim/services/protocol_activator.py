"""Open follow-up prescription windows after a trigger dose is given."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.clock import shift
from medsim.models.medication_link import MedicationLink
from medsim.models.prescription import Prescription
from medsim.services import audit_service, protocol_instance_service

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ActivationOutcome:
    """Instances activated by one administration and any per-instance failures."""

    activated_ids: list[uuid.UUID] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def warning(self) -> str | None:
        if not self.failures:
            return None
        return "Protocol activation incomplete: " + "; ".join(self.failures)


async def activate_protocols(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    prescription_id: uuid.UUID | None,
    administered_at: datetime,
    administration_id: uuid.UUID | None = None,
    acting_user_id: uuid.UUID | None = None,
    processed_at: datetime | None = None,
) -> ActivationOutcome:
    """Activate every pending instance whose trigger is ``prescription_id``.

    The follow-up window is anchored on ``administered_at`` (when the dose was
    actually given); ``processed_at`` is only bookkeeping for ``activated_at``.
    Each instance commits on its own, so one failure leaves the rest intact.
    """
    outcome = ActivationOutcome()
    if prescription_id is None:
        return outcome

    pending = await protocol_instance_service.find_pending_by_trigger(
        session, trigger_prescription_id=prescription_id, patient_id=patient_id
    )
    if not pending:
        return outcome

    processed_at = processed_at or datetime.now(UTC)
    # rollbacks expire ORM state, so keep plain values for the loop
    plans = [(p.id, p.link_id, p.follow_prescription_id) for p in pending]

    for instance_id, link_id, follow_prescription_id in plans:
        try:
            link = await session.get(MedicationLink, link_id)
            if link is None:
                raise LookupError(f"medication link {link_id} not found")
            follow = await session.get(Prescription, follow_prescription_id)
            if follow is None:
                raise LookupError(
                    f"follow-up prescription {follow_prescription_id} not found"
                )

            changed = await protocol_instance_service.mark_activated(
                session, instance_id=instance_id, activated_at=processed_at
            )
            if not changed:
                await session.rollback()
                logger.info("Protocol instance %s already activated", instance_id)
                continue

            start = shift(administered_at, timedelta(minutes=link.delay_minutes))
            end = shift(start, timedelta(hours=link.follow_duration_hours))
            follow.start_date = start
            follow.end_date = end

            await audit_service.record_event(
                session,
                event_type="protocol_instance.activated",
                user_id=acting_user_id,
                entity_type="protocol_instance",
                entity_id=instance_id,
                payload={
                    "administration_id": (
                        str(administration_id) if administration_id else None
                    ),
                    "trigger_prescription_id": str(prescription_id),
                    "follow_prescription_id": str(follow_prescription_id),
                    "anchor_time": administered_at.isoformat(),
                    "activated_at": processed_at.isoformat(),
                    "start_date": start.isoformat(),
                    "end_date": end.isoformat(),
                },
                commit=False,
            )
            await session.commit()
        except Exception as exc:
            await session.rollback()
            logger.exception("Failed to activate protocol instance %s", instance_id)
            outcome.failures.append(f"instance {instance_id}: {exc}")
            continue

        outcome.activated_ids.append(instance_id)
        logger.info(
            "Protocol instance %s activated; follow-up %s window %s to %s",
            instance_id,
            follow_prescription_id,
            start.isoformat(),
            end.isoformat(),
        )

    return outcome


__all__ = ["ActivationOutcome", "activate_protocols"]
