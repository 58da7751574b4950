"""Request-time safety checks run before an administration is persisted.

The guard never raises. Each check either passes or produces a rejection
value, and an unexpected fault inside a check is itself a rejection so the
guard can only fail closed. Every rejection is written to the audit trail.
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from medsim.core.clock import VirtualClock, as_utc, format_duration, shift
from medsim.core.config import get_settings
from medsim.models.administration import AdministrationStatus
from medsim.models.medication_link import MedicationLink
from medsim.models.medicine import Medicine
from medsim.models.prescription import Prescription
from medsim.schemas.administration import AdministrationCreate
from medsim.services import audit_service, protocol_instance_service

logger = logging.getLogger(__name__)


class RejectionCode(str, enum.Enum):
    PRESCRIPTION_NOT_FOUND = "PRESCRIPTION_NOT_FOUND"
    PATIENT_ID_MISMATCH = "PATIENT_ID_MISMATCH"
    MEDICINE_ID_MISMATCH = "MEDICINE_ID_MISMATCH"
    FOLLOW_UP_BLOCKED = "FOLLOW_UP_BLOCKED"
    PROTOCOL_TIMING_TOO_EARLY = "PROTOCOL_TIMING_TOO_EARLY"
    PRESCRIPTION_VERIFICATION_FAILED = "PRESCRIPTION_VERIFICATION_FAILED"
    VALIDATION_FAILED = "VALIDATION_FAILED"


@dataclass(slots=True, frozen=True)
class GuardDecision:
    """Allow, or reject with a code, an operator-facing message and details."""

    allowed: bool
    code: RejectionCode | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def allow(cls) -> "GuardDecision":
        return cls(allowed=True)

    @classmethod
    def reject(
        cls, code: RejectionCode, message: str, **details: Any
    ) -> "GuardDecision":
        return cls(allowed=False, code=code, message=message, details=details)


async def _verify_prescription(
    session: AsyncSession, payload: AdministrationCreate
) -> GuardDecision:
    if payload.prescription_id is None:
        return GuardDecision.allow()
    prescription = await session.get(Prescription, payload.prescription_id)
    if prescription is None:
        return GuardDecision.reject(
            RejectionCode.PRESCRIPTION_NOT_FOUND,
            "Prescription not found",
            prescription_id=str(payload.prescription_id),
        )
    if prescription.patient_id != payload.patient_id:
        return GuardDecision.reject(
            RejectionCode.PATIENT_ID_MISMATCH,
            "Prescription does not belong to this patient",
            prescription_id=str(prescription.id),
            expected_patient_id=str(prescription.patient_id),
            provided_patient_id=str(payload.patient_id),
        )
    if prescription.medicine_id != payload.medicine_id:
        return GuardDecision.reject(
            RejectionCode.MEDICINE_ID_MISMATCH,
            "Prescription is for a different medicine",
            prescription_id=str(prescription.id),
            expected_medicine_id=str(prescription.medicine_id),
            provided_medicine_id=str(payload.medicine_id),
        )
    return GuardDecision.allow()


async def _check_follow_up_timing(
    session: AsyncSession,
    payload: AdministrationCreate,
    *,
    now: datetime,
    clock: VirtualClock,
) -> GuardDecision:
    if (
        payload.status != AdministrationStatus.ADMINISTERED
        or payload.prescription_id is None
    ):
        return GuardDecision.allow()

    instance = await protocol_instance_service.find_follow_up_instance(
        session,
        patient_id=payload.patient_id,
        prescription_id=payload.prescription_id,
    )
    if instance is None:
        return GuardDecision.allow()

    trigger_admin = await protocol_instance_service.latest_trigger_administration(
        session,
        patient_id=payload.patient_id,
        trigger_prescription_id=instance.trigger_prescription_id,
    )
    if trigger_admin is None:
        trigger = await session.get(Prescription, instance.trigger_prescription_id)
        medicine = (
            await session.get(Medicine, trigger.medicine_id) if trigger else None
        )
        trigger_name = medicine.name if medicine else "the trigger medication"
        return GuardDecision.reject(
            RejectionCode.FOLLOW_UP_BLOCKED,
            f"Cannot administer this follow-up medication until {trigger_name} "
            "has been administered",
            protocol_instance_id=str(instance.id),
            trigger_prescription_id=str(instance.trigger_prescription_id),
            trigger_medicine_name=trigger_name,
        )

    link = await session.get(MedicationLink, instance.link_id)
    if link is None:
        # Without the link the delay is unknown; refuse rather than allow.
        raise LookupError(f"Medication link {instance.link_id} is missing")

    grace = timedelta(minutes=get_settings().follow_up_grace_minutes)
    due_at = shift(
        as_utc(trigger_admin.administered_at),
        timedelta(minutes=link.delay_minutes) - grace,
    )
    if now >= due_at:
        return GuardDecision.allow()

    time_left = due_at - now
    time_left_display = format_duration(time_left)
    return GuardDecision.reject(
        RejectionCode.PROTOCOL_TIMING_TOO_EARLY,
        f"Too early to administer this follow-up medication. "
        f"Please wait {time_left_display} (due {clock.format(due_at)}).",
        protocol_instance_id=str(instance.id),
        trigger_prescription_id=str(instance.trigger_prescription_id),
        trigger_administered_at=trigger_admin.administered_at.isoformat(),
        delay_minutes=link.delay_minutes,
        grace_minutes=int(grace.total_seconds() // 60),
        due_at=due_at.isoformat(),
        evaluated_at=now.isoformat(),
        time_left_ms=int(time_left.total_seconds() * 1000),
        time_left_display=time_left_display,
    )


async def _audit_rejection(
    session: AsyncSession,
    payload: AdministrationCreate,
    decision: GuardDecision,
    *,
    acting_user_id: uuid.UUID | None,
) -> None:
    logger.warning(
        "Administration blocked (%s) for patient %s prescription %s",
        decision.code.value if decision.code else None,
        payload.patient_id,
        payload.prescription_id,
    )
    try:
        await audit_service.record_event(
            session,
            event_type="administration.blocked",
            user_id=acting_user_id,
            entity_type="prescription",
            entity_id=payload.prescription_id,
            description=decision.message,
            payload={
                "reason": decision.code.value if decision.code else None,
                "patient_id": str(payload.patient_id),
                "medicine_id": str(payload.medicine_id),
                "prescription_id": (
                    str(payload.prescription_id) if payload.prescription_id else None
                ),
                "status": payload.status.value,
                **decision.details,
            },
        )
    except Exception:  # audit failures must not change the decision
        logger.exception("Failed to record audit entry for blocked administration")
        await session.rollback()


async def evaluate_administration(
    session: AsyncSession,
    payload: AdministrationCreate,
    *,
    clock: VirtualClock,
    acting_user_id: uuid.UUID | None = None,
) -> GuardDecision:
    """Decide whether ``payload`` may be persisted.

    Checks run in order: prescription identity, then follow-up gating and
    timing. The virtual clock is read once so a single decision sees one
    consistent "now".
    """
    now = clock.now()

    try:
        decision = await _verify_prescription(session, payload)
    except Exception as exc:
        logger.exception("Prescription verification failed")
        await session.rollback()
        decision = GuardDecision.reject(
            RejectionCode.PRESCRIPTION_VERIFICATION_FAILED,
            "Unable to verify prescription",
            fault=type(exc).__name__,
        )

    if decision.allowed:
        try:
            decision = await _check_follow_up_timing(
                session, payload, now=now, clock=clock
            )
        except Exception as exc:
            logger.exception("Follow-up protocol validation failed")
            await session.rollback()
            decision = GuardDecision.reject(
                RejectionCode.VALIDATION_FAILED,
                "Unable to validate protocol requirements",
                fault=type(exc).__name__,
            )

    if not decision.allowed:
        await _audit_rejection(
            session, payload, decision, acting_user_id=acting_user_id
        )
    return decision


__all__ = ["GuardDecision", "RejectionCode", "evaluate_administration"]
