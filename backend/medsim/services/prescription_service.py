"""Prescription services and dose-count helpers."""
from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Iterable
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from medsim.models.administration import Administration, AdministrationStatus
from medsim.models.medicine import Medicine
from medsim.models.patient import Patient
from medsim.models.prescription import Prescription
from medsim.schemas.prescription import PrescriptionCreate
from medsim.services import audit_service
from medsim.services.errors import NotFoundError

logger = logging.getLogger(__name__)

_DAYS_RE = re.compile(r"(\d+)\s*days?")
_WEEKS_RE = re.compile(r"(\d+)\s*weeks?")
_MONTHS_RE = re.compile(r"(\d+)\s*months?")
_EVERY_HOURS_RE = re.compile(r"every\s+(\d+)\s+hours?")


def is_prn(periodicity: str) -> bool:
    lowered = periodicity.lower()
    return "as needed" in lowered or "prn" in lowered


def _duration_days(duration: str) -> int | None:
    lowered = duration.lower()
    if match := _DAYS_RE.search(lowered):
        return int(match.group(1))
    if match := _WEEKS_RE.search(lowered):
        return int(match.group(1)) * 7
    if match := _MONTHS_RE.search(lowered):
        return int(match.group(1)) * 30
    return None


def _doses_per_day(periodicity: str) -> int | None:
    lowered = periodicity.lower()
    # specific multiples must be matched before the generic "daily"
    if "four times daily" in lowered or "qid" in lowered:
        return 4
    if "three times daily" in lowered or "tid" in lowered:
        return 3
    if "twice daily" in lowered or "bid" in lowered:
        return 2
    if "once daily" in lowered or ("daily" in lowered and "times" not in lowered):
        return 1
    if match := _EVERY_HOURS_RE.search(lowered):
        hours = int(match.group(1))
        if hours <= 0:
            return None
        return max(1, 24 // hours)
    return None


def calculate_total_doses(periodicity: str, duration: str | None) -> int | None:
    """Derive the scheduled dose count; ``None`` for PRN or unparseable orders."""
    if is_prn(periodicity) or not duration:
        return None
    days = _duration_days(duration)
    if days is None:
        return None
    per_day = _doses_per_day(periodicity)
    if per_day is None:
        return None
    return days * per_day


def calculate_remaining_doses(
    prescription: Prescription, administrations: Iterable[Administration]
) -> str:
    """Display text for the doses still owed on a prescription."""
    if is_prn(prescription.periodicity) or prescription.total_doses is None:
        return "PRN"
    given = sum(
        1
        for admin in administrations
        if admin.prescription_id == prescription.id
        and admin.status == AdministrationStatus.ADMINISTERED
    )
    return f"Doses Left: {max(0, prescription.total_doses - given)}"


async def list_prescriptions_for_patient(
    session: AsyncSession, *, patient_id: uuid.UUID
) -> list[Prescription]:
    result = await session.execute(
        select(Prescription)
        .where(Prescription.patient_id == patient_id)
        .order_by(Prescription.created_at)
    )
    return list(result.scalars().all())


async def create_prescription(
    session: AsyncSession,
    *,
    patient_id: uuid.UUID,
    payload: PrescriptionCreate,
    acting_user_id: uuid.UUID | None = None,
) -> Prescription:
    """Write a new order for a patient."""
    if await session.get(Patient, patient_id) is None:
        raise NotFoundError("Patient not found", patient_id=str(patient_id))
    if await session.get(Medicine, payload.medicine_id) is None:
        raise NotFoundError("Medicine not found", medicine_id=str(payload.medicine_id))

    prescription = build_prescription(
        patient_id=patient_id,
        medicine_id=payload.medicine_id,
        dosage=payload.dosage,
        periodicity=payload.periodicity,
        duration=payload.duration,
        route=payload.route,
        start_date=payload.start_date,
        end_date=payload.end_date,
    )
    session.add(prescription)
    await session.flush()
    await audit_service.record_event(
        session,
        event_type="prescription.created",
        user_id=acting_user_id,
        entity_type="prescription",
        entity_id=prescription.id,
        payload=payload.model_dump(mode="json", exclude={"pin"}),
        commit=False,
    )
    await session.commit()
    await session.refresh(prescription)
    return prescription


def build_prescription(
    *,
    patient_id: uuid.UUID,
    medicine_id: uuid.UUID,
    dosage: str,
    periodicity: str,
    duration: str | None,
    route: str,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> Prescription:
    """Construct (without persisting) a prescription with its derived dose count."""
    return Prescription(
        patient_id=patient_id,
        medicine_id=medicine_id,
        dosage=dosage,
        periodicity=periodicity,
        duration=duration,
        route=route,
        start_date=start_date,
        end_date=end_date,
        total_doses=calculate_total_doses(periodicity, duration),
        completed=False,
    )


async def count_administered_doses(
    session: AsyncSession, *, prescription_id: uuid.UUID
) -> int:
    result = await session.execute(
        select(func.count())
        .select_from(Administration)
        .where(
            Administration.prescription_id == prescription_id,
            Administration.status == AdministrationStatus.ADMINISTERED,
        )
    )
    return int(result.scalar_one())


async def update_completion(
    session: AsyncSession,
    *,
    prescription_id: uuid.UUID,
    acting_user_id: uuid.UUID | None = None,
) -> bool:
    """Mark the prescription completed once its doses are used up.

    One-time ("once") orders complete after the first administered dose;
    dose-tracked orders complete when the administered count reaches
    ``total_doses``. Returns ``True`` when the prescription was completed by
    this call.
    """
    prescription = await session.get(Prescription, prescription_id)
    if prescription is None or prescription.completed:
        return False

    if prescription.periodicity.strip().lower() == "once":
        reason = "one-time dose administered"
    elif prescription.total_doses is not None:
        given = await count_administered_doses(session, prescription_id=prescription.id)
        if given < prescription.total_doses:
            return False
        reason = f"all {prescription.total_doses} doses administered"
    else:
        return False

    prescription.completed = True
    await audit_service.record_event(
        session,
        event_type="prescription.completed",
        user_id=acting_user_id,
        entity_type="prescription",
        entity_id=prescription.id,
        description=reason,
        commit=False,
    )
    await session.commit()
    logger.info("Prescription %s marked complete: %s", prescription.id, reason)
    return True
