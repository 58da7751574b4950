"""Seed default users, a small medicine catalog and a demo protocol link."""
from __future__ import annotations

import asyncio

from sqlalchemy import select

from medsim.core.config import get_settings
from medsim.db.session import get_sessionmaker
from medsim.models import MedicationLink, Medicine, Patient, UserRole
from medsim.services import user_service

USERS = [
    ("admin", "9999", UserRole.ADMIN),
    ("instructor", "1234", UserRole.INSTRUCTOR),
    ("student", "0000", UserRole.STUDENT),
]

MEDICINES = [
    {"name": "Penicillin G", "category": "Antibiotic", "default_dose": "2 million units", "default_route": "IV"},
    {"name": "Probenecid", "category": "Adjunct", "default_dose": "500 mg", "default_route": "PO"},
    {"name": "Morphine", "category": "Analgesic", "default_dose": "2 mg", "default_route": "IV", "is_narcotic": True, "is_prn": True},
    {"name": "Ondansetron", "category": "Antiemetic", "default_dose": "4 mg", "default_route": "IV"},
    {"name": "Acetaminophen", "category": "Analgesic", "default_dose": "650 mg", "default_route": "PO"},
]


async def main() -> None:
    settings = get_settings()
    sessionmaker = get_sessionmaker(settings.database_url)
    async with sessionmaker() as session:
        for username, pin, role in USERS:
            if await user_service.get_user_by_username(session, username) is None:
                await user_service.create_user(
                    session, username=username, pin=pin, role=role
                )
                print(f"Created {role.value} '{username}'")

        catalog: dict[str, Medicine] = {}
        for entry in MEDICINES:
            result = await session.execute(
                select(Medicine).where(Medicine.name == entry["name"])
            )
            medicine = result.scalar_one_or_none()
            if medicine is None:
                medicine = Medicine(**entry)
                session.add(medicine)
            catalog[entry["name"]] = medicine
        await session.flush()

        trigger = catalog["Penicillin G"]
        follow = catalog["Probenecid"]
        existing_link = await session.execute(
            select(MedicationLink).where(
                MedicationLink.trigger_medicine_id == trigger.id,
                MedicationLink.follow_medicine_id == follow.id,
            )
        )
        if existing_link.scalar_one_or_none() is None:
            session.add(
                MedicationLink(
                    trigger_medicine_id=trigger.id,
                    follow_medicine_id=follow.id,
                    follow_frequency="every 6 hours",
                    follow_duration_hours=24,
                    delay_minutes=120,
                )
            )

        demo_patient = await session.execute(
            select(Patient).where(Patient.mrn == "SIM-0001")
        )
        if demo_patient.scalar_one_or_none() is None:
            session.add(Patient(name="Jordan Demo", mrn="SIM-0001", bed="4B"))

        await session.commit()
    print("Training data seeded")


if __name__ == "__main__":
    asyncio.run(main())
