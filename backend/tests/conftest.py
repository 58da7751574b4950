"""Test fixtures for the medsim backend."""
from __future__ import annotations

import os
import uuid
from collections.abc import AsyncIterator
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///./test.db")

from medsim.api import deps
from medsim.core.clock import VirtualClock
from medsim.core.config import get_settings
from medsim.core.security import get_pin_hash
from medsim.db.base import Base
from medsim.db.session import dispose_engine, get_sessionmaker
from medsim.main import app
from medsim.models import (
    MedicationLink,
    Medicine,
    Patient,
    Prescription,
    User,
    UserRole,
)
from medsim.services import prescription_service, protocol_instance_service

INSTRUCTOR_PIN = "1234"
STUDENT_PIN = "0000"
ADMIN_PIN = "9999"

# Monday 2 June 2025, 10:00 in New York
START = datetime(2025, 6, 2, 14, 0, tzinfo=UTC)


class FrozenSource:
    """Controllable wall-clock source for the virtual clock."""

    def __init__(self, moment: datetime) -> None:
        self.moment = moment

    def __call__(self) -> datetime:
        return self.moment

    def advance(self, **kwargs: float) -> datetime:
        self.moment += timedelta(**kwargs)
        return self.moment


@pytest.fixture()
def time_source() -> FrozenSource:
    return FrozenSource(START)


@pytest.fixture()
def clock(time_source: FrozenSource) -> VirtualClock:
    return VirtualClock("America/New_York", source=time_source)


@pytest.fixture(scope="session")
def db_url(tmp_path_factory: pytest.TempPathFactory) -> str:
    """Provide a temporary SQLite database URL for the test session."""
    db_path = tmp_path_factory.mktemp("db") / "test.db"
    return f"sqlite+aiosqlite:///{db_path}"


@pytest_asyncio.fixture()
async def reset_database(db_url: str) -> AsyncIterator[None]:
    """Drop and recreate the database schema for an isolated test."""
    os.environ["DATABASE_URL"] = db_url
    get_settings.cache_clear()
    get_settings()

    await dispose_engine(db_url)
    engine = create_async_engine(db_url, future=True)
    async with engine.begin() as connection:
        await connection.run_sync(Base.metadata.drop_all)
        await connection.run_sync(Base.metadata.create_all)
    await engine.dispose()
    yield
    await dispose_engine(db_url)


@pytest_asyncio.fixture()
async def seeded(reset_database: None, db_url: str) -> dict[str, object]:
    """Seed users, two patients and a small medicine catalog."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as session:
        admin = User(
            username="admin", hashed_pin=get_pin_hash(ADMIN_PIN), role=UserRole.ADMIN
        )
        instructor = User(
            username="instructor",
            hashed_pin=get_pin_hash(INSTRUCTOR_PIN),
            role=UserRole.INSTRUCTOR,
        )
        student = User(
            username="student",
            hashed_pin=get_pin_hash(STUDENT_PIN),
            role=UserRole.STUDENT,
        )
        patient = Patient(name="Avery Lane", mrn="SIM-1001", bed="3A")
        other_patient = Patient(name="Riley Park", mrn="SIM-1002", bed="3B")
        penicillin = Medicine(
            name="Penicillin G", default_dose="2 million units", default_route="IV"
        )
        probenecid = Medicine(name="Probenecid", default_dose="500 mg")
        ondansetron = Medicine(
            name="Ondansetron", default_dose="4 mg", default_route="IV"
        )
        session.add_all(
            [
                admin,
                instructor,
                student,
                patient,
                other_patient,
                penicillin,
                probenecid,
                ondansetron,
            ]
        )
        await session.commit()

        return {
            "admin_id": admin.id,
            "instructor_id": instructor.id,
            "student_id": student.id,
            "patient_id": patient.id,
            "other_patient_id": other_patient.id,
            "penicillin_id": penicillin.id,
            "probenecid_id": probenecid.id,
            "ondansetron_id": ondansetron.id,
        }


async def _login(client: AsyncClient, username: str, pin: str) -> dict[str, str]:
    response = await client.post(
        "/api/v1/auth/token", data={"username": username, "password": pin}
    )
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest_asyncio.fixture()
async def app_context(
    seeded: dict[str, object], clock: VirtualClock
) -> AsyncIterator[dict[str, object]]:
    """Yield an async client, auth headers and the seeded ids."""
    app.dependency_overrides[deps.get_clock] = lambda: clock
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            context = dict(seeded)
            context["client"] = client
            context["clock"] = clock
            context["admin_headers"] = await _login(client, "admin", ADMIN_PIN)
            context["instructor_headers"] = await _login(
                client, "instructor", INSTRUCTOR_PIN
            )
            context["student_headers"] = await _login(client, "student", STUDENT_PIN)
            yield context
    finally:
        app.dependency_overrides.pop(deps.get_clock, None)


@pytest_asyncio.fixture()
async def session(
    seeded: dict[str, object], db_url: str
) -> AsyncIterator[AsyncSession]:
    """Open a session against the seeded database for service-level tests."""
    sessionmaker = get_sessionmaker(db_url)
    async with sessionmaker() as db_session:
        yield db_session


@pytest.fixture()
def make_link(session: AsyncSession, seeded: dict[str, object]):
    """Return a coroutine factory for medication links (Penicillin -> Probenecid)."""

    async def _make(
        *,
        delay_minutes: int = 0,
        follow_duration_hours: int = 24,
        follow_frequency: str = "every 4 hours",
        trigger_medicine_id: uuid.UUID | None = None,
        follow_medicine_id: uuid.UUID | None = None,
        default_dose_override: str | None = None,
    ) -> MedicationLink:
        link = MedicationLink(
            trigger_medicine_id=trigger_medicine_id or seeded["penicillin_id"],
            follow_medicine_id=follow_medicine_id or seeded["probenecid_id"],
            follow_frequency=follow_frequency,
            follow_duration_hours=follow_duration_hours,
            delay_minutes=delay_minutes,
            default_dose_override=default_dose_override,
        )
        session.add(link)
        await session.commit()
        return link

    return _make


@pytest.fixture()
def make_prescription(session: AsyncSession, seeded: dict[str, object]):
    """Return a coroutine factory for prescriptions on the primary patient."""

    async def _make(
        *,
        medicine_id: uuid.UUID | None = None,
        patient_id: uuid.UUID | None = None,
        periodicity: str = "every 6 hours",
        duration: str | None = "1 day",
        dosage: str = "1 dose",
    ) -> Prescription:
        prescription = prescription_service.build_prescription(
            patient_id=patient_id or seeded["patient_id"],
            medicine_id=medicine_id or seeded["penicillin_id"],
            dosage=dosage,
            periodicity=periodicity,
            duration=duration,
            route="IV",
            start_date=START,
            end_date=START + timedelta(days=1),
        )
        session.add(prescription)
        await session.commit()
        return prescription

    return _make


@pytest.fixture()
def make_protocol(
    session: AsyncSession, seeded: dict[str, object], make_link, make_prescription
):
    """Return a coroutine factory building link, trigger and pending follow-up."""

    async def _make(**link_kwargs: object) -> SimpleNamespace:
        link = await make_link(**link_kwargs)
        trigger = await make_prescription(medicine_id=link.trigger_medicine_id)
        created = await protocol_instance_service.instantiate_protocol(
            session,
            patient_id=seeded["patient_id"],
            link_id=link.id,
            trigger_prescription_id=trigger.id,
            acting_user_id=seeded["instructor_id"],
        )
        return SimpleNamespace(
            link=link,
            trigger=trigger,
            follow=created.follow_prescription,
            instance=created.protocol_instance,
        )

    return _make
