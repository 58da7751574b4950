"""Medication link registry rules."""

from __future__ import annotations

import uuid

import pytest

from medsim.core.config import get_settings
from medsim.models.medication_link import MedicationLink
from medsim.models.protocol_instance import ProtocolInstance
from medsim.schemas.medication_link import MedicationLinkCreate, MedicationLinkUpdate
from medsim.services import audit_service, medication_link_service
from medsim.services.errors import InvalidLinkError, LinkInUseError, NotFoundError

pytestmark = pytest.mark.asyncio


def _create_payload(seeded, **overrides) -> MedicationLinkCreate:
    data = {
        "trigger_medicine_id": seeded["penicillin_id"],
        "follow_medicine_id": seeded["probenecid_id"],
        "follow_frequency": "every 6 hours",
        "follow_duration_hours": 24,
        "delay_minutes": 120,
    }
    data.update(overrides)
    return MedicationLinkCreate(**data)


async def test_create_and_lookup_by_trigger(session, seeded) -> None:
    link = await medication_link_service.create_medication_link(
        session, _create_payload(seeded), acting_user_id=seeded["instructor_id"]
    )

    by_trigger = await medication_link_service.list_links_by_trigger(
        session, trigger_medicine_id=seeded["penicillin_id"]
    )
    unrelated = await medication_link_service.list_links_by_trigger(
        session, trigger_medicine_id=seeded["ondansetron_id"]
    )

    assert [item.id for item in by_trigger] == [link.id]
    assert unrelated == []
    assert link.required_prompt is True
    events = await audit_service.list_events(
        session, event_type="medication_link.created"
    )
    assert events[0].entity_id == str(link.id)


async def test_unknown_medicine_is_rejected(session, seeded) -> None:
    with pytest.raises(NotFoundError):
        await medication_link_service.create_medication_link(
            session, _create_payload(seeded, follow_medicine_id=uuid.uuid4())
        )


async def test_self_referential_link_rejected_by_default(session, seeded) -> None:
    with pytest.raises(InvalidLinkError):
        await medication_link_service.create_medication_link(
            session,
            _create_payload(seeded, follow_medicine_id=seeded["penicillin_id"]),
        )


async def test_self_referential_link_allowed_when_configured(
    session, seeded, monkeypatch
) -> None:
    monkeypatch.setenv("ALLOW_SELF_REFERENTIAL_LINKS", "true")
    get_settings.cache_clear()
    try:
        link = await medication_link_service.create_medication_link(
            session,
            _create_payload(seeded, follow_medicine_id=seeded["penicillin_id"]),
        )
    finally:
        monkeypatch.delenv("ALLOW_SELF_REFERENTIAL_LINKS")
        get_settings.cache_clear()

    assert link.trigger_medicine_id == link.follow_medicine_id


async def test_update_changes_only_supplied_fields(session, seeded) -> None:
    link = await medication_link_service.create_medication_link(
        session, _create_payload(seeded)
    )

    updated = await medication_link_service.update_medication_link(
        session, link=link, payload=MedicationLinkUpdate(delay_minutes=30)
    )

    assert updated.delay_minutes == 30
    assert updated.follow_frequency == "every 6 hours"


async def test_delete_refused_while_instances_reference_link(
    session, seeded, make_protocol
) -> None:
    protocol = await make_protocol()

    with pytest.raises(LinkInUseError) as excinfo:
        await medication_link_service.delete_medication_link(
            session, link=protocol.link
        )

    assert excinfo.value.details["active_instances"] == 1
    assert await session.get(MedicationLink, protocol.link.id) is not None
    assert await session.get(ProtocolInstance, protocol.instance.id) is not None


async def test_delete_unused_link(session, seeded) -> None:
    link = await medication_link_service.create_medication_link(
        session, _create_payload(seeded)
    )
    link_id = link.id

    await medication_link_service.delete_medication_link(
        session, link=link, acting_user_id=seeded["admin_id"]
    )

    assert await medication_link_service.get_medication_link(session, link_id) is None
    events = await audit_service.list_events(
        session, event_type="medication_link.deleted"
    )
    assert events[0].user_id == seeded["admin_id"]
