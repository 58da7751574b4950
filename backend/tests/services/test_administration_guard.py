"""Administration guard: identity checks, follow-up gating and timing."""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta

import pytest

from medsim.models.administration import AdministrationStatus
from medsim.schemas.administration import AdministrationCreate
from medsim.services import (
    administration_guard,
    administration_service,
    audit_service,
    protocol_instance_service,
)
from medsim.services.administration_guard import RejectionCode

pytestmark = pytest.mark.asyncio


def _payload(prescription, *, status=AdministrationStatus.ADMINISTERED, **overrides):
    data = {
        "patient_id": prescription.patient_id,
        "medicine_id": prescription.medicine_id,
        "prescription_id": prescription.id,
        "status": status,
    }
    data.update(overrides)
    return AdministrationCreate(**data)


async def _give_trigger(session, clock, protocol, seeded) -> None:
    result = await administration_service.record_administration(
        session,
        _payload(protocol.trigger),
        clock=clock,
        acting_user_id=seeded["student_id"],
    )
    assert result.protocol_activation_warning is None


async def test_non_protocol_prescription_is_allowed(
    session, clock, make_prescription
) -> None:
    prescription = await make_prescription()

    decision = await administration_guard.evaluate_administration(
        session, _payload(prescription), clock=clock
    )

    assert decision.allowed
    assert decision.code is None


async def test_unknown_prescription_is_rejected(session, clock, seeded) -> None:
    payload = AdministrationCreate(
        patient_id=seeded["patient_id"],
        medicine_id=seeded["penicillin_id"],
        prescription_id=uuid.uuid4(),
        status=AdministrationStatus.ADMINISTERED,
    )

    decision = await administration_guard.evaluate_administration(
        session, payload, clock=clock
    )

    assert not decision.allowed
    assert decision.code is RejectionCode.PRESCRIPTION_NOT_FOUND


async def test_prescription_of_another_patient_is_rejected_regardless_of_protocol(
    session, clock, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=0)
    await _give_trigger(session, clock, protocol, seeded)

    decision = await administration_guard.evaluate_administration(
        session,
        _payload(protocol.follow, patient_id=seeded["other_patient_id"]),
        clock=clock,
    )

    assert decision.code is RejectionCode.PATIENT_ID_MISMATCH
    assert decision.details["expected_patient_id"] == str(seeded["patient_id"])


async def test_mismatched_medicine_is_rejected(
    session, clock, seeded, make_prescription
) -> None:
    prescription = await make_prescription()

    decision = await administration_guard.evaluate_administration(
        session,
        _payload(prescription, medicine_id=seeded["ondansetron_id"]),
        clock=clock,
    )

    assert decision.code is RejectionCode.MEDICINE_ID_MISMATCH


async def test_follow_up_blocked_until_trigger_administered(
    session, clock, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=0)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.code is RejectionCode.FOLLOW_UP_BLOCKED
    assert "Penicillin G" in decision.message
    assert decision.details["trigger_medicine_name"] == "Penicillin G"


async def test_collected_trigger_does_not_unblock_follow_up(
    session, clock, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=0)
    await administration_service.record_administration(
        session,
        _payload(protocol.trigger, status=AdministrationStatus.COLLECTED),
        clock=clock,
        acting_user_id=seeded["student_id"],
    )

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.code is RejectionCode.FOLLOW_UP_BLOCKED


async def test_collecting_a_follow_up_is_not_gated(
    session, clock, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=120)

    decision = await administration_guard.evaluate_administration(
        session,
        _payload(protocol.follow, status=AdministrationStatus.COLLECTED),
        clock=clock,
    )

    assert decision.allowed


async def test_zero_delay_follow_up_allowed_shortly_after_trigger(
    session, clock, time_source, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=0)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(minutes=5)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.allowed


async def test_too_early_reports_remaining_wait_and_due_time(
    session, clock, time_source, seeded, make_protocol
) -> None:
    given_at = time_source.moment
    protocol = await make_protocol(delay_minutes=120)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(minutes=30)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.code is RejectionCode.PROTOCOL_TIMING_TOO_EARLY
    assert decision.details["time_left_display"] == "30m"
    assert decision.details["time_left_ms"] == 30 * 60 * 1000
    due_at = datetime.fromisoformat(decision.details["due_at"])
    assert due_at == given_at + timedelta(minutes=60)
    assert "30m" in decision.message
    assert "(due 06/02/2025, 11:00:00 AM EDT)" in decision.message


async def test_one_minute_after_trigger_waits_fifty_nine_minutes(
    session, clock, time_source, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=120)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(minutes=1)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.details["time_left_display"] == "59m"


@pytest.mark.parametrize(
    ("elapsed_minutes", "allowed"),
    [(0, False), (59, False), (60, True), (61, True), (600, True)],
)
async def test_timing_boundary_is_delay_minus_grace(
    session, clock, time_source, seeded, make_protocol, elapsed_minutes, allowed
) -> None:
    protocol = await make_protocol(delay_minutes=120)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(minutes=elapsed_minutes)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.allowed is allowed
    if not allowed:
        assert decision.code is RejectionCode.PROTOCOL_TIMING_TOO_EARLY


async def test_virtual_clock_advance_unblocks_follow_up(
    session, clock, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=8 * 60)
    await _give_trigger(session, clock, protocol, seeded)

    blocked = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )
    assert blocked.details["time_left_display"] == "7h 0m"

    clock.advance(hours=7)
    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )
    assert decision.allowed


async def test_timing_uses_latest_trigger_administration(
    session, clock, time_source, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=120)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(hours=3)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(minutes=10)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.code is RejectionCode.PROTOCOL_TIMING_TOO_EARLY
    assert decision.details["time_left_display"] == "50m"


async def test_two_day_delay_across_spring_forward(
    session, clock, time_source, seeded, make_protocol
) -> None:
    # 8 March 2025 12:00 EST; DST starts the next morning
    time_source.moment = datetime.fromisoformat("2025-03-08T17:00:00+00:00")
    protocol = await make_protocol(delay_minutes=49 * 60)
    await _give_trigger(session, clock, protocol, seeded)

    time_source.advance(hours=47, minutes=59)
    early = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )
    assert early.code is RejectionCode.PROTOCOL_TIMING_TOO_EARLY
    assert early.details["time_left_display"] == "1m"

    time_source.advance(minutes=1)
    assert clock.now().hour == 13
    on_time = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )
    assert on_time.allowed


async def test_unexpected_failure_in_gating_fails_closed(
    session, clock, seeded, make_protocol, monkeypatch
) -> None:
    protocol = await make_protocol(delay_minutes=0)
    await _give_trigger(session, clock, protocol, seeded)

    async def _boom(*args, **kwargs):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(protocol_instance_service, "find_follow_up_instance", _boom)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert not decision.allowed
    assert decision.code is RejectionCode.VALIDATION_FAILED
    assert decision.details["fault"] == "RuntimeError"


async def test_unexpected_failure_in_verification_fails_closed(
    session, clock, make_prescription, monkeypatch
) -> None:
    prescription = await make_prescription()

    async def _boom(*args, **kwargs):
        raise RuntimeError("storage unavailable")

    monkeypatch.setattr(administration_guard, "_verify_prescription", _boom)

    decision = await administration_guard.evaluate_administration(
        session, _payload(prescription), clock=clock
    )

    assert not decision.allowed
    assert decision.code is RejectionCode.PRESCRIPTION_VERIFICATION_FAILED
    assert decision.details["fault"] == "RuntimeError"


async def test_rejections_are_audited_with_acting_user(
    session, clock, time_source, seeded, make_protocol
) -> None:
    protocol = await make_protocol(delay_minutes=120)
    await _give_trigger(session, clock, protocol, seeded)
    time_source.advance(minutes=30)

    await administration_guard.evaluate_administration(
        session,
        _payload(protocol.follow),
        clock=clock,
        acting_user_id=seeded["student_id"],
    )

    events = await audit_service.list_events(
        session, event_type="administration.blocked"
    )
    assert len(events) == 1
    event = events[0]
    assert event.user_id == seeded["student_id"]
    assert event.entity_id == str(protocol.follow.id)
    assert event.payload["reason"] == "PROTOCOL_TIMING_TOO_EARLY"
    assert event.payload["time_left_display"] == "30m"
    assert event.payload["trigger_prescription_id"] == str(protocol.trigger.id)


async def test_audit_failure_does_not_change_decision(
    session, clock, make_protocol, monkeypatch
) -> None:
    protocol = await make_protocol(delay_minutes=0)

    async def _broken_audit(*args, **kwargs):
        raise RuntimeError("audit store down")

    monkeypatch.setattr(audit_service, "record_event", _broken_audit)

    decision = await administration_guard.evaluate_administration(
        session, _payload(protocol.follow), clock=clock
    )

    assert decision.code is RejectionCode.FOLLOW_UP_BLOCKED
