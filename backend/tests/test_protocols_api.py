"""Protocol instantiation and follow-up preview endpoints."""

from __future__ import annotations

import pytest

pytestmark = pytest.mark.asyncio


async def _prepare(app_context, *, patient_key: str = "patient_id") -> tuple[dict, dict]:
    client = app_context["client"]
    headers = app_context["instructor_headers"]
    link = (
        await client.post(
            "/api/v1/medication-links",
            json={
                "trigger_medicine_id": str(app_context["penicillin_id"]),
                "follow_medicine_id": str(app_context["probenecid_id"]),
                "follow_frequency": "every 6 hours",
                "follow_duration_hours": 24,
                "delay_minutes": 120,
            },
            headers=headers,
        )
    ).json()
    trigger = (
        await client.post(
            f"/api/v1/patients/{app_context[patient_key]}/prescriptions",
            json={
                "medicine_id": str(app_context["penicillin_id"]),
                "dosage": "2 million units",
                "periodicity": "every 6 hours",
                "duration": "1 day",
                "route": "IV",
                "pin": "1234",
            },
            headers=headers,
        )
    ).json()
    return link, trigger


async def test_prescribing_a_trigger_offers_its_protocols(app_context) -> None:
    link, trigger = await _prepare(app_context)

    assert [item["id"] for item in trigger["available_protocols"]] == [link["id"]]
    assert trigger["total_doses"] == 4


async def test_instantiate_protocol(app_context) -> None:
    client = app_context["client"]
    patient_id = app_context["patient_id"]
    link, trigger = await _prepare(app_context)

    response = await client.post(
        f"/api/v1/patients/{patient_id}/protocols/instantiate",
        json={
            "link_id": link["id"],
            "trigger_prescription_id": trigger["id"],
            "overrides": {"dosage": "1 g"},
            "pin": "1234",
        },
        headers=app_context["instructor_headers"],
    )

    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "Protocol instantiated successfully"
    follow = body["follow_prescription"]
    assert follow["medicine_id"] == str(app_context["probenecid_id"])
    assert follow["dosage"] == "1 g"
    assert follow["periodicity"] == "every 6 hours"
    assert follow["duration"] == "24 hours"
    assert follow["start_date"] is None
    assert follow["schedule_state"] == "inactive"
    instance = body["protocol_instance"]
    assert instance["activated_at"] is None
    assert instance["state"] == "pending"
    assert instance["follow_prescription_id"] == follow["id"]

    listing = await client.get(
        f"/api/v1/patients/{patient_id}/protocols",
        headers=app_context["student_headers"],
    )
    assert [item["id"] for item in listing.json()] == [instance["id"]]


async def test_duplicate_instantiation_conflicts(app_context) -> None:
    client = app_context["client"]
    url = f"/api/v1/patients/{app_context['patient_id']}/protocols/instantiate"
    link, trigger = await _prepare(app_context)
    body = {
        "link_id": link["id"],
        "trigger_prescription_id": trigger["id"],
        "pin": "1234",
    }

    first = await client.post(url, json=body, headers=app_context["instructor_headers"])
    second = await client.post(url, json=body, headers=app_context["instructor_headers"])

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["detail"]["error"] == "DUPLICATE"


async def test_instantiate_rejects_mismatches(app_context) -> None:
    client = app_context["client"]
    headers = app_context["instructor_headers"]
    link, foreign_trigger = await _prepare(app_context, patient_key="other_patient_id")
    own = (
        await client.post(
            f"/api/v1/patients/{app_context['patient_id']}/prescriptions",
            json={
                "medicine_id": str(app_context["ondansetron_id"]),
                "dosage": "4 mg",
                "periodicity": "every 8 hours",
                "duration": "1 day",
                "pin": "1234",
            },
            headers=headers,
        )
    ).json()
    url = f"/api/v1/patients/{app_context['patient_id']}/protocols/instantiate"

    wrong_patient = await client.post(
        url,
        json={
            "link_id": link["id"],
            "trigger_prescription_id": foreign_trigger["id"],
            "pin": "1234",
        },
        headers=headers,
    )
    wrong_medicine = await client.post(
        url,
        json={
            "link_id": link["id"],
            "trigger_prescription_id": own["id"],
            "pin": "1234",
        },
        headers=headers,
    )
    unknown_link = await client.post(
        url,
        json={
            "link_id": "00000000-0000-0000-0000-000000000000",
            "trigger_prescription_id": own["id"],
            "pin": "1234",
        },
        headers=headers,
    )

    assert wrong_patient.status_code == 400
    assert wrong_patient.json()["detail"]["error"] == "PATIENT_MISMATCH"
    assert wrong_medicine.status_code == 400
    assert wrong_medicine.json()["detail"]["error"] == "MEDICINE_MISMATCH"
    assert unknown_link.status_code == 404


async def test_students_cannot_instantiate(app_context) -> None:
    link, trigger = await _prepare(app_context)
    response = await app_context["client"].post(
        f"/api/v1/patients/{app_context['patient_id']}/protocols/instantiate",
        json={"link_id": link["id"], "trigger_prescription_id": trigger["id"]},
        headers=app_context["student_headers"],
    )
    assert response.status_code == 403


async def test_check_follow_up_preview(app_context) -> None:
    client = app_context["client"]
    patient_id = app_context["patient_id"]
    link, trigger = await _prepare(app_context)
    follow = (
        await client.post(
            f"/api/v1/patients/{patient_id}/protocols/instantiate",
            json={
                "link_id": link["id"],
                "trigger_prescription_id": trigger["id"],
                "pin": "1234",
            },
            headers=app_context["instructor_headers"],
        )
    ).json()["follow_prescription"]
    url = f"/api/v1/patients/{patient_id}/protocols/check-followup"
    headers = app_context["student_headers"]

    before = await client.post(url, json={"prescription_id": follow["id"]}, headers=headers)
    assert before.status_code == 200
    assert before.json() == {
        "is_follow_up": True,
        "trigger_administered": False,
        "trigger_medicine_id": str(app_context["penicillin_id"]),
        "trigger_prescription_id": trigger["id"],
    }

    await client.post(
        "/api/v1/administrations",
        json={
            "patient_id": str(patient_id),
            "medicine_id": str(app_context["penicillin_id"]),
            "prescription_id": trigger["id"],
            "status": "administered",
        },
        headers=headers,
    )
    after = await client.post(url, json={"prescription_id": follow["id"]}, headers=headers)
    assert after.json()["trigger_administered"] is True

    plain = await client.post(url, json={"prescription_id": trigger["id"]}, headers=headers)
    assert plain.json()["is_follow_up"] is False
    assert plain.json()["trigger_administered"] is True
