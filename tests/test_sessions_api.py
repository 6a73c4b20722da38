# tests/test_sessions_api.py
from http import HTTPStatus


def _create_appointment(client, status: str = "Confirmed") -> dict:
    patient = client.post("/patients", json={"name": "Ana Souza"}).json()
    therapist = client.post(
        "/therapists",
        json={"name": "Dr. Paulo Lima", "email": f"{status.lower()}@clinic.example"},
    ).json()
    return client.post(
        "/appointments",
        json={
            "patient_id": patient["id"],
            "therapist_id": therapist["id"],
            "date": "2025-01-06",
            "time": "14:00",
            "location": "No Room Needed",
            "modality": "Online",
            "type": "School Visit",
            "value": 80.0,
            "status": status,
        },
    ).json()


def test_list_sessions_filter_by_payment_status(client):
    _create_appointment(client, status="Confirmed")
    _create_appointment(client, status="Cancelled")

    pending = client.get("/sessions", params={"payment_status": "Pending"}).json()
    cancelled = client.get("/sessions", params={"payment_status": "Cancelled"}).json()

    assert len(pending) == 1
    assert pending[0]["type"] == "School Visit"
    assert len(cancelled) == 1


def test_mark_session_paid(client):
    appointment = _create_appointment(client)

    response = client.patch(
        f"/sessions/{appointment['session_id']}/payment",
        json={"payment_status": "Paid"},
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()["payment_status"] == "Paid"

    # Re-confirming the appointment keeps the session paid.
    client.patch(f"/appointments/{appointment['id']}", json={"status": "Rescheduled"})
    session = client.get("/sessions").json()[0]
    assert session["payment_status"] == "Paid"


def test_mark_unknown_session(client):
    response = client.patch("/sessions/999/payment", json={"payment_status": "Paid"})

    assert response.status_code == HTTPStatus.NOT_FOUND


def test_mark_session_rejects_unknown_status(client):
    appointment = _create_appointment(client)

    response = client.patch(
        f"/sessions/{appointment['session_id']}/payment",
        json={"payment_status": "Refunded"},
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def _create_series(client, weeks: int = 3) -> list[int]:
    patient = client.post("/patients", json={"name": "Bruno Lima"}).json()
    therapist = client.post(
        "/therapists",
        json={"name": "Dra. Julia Reis", "email": "julia@clinic.example"},
    ).json()
    created = client.post(
        "/recurrences",
        json={
            "template": {
                "patient_id": patient["id"],
                "therapist_id": therapist["id"],
                "date": "2025-01-06",
                "time": "09:00",
                "location": "Blue Room",
                "modality": "In Person",
                "type": "Session",
                "value": 100.0,
            },
            "end_date": "2025-01-20",
            "weekdays": [1],
            "periodicity": "Weekly",
        },
    ).json()
    assert created["created_count"] == weeks
    return [a["session_id"] for a in created["appointments"]]


def test_bulk_payment_update_skips_unknown_ids(client):
    session_ids = _create_series(client)

    response = client.patch(
        "/sessions/payment",
        json={"session_ids": session_ids[:2] + [999], "payment_status": "Paid"},
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json() == {"updated_count": 2}

    paid = client.get("/sessions", params={"payment_status": "Paid"}).json()
    assert sorted(s["id"] for s in paid) == sorted(session_ids[:2])


def test_bulk_payout_update_with_custom_value(client):
    session_ids = _create_series(client)

    response = client.patch(
        "/sessions/payout",
        json={"session_ids": session_ids, "payout_status": "Paid", "payout_value": 60.0},
    )

    assert response.status_code == HTTPStatus.OK
    assert response.json()["updated_count"] == 3

    sessions = client.get("/sessions", params={"payout_status": "Paid"}).json()
    assert len(sessions) == 3
    assert all(s["payout_value"] == 60.0 for s in sessions)

    report = client.get(
        "/reports/financial",
        params={"from_date": "2025-01-01", "to_date": "2025-01-31"},
    ).json()
    assert report["therapist_payouts"] == 180.0


def test_bulk_payout_without_value_keeps_tenure_rate(client):
    session_ids = _create_series(client)

    client.patch("/sessions/payout", json={"session_ids": session_ids[:1], "payout_status": "Paid"})

    sessions = {s["id"]: s for s in client.get("/sessions").json()}
    assert sessions[session_ids[0]]["payout_status"] == "Paid"
    assert sessions[session_ids[0]]["payout_value"] is None
    assert sessions[session_ids[1]]["payout_status"] == "Pending"


def test_bulk_updates_require_session_ids(client):
    empty = client.patch("/sessions/payment", json={"session_ids": [], "payment_status": "Paid"})
    assert empty.status_code == HTTPStatus.UNPROCESSABLE_ENTITY

    bad_status = client.patch("/sessions/payout", json={"session_ids": [1], "payout_status": "Done"})
    assert bad_status.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
