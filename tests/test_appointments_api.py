# tests/test_appointments_api.py
from http import HTTPStatus


def _create_people(client, email: str = "paulo@clinic.example") -> tuple[int, int]:
    patient = client.post("/patients", json={"name": "Ana Souza"}).json()
    therapist = client.post("/therapists", json={"name": "Dr. Paulo Lima", "email": email}).json()
    return patient["id"], therapist["id"]


def _build_appointment_payload(
    patient_id: int,
    therapist_id: int,
    date: str = "2025-01-06",
    time: str = "14:00",
    **overrides,
) -> dict:
    payload = {
        "patient_id": patient_id,
        "therapist_id": therapist_id,
        "date": date,
        "time": time,
        "location": "Blue Room",
        "modality": "Online",
        "type": "Supervision",
        "value": 120.0,
    }
    payload.update(overrides)
    return payload


def test_create_appointment_creates_linked_session(client):
    patient_id, therapist_id = _create_people(client)

    response = client.post("/appointments", json=_build_appointment_payload(patient_id, therapist_id))
    assert response.status_code == HTTPStatus.CREATED

    data = response.json()
    assert data["recurrence_id"] is None
    assert data["status"] == "Confirmed"
    assert data["location"] == "Blue Room"
    assert isinstance(data["session_id"], int)

    sessions = client.get("/sessions").json()
    assert len(sessions) == 1
    assert sessions[0]["id"] == data["session_id"]
    assert sessions[0]["appointment_id"] == data["id"]
    assert sessions[0]["type"] == "Supervision"
    assert sessions[0]["payment_status"] == "Pending"


def test_create_duplicate_appointment_conflicts(client):
    patient_id, therapist_id = _create_people(client)
    payload = _build_appointment_payload(patient_id, therapist_id)

    assert client.post("/appointments", json=payload).status_code == HTTPStatus.CREATED

    second = client.post("/appointments", json=payload)
    assert second.status_code == HTTPStatus.CONFLICT
    assert "already exists" in second.json()["detail"]

    other_time = _build_appointment_payload(patient_id, therapist_id, time="15:00")
    assert client.post("/appointments", json=other_time).status_code == HTTPStatus.CREATED


def test_create_appointment_unknown_patient(client):
    _, therapist_id = _create_people(client)

    response = client.post("/appointments", json=_build_appointment_payload(999, therapist_id))

    assert response.status_code == HTTPStatus.BAD_REQUEST
    assert "Patient" in response.json()["detail"]


def test_create_cancelled_appointment_clears_flags(client):
    patient_id, therapist_id = _create_people(client)

    response = client.post(
        "/appointments",
        json=_build_appointment_payload(
            patient_id,
            therapist_id,
            status="Cancelled",
            session_occurred=True,
            missed=True,
        ),
    )

    data = response.json()
    assert data["session_occurred"] is False
    assert data["missed"] is False
    assert client.get("/sessions").json()[0]["payment_status"] == "Cancelled"


def test_create_appointment_rejects_invalid_enum(client):
    patient_id, therapist_id = _create_people(client)

    response = client.post(
        "/appointments",
        json=_build_appointment_payload(patient_id, therapist_id, location="Red Room"),
    )

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY


def test_list_appointments_filters_and_orders(client):
    patient_id, therapist_id = _create_people(client)
    _, other_therapist_id = _create_people(client, email="julia@clinic.example")

    client.post("/appointments", json=_build_appointment_payload(patient_id, therapist_id, date="2025-01-10"))
    client.post("/appointments", json=_build_appointment_payload(patient_id, therapist_id, date="2025-01-08", time="16:00"))
    client.post("/appointments", json=_build_appointment_payload(patient_id, therapist_id, date="2025-01-08", time="09:00"))
    client.post("/appointments", json=_build_appointment_payload(patient_id, other_therapist_id, date="2025-01-09"))

    everything = client.get("/appointments").json()
    assert [(a["date"], a["time"]) for a in everything] == [
        ("2025-01-08", "09:00"),
        ("2025-01-08", "16:00"),
        ("2025-01-09", "14:00"),
        ("2025-01-10", "14:00"),
    ]

    by_therapist = client.get("/appointments", params={"therapist_id": therapist_id}).json()
    assert len(by_therapist) == 3

    window = client.get(
        "/appointments",
        params={"from_date": "2025-01-09", "to_date": "2025-01-10"},
    ).json()
    assert [a["date"] for a in window] == ["2025-01-09", "2025-01-10"]

    reversed_window = client.get(
        "/appointments",
        params={"from_date": "2025-01-10", "to_date": "2025-01-09"},
    )
    assert reversed_window.status_code == HTTPStatus.BAD_REQUEST


def test_patch_single_occurrence_leaves_rest_of_recurrence(client):
    patient_id, therapist_id = _create_people(client)
    created = client.post(
        "/recurrences",
        json={
            "template": _build_appointment_payload(patient_id, therapist_id),
            "end_date": "2025-01-20",
            "weekdays": [1],
            "periodicity": "Weekly",
        },
    ).json()
    first, second = created["appointments"][0], created["appointments"][1]

    response = client.patch(
        f"/appointments/{first['id']}",
        json={"status": "Cancelled", "date": "2025-01-07"},
    )
    assert response.status_code == HTTPStatus.OK
    data = response.json()
    assert data["status"] == "Cancelled"
    assert data["date"] == "2025-01-07"
    assert data["session_id"] == first["session_id"]

    untouched = client.get(f"/appointments/{second['id']}").json()
    assert untouched["status"] == "Confirmed"

    sessions = {s["appointment_id"]: s for s in client.get("/sessions").json()}
    assert sessions[first["id"]]["payment_status"] == "Cancelled"
    assert sessions[second["id"]]["payment_status"] == "Pending"


def test_patch_can_clear_notes(client):
    patient_id, therapist_id = _create_people(client)
    created = client.post(
        "/appointments",
        json=_build_appointment_payload(patient_id, therapist_id, notes="bring report"),
    ).json()

    response = client.patch(f"/appointments/{created['id']}", json={"notes": None, "value": None})

    assert response.status_code == HTTPStatus.OK
    assert response.json()["notes"] is None
    assert response.json()["value"] == 120.0


def test_delete_appointment_removes_session(client):
    patient_id, therapist_id = _create_people(client)
    created = client.post("/appointments", json=_build_appointment_payload(patient_id, therapist_id)).json()

    response = client.delete(f"/appointments/{created['id']}")
    assert response.status_code == HTTPStatus.NO_CONTENT

    assert client.get(f"/appointments/{created['id']}").status_code == HTTPStatus.NOT_FOUND
    assert client.get("/sessions").json() == []


def test_unknown_appointment_returns_404(client):
    assert client.get("/appointments/999").status_code == HTTPStatus.NOT_FOUND
    assert client.patch("/appointments/999", json={"value": 1}).status_code == HTTPStatus.NOT_FOUND
    assert client.delete("/appointments/999").status_code == HTTPStatus.NOT_FOUND
