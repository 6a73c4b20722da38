# tests/test_reports_financial_api.py
from http import HTTPStatus


def _create_series(client) -> dict:
    patient = client.post("/patients", json={"name": "Ana Souza"}).json()
    therapist = client.post(
        "/therapists",
        json={"name": "Dr. Paulo Lima", "email": "paulo@clinic.example"},
    ).json()
    response = client.post(
        "/recurrences",
        json={
            "template": {
                "patient_id": patient["id"],
                "therapist_id": therapist["id"],
                "date": "2025-01-06",
                "time": "14:00",
                "location": "Green Room",
                "modality": "In Person",
                "type": "Session",
                "value": 150.0,
            },
            "end_date": "2025-01-27",
            "weekdays": [1],
            "periodicity": "Weekly",
        },
    )
    assert response.status_code == HTTPStatus.CREATED
    return response.json()


def _report(client):
    return client.get(
        "/reports/financial",
        params={"from_date": "2025-01-01", "to_date": "2025-01-31"},
    )


def test_financial_report_reflects_writes(client):
    """
    The report is served from the read-model cache; every write path must
    invalidate it so the next read sees the change.
    """
    assert _report(client).json()["session_count"] == 0

    series = _create_series(client)
    after_create = _report(client).json()
    assert after_create["session_count"] == 4
    assert after_create["pending_value"] == 600.0
    assert after_create["therapists"][0]["therapist_name"] == "Dr. Paulo Lima"

    first_session_id = series["appointments"][0]["session_id"]
    paid = client.patch(f"/sessions/{first_session_id}/payment", json={"payment_status": "Paid"})
    assert paid.status_code == HTTPStatus.OK
    after_payment = _report(client).json()
    assert after_payment["paid_value"] == 150.0
    assert after_payment["pending_value"] == 450.0

    client.patch(f"/recurrences/{series['recurrence_id']}", json={"status": "Cancelled"})
    after_cancel = _report(client).json()
    assert after_cancel["cancelled_count"] == 4
    assert after_cancel["gross_value"] == 0.0

    client.delete(f"/recurrences/{series['recurrence_id']}")
    assert _report(client).json()["session_count"] == 0


def test_financial_report_rejects_reversed_range(client):
    response = client.get(
        "/reports/financial",
        params={"from_date": "2025-02-01", "to_date": "2025-01-01"},
    )

    assert response.status_code == HTTPStatus.BAD_REQUEST


def test_financial_report_requires_dates(client):
    response = client.get("/reports/financial")

    assert response.status_code == HTTPStatus.UNPROCESSABLE_ENTITY
