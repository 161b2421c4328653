from datetime import timedelta

import pytest

from marketplace import config
from marketplace.shared.clock import utcnow


@pytest.fixture
def access_token(client):
    """Grant access for a@b.com and return the token"""

    def _grant(email: str = "a@b.com"):
        code = client.post("/api/customer/request-access", json={"email": email}).json()["code"]
        response = client.post("/api/customer/verify-access", json={"email": email, "code": code})
        assert response.status_code == 200
        return response.json()["accessToken"]

    return _grant


# ============================================================================
# ACCESS CODES
# ============================================================================


def test_request_access_needs_jobs_on_file(client):
    response = client.post("/api/customer/request-access", json={"email": "nobody@b.com"})
    assert response.status_code == 404
    assert response.json() == {"error": "No jobs found for this email"}


def test_verify_access_attaches_token_to_every_job(client, create_job, storage):
    first = create_job()
    second = create_job(serviceType="Brakes")
    other = create_job(customerEmail="c@d.com")

    requested = client.post("/api/customer/request-access", json={"email": "A@B.com"}).json()
    assert requested["message"] == "Verification code sent"
    assert len(requested["code"]) == 6

    response = client.post(
        "/api/customer/verify-access", json={"email": "a@b.com", "code": requested["code"]}
    )
    assert response.status_code == 200
    token = response.json()["accessToken"]

    assert storage.get_job(first["id"]).customer_access_token == token
    assert storage.get_job(second["id"]).customer_access_token == token
    assert storage.get_job(other["id"]).customer_access_token is None

    # codes are single use
    reused = client.post(
        "/api/customer/verify-access", json={"email": "a@b.com", "code": requested["code"]}
    )
    assert reused.status_code == 401


def test_code_is_hidden_in_production(client, create_job, monkeypatch):
    create_job()
    monkeypatch.setattr(config, "APP_ENV", "production")
    body = client.post("/api/customer/request-access", json={"email": "a@b.com"}).json()
    assert body == {"message": "Verification code sent"}


def test_newer_code_supersedes_older(client, create_job, storage):
    create_job()
    expires = utcnow() + timedelta(minutes=15)
    storage.create_verification_code("a@b.com", "111111", expires)
    storage.create_verification_code("a@b.com", "222222", expires)

    stale = client.post("/api/customer/verify-access", json={"email": "a@b.com", "code": "111111"})
    assert stale.status_code == 401
    assert stale.json() == {"error": "Invalid or expired verification code"}

    fresh = client.post("/api/customer/verify-access", json={"email": "a@b.com", "code": "222222"})
    assert fresh.status_code == 200


def test_expired_code_is_rejected(client, create_job, storage):
    create_job()
    storage.create_verification_code("a@b.com", "123456", utcnow() - timedelta(seconds=1))

    response = client.post("/api/customer/verify-access", json={"email": "a@b.com", "code": "123456"})
    assert response.status_code == 401
    assert storage.get_latest_verification_code("a@b.com") is None


def test_malformed_code_is_a_validation_error(client):
    response = client.post("/api/customer/verify-access", json={"email": "a@b.com", "code": "12ab"})
    assert response.status_code == 400


def test_jobs_by_access_token(client, create_job, access_token):
    job = create_job()
    create_job(customerEmail="c@d.com")
    token = access_token()

    response = client.get("/api/customer/jobs", params={"token": token})
    assert response.status_code == 200
    assert [j["id"] for j in response.json()] == [job["id"]]
    assert "customerAccessToken" not in response.json()[0]

    assert client.get("/api/customer/jobs").status_code == 400
    assert client.get("/api/customer/jobs", params={"token": "bogus"}).status_code == 404


# ============================================================================
# RESCHEDULE AND CANCEL
# ============================================================================


def test_free_reschedule_applies_immediately(client, create_job, access_token, schedule_in, storage, gateway):
    job = create_job()
    token = access_token()
    original = schedule_in(job["id"], 48).appointment_date_time

    response = client.post(
        "/api/customer/reschedule",
        json={"jobId": job["id"], "accessToken": token, "newDate": "2030-01-15", "newTime": "09:30"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["newAppointmentDateTime"] == "2030-01-15T09:30:00"

    stored = storage.get_job(job["id"])
    assert stored.appointment_date_time.isoformat() == "2030-01-15T09:30:00"
    assert stored.previous_appointment_date_time == original
    assert stored.reschedule_count == 1
    assert gateway.created == []


def test_late_reschedule_requires_fee(client, create_job, access_token, schedule_in, storage, gateway):
    job = create_job()
    token = access_token()
    before = schedule_in(job["id"], 5)

    response = client.post(
        "/api/customer/reschedule",
        json={"jobId": job["id"], "accessToken": token, "newDate": "2030-01-15", "newTime": "09:30"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["requiresPayment"] is True
    assert body["checkoutUrl"] == "https://checkout.stripe.test/cs_test_1"

    created = gateway.created[0]
    assert created["amount"] == 50
    assert created["metadata"] == {
        "jobId": job["id"],
        "type": "reschedule_fee",
        "newDate": "2030-01-15",
        "newTime": "09:30",
    }
    stored = storage.get_job(job["id"])
    assert stored.appointment_date_time == before.appointment_date_time
    assert stored.version == before.version


def test_free_cancel(client, create_job, access_token, schedule_in, storage, gateway):
    job = create_job()
    token = access_token()
    schedule_in(job["id"], 30)

    response = client.post("/api/customer/cancel", json={"jobId": job["id"], "accessToken": token})
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Appointment cancelled successfully"}
    stored = storage.get_job(job["id"])
    assert stored.status == "cancelled"
    assert stored.cancelled_at is not None
    assert gateway.created == []


def test_late_cancel_requires_fee(client, create_job, access_token, schedule_in, storage, gateway):
    job = create_job()
    token = access_token()
    schedule_in(job["id"], 2)

    response = client.post("/api/customer/cancel", json={"jobId": job["id"], "accessToken": token})
    body = response.json()
    assert body["requiresPayment"] is True
    assert gateway.created[0]["metadata"]["type"] == "cancellation_fee"
    assert storage.get_job(job["id"]).status == "requested"


def test_cancel_with_wrong_token(client, create_job, access_token, schedule_in):
    job = create_job()
    access_token()
    schedule_in(job["id"], 30)

    response = client.post("/api/customer/cancel", json={"jobId": job["id"], "accessToken": "wrong"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid access token"}


def test_cancel_closed_job(client, create_job, access_token, storage):
    job = create_job()
    token = access_token()
    storage.update_job(job["id"], {"status": "completed"})

    response = client.post("/api/customer/cancel", json={"jobId": job["id"], "accessToken": token})
    assert response.status_code == 400


def test_change_without_appointment(client, create_job, access_token, storage):
    job = create_job()
    token = access_token()
    storage.update_job(job["id"], {"appointment_date_time": None})

    response = client.post("/api/customer/cancel", json={"jobId": job["id"], "accessToken": token})
    assert response.status_code == 400
    assert response.json() == {"error": "No appointment scheduled"}


def test_access_token_is_not_readable_from_public_listing(client, create_job, access_token):
    job = create_job()
    token = access_token()

    for listed in client.get("/api/jobs").json():
        assert token not in listed.values()
        assert "customerAccessToken" not in listed
    assert client.get(f"/api/jobs/{job['id']}").json()["id"] == job["id"]
