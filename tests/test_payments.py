import pytest

from marketplace.domain.payments.service import final_amount_breakdown

from .conftest import checkout_completed_event, sign_payload


@pytest.fixture
def accepted_job(admin_client, create_job):
    job = create_job()
    response = admin_client.patch(
        f"/api/jobs/{job['id']}",
        json={"status": "accepted", "providerId": "prov-1", "estimatedPrice": 300},
    )
    assert response.status_code == 200
    return response.json()


# ============================================================================
# CHECKOUT SESSIONS
# ============================================================================


def test_deposit_checkout_moves_job_to_deposit_due(admin_client, accepted_job, gateway, storage):
    response = admin_client.post(f"/api/deposits/{accepted_job['id']}")
    assert response.status_code == 200
    body = response.json()
    assert body["sessionId"] == "cs_test_1"
    assert body["checkoutUrl"] == "https://checkout.stripe.test/cs_test_1"

    created = gateway.created[0]
    assert created["amount"] == 100
    assert created["metadata"] == {"jobId": accepted_job["id"], "type": "deposit"}

    job = storage.get_job(accepted_job["id"])
    assert job.status == "deposit_due"
    assert job.deposit_checkout_session_id == "cs_test_1"
    assert job.payment_link_token == body["depositLinkToken"]


def test_deposit_requires_accepted_job(admin_client, create_job, gateway):
    job = create_job()
    response = admin_client.post(f"/api/deposits/{job['id']}")
    assert response.status_code == 400
    assert gateway.created == []


def test_deposit_requires_admin(client, accepted_job):
    assert client.post(f"/api/deposits/{accepted_job['id']}").status_code == 401


def test_final_amount_subtracts_paid_deposit(storage, accepted_job):
    job = storage.get_job(accepted_job["id"])
    assert final_amount_breakdown(job) == {"subtotal": 300, "tax": 27, "total": 327}

    paid = job.model_copy(update={"deposit_status": "paid", "deposit_amount": 100})
    assert final_amount_breakdown(paid) == {"subtotal": 200, "tax": 27, "total": 227}


def test_final_checkout_session(admin_client, accepted_job, gateway, storage):
    storage.update_job(accepted_job["id"], {"deposit_status": "paid"})
    response = admin_client.post("/api/checkout-sessions", json={"jobId": accepted_job["id"]})
    assert response.status_code == 200
    body = response.json()

    created = gateway.created[-1]
    assert created["amount"] == 227
    assert created["metadata"]["type"] == "final"
    assert created["success_url"] == f"http://localhost:5000/contract/{accepted_job['id']}"

    job = storage.get_job(accepted_job["id"])
    assert job.payment_link_token == body["paymentLinkToken"]
    assert job.payment_status == "pending"


def test_final_checkout_needs_price(admin_client, create_job):
    job = create_job()
    response = admin_client.post("/api/checkout-sessions", json={"jobId": job["id"]})
    assert response.status_code == 400


def test_payment_link_redirects_to_checkout(admin_client, client, accepted_job):
    token = admin_client.post(f"/api/deposits/{accepted_job['id']}").json()["depositLinkToken"]

    response = client.get(f"/api/pay/{token}", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "https://checkout.stripe.test/cs_test_1"

    missing = client.get("/api/pay/not-a-token", follow_redirects=False)
    assert missing.status_code == 404
    assert missing.json() == {"error": "Payment link not found or expired"}


def test_unconfigured_gateway_returns_500(admin_client, accepted_job, gateway, storage):
    gateway.available = False
    response = admin_client.post(f"/api/deposits/{accepted_job['id']}")
    assert response.status_code == 500
    assert response.json() == {"error": "Payment provider is not configured"}
    assert storage.get_job(accepted_job["id"]).status == "accepted"


# ============================================================================
# WEBHOOK
# ============================================================================


def test_webhook_rejects_bad_signature(send_webhook, accepted_job, storage):
    response = send_webhook(
        "cs_test_1", {"jobId": accepted_job["id"], "type": "deposit"}, secret="whsec_wrong"
    )
    assert response.status_code == 400
    assert response.json()["error"].startswith("Webhook Error")
    assert storage.get_job(accepted_job["id"]).deposit_status == "pending"


def test_webhook_requires_signature_header(client):
    payload = checkout_completed_event("cs_test_1", {})
    response = client.post("/api/webhooks/stripe", content=payload)
    assert response.status_code == 400


def test_deposit_webhook_confirms_job(admin_client, send_webhook, accepted_job, storage):
    admin_client.post(f"/api/deposits/{accepted_job['id']}")

    response = send_webhook("cs_test_1", {"jobId": accepted_job["id"], "type": "deposit"})
    assert response.status_code == 200
    assert response.json() == {"received": True}

    job = storage.get_job(accepted_job["id"])
    assert job.status == "confirmed"
    assert job.deposit_status == "paid"
    assert job.deposit_paid_at is not None
    assert job.payment_link_token is None


def test_deposit_webhook_on_closed_job_still_records_payment(send_webhook, accepted_job, storage):
    storage.update_job(accepted_job["id"], {"status": "cancelled"})

    response = send_webhook("cs_test_9", {"jobId": accepted_job["id"], "type": "deposit"})
    assert response.status_code == 200
    job = storage.get_job(accepted_job["id"])
    assert job.status == "cancelled"
    assert job.deposit_status == "paid"


def test_final_webhook_marks_paid_and_clears_token(admin_client, send_webhook, accepted_job, storage):
    admin_client.post("/api/checkout-sessions", json={"jobId": accepted_job["id"]})

    send_webhook("cs_test_1", {"jobId": accepted_job["id"], "type": "final"})
    job = storage.get_job(accepted_job["id"])
    assert job.payment_status == "paid"
    assert job.payment_link_token is None
    assert job.checkout_session_id == "cs_test_1"


def test_reschedule_fee_webhook_moves_appointment(send_webhook, accepted_job, storage):
    before = storage.get_job(accepted_job["id"])
    metadata = {
        "jobId": accepted_job["id"],
        "type": "reschedule_fee",
        "newDate": "2025-11-03",
        "newTime": "14:30",
    }

    assert send_webhook("cs_test_5", metadata).status_code == 200
    job = storage.get_job(accepted_job["id"])
    assert job.appointment_date_time.isoformat() == "2025-11-03T14:30:00"
    assert job.previous_appointment_date_time == before.appointment_date_time
    assert job.reschedule_count == 1
    assert job.cancellation_fee == 50
    assert job.cancellation_fee_status == "paid"


def test_cancellation_fee_webhook_cancels_job(send_webhook, accepted_job, storage):
    metadata = {"jobId": accepted_job["id"], "type": "cancellation_fee"}

    assert send_webhook("cs_test_6", metadata).status_code == 200
    job = storage.get_job(accepted_job["id"])
    assert job.status == "cancelled"
    assert job.cancelled_at is not None
    assert job.cancellation_fee_status == "paid"


def test_webhook_ignores_other_events(client, accepted_job, storage):
    payload = '{"id": "evt_2", "type": "payment_intent.created", "data": {"object": {}}}'
    response = client.post(
        "/api/webhooks/stripe",
        content=payload,
        headers={"stripe-signature": sign_payload(payload)},
    )
    assert response.status_code == 200
    assert storage.get_job(accepted_job["id"]).version == 2


def test_paid_reschedule_does_not_waive_cancellation_fee(
    register_provider, create_job, send_webhook, schedule_in, storage
):
    provider_client, _ = register_provider()
    job = create_job()
    provider_client.post(f"/api/jobs/{job['id']}/accept", json={"estimatedPrice": 80})
    metadata = {"jobId": job["id"], "type": "reschedule_fee", "newDate": "2025-11-03", "newTime": "14:30"}
    assert send_webhook("cs_test_7", metadata).status_code == 200
    schedule_in(job["id"], 2)

    response = provider_client.patch(f"/api/jobs/{job['id']}", json={"status": "cancelled"})
    assert response.status_code == 400
    assert "cancellation fee" in response.json()["error"]
    assert storage.get_job(job["id"]).status == "accepted"
