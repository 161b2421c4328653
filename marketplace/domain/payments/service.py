"""
Payment service - checkout flows and webhook reconciliation.

Flows are tagged in the checkout session metadata (``type``):
- deposit: fixed or job-configured deposit, confirms the job once paid
- final: estimated price minus any paid deposit, plus tax
- reschedule_fee / cancellation_fee: late change penalty; the job is only
  changed when the webhook reports the fee as paid
"""

import logging
import secrets
from typing import Any, Optional

from ... import config
from ...errors import LifecycleError, NotFoundError, ValidationFailed
from ...schemas import JobRecord
from ...shared.clock import parse_appointment, utcnow
from ...storage import Storage
from ..jobs import lifecycle
from ..jobs.lifecycle import JobStatus
from .stripe_service import CheckoutSession, StripeService

logger = logging.getLogger(__name__)

DEPOSIT = "deposit"
FINAL = "final"
RESCHEDULE_FEE = "reschedule_fee"
CANCELLATION_FEE = "cancellation_fee"


def generate_payment_link_token() -> str:
    return secrets.token_hex(32)


def final_amount_breakdown(job: JobRecord) -> dict[str, int]:
    """Subtotal is the estimate minus a paid deposit; tax is on the full estimate"""
    if job.estimated_price is None:
        raise ValidationFailed("Job does not have an estimated price")
    subtotal = job.estimated_price
    if job.deposit_status == "paid" and job.deposit_amount:
        subtotal -= job.deposit_amount
    tax = round(job.estimated_price * config.TAX_RATE)
    return {"subtotal": subtotal, "tax": tax, "total": subtotal + tax}


class PaymentService:
    def __init__(self, storage: Storage, gateway: StripeService):
        self.storage = storage
        self.gateway = gateway

    def _get_job(self, job_id: str) -> JobRecord:
        job = self.storage.get_job(job_id)
        if not job:
            raise NotFoundError("Job not found")
        return job

    def _save(self, job: JobRecord, updates: dict[str, Any]) -> JobRecord:
        updated = self.storage.update_job(job.id, updates, expected_version=job.version)
        if not updated:
            raise NotFoundError("Job not found")
        return updated

    # ------------------------------------------------------------------
    # Checkout flows
    # ------------------------------------------------------------------

    def create_deposit_session(self, job_id: str) -> dict[str, Any]:
        """Issue a deposit checkout and move the job to deposit_due"""
        self.gateway.require_available()
        job = self._get_job(job_id)
        updates = lifecycle.transition(job, JobStatus.DEPOSIT_DUE.value)

        amount = job.deposit_amount or config.DEFAULT_DEPOSIT_AMOUNT
        session = self.gateway.create_checkout_session(
            name=f"Deposit - {job.title}",
            description=f"${amount} deposit for {job.service_type}",
            amount=amount,
            success_url=f"{config.BASE_URL}/admin",
            cancel_url=f"{config.BASE_URL}/admin",
            metadata={"jobId": job.id, "type": DEPOSIT},
        )

        token = generate_payment_link_token()
        updates.update(
            {
                "deposit_checkout_session_id": session.id,
                "checkout_session_id": session.id,
                "payment_link_token": token,
            }
        )
        self._save(job, updates)
        logger.info(f"💳 Deposit of ${amount} requested for job {job.id}")
        return {"sessionId": session.id, "depositLinkToken": token, "checkoutUrl": session.url}

    def create_final_session(self, job_id: str) -> dict[str, Any]:
        """Issue the final balance checkout"""
        self.gateway.require_available()
        job = self._get_job(job_id)
        if job.status == JobStatus.CANCELLED.value:
            raise LifecycleError("Cannot bill a cancelled job")
        amounts = final_amount_breakdown(job)

        session = self.gateway.create_checkout_session(
            name=job.title,
            description=f"{job.service_type} - {job.description[:100]}",
            amount=amounts["total"],
            success_url=f"{config.BASE_URL}/contract/{job.id}",
            cancel_url=f"{config.BASE_URL}/admin",
            metadata={"jobId": job.id, "type": FINAL},
        )

        token = generate_payment_link_token()
        self._save(
            job,
            {
                "payment_link_token": token,
                "checkout_session_id": session.id,
                "payment_status": "pending",
            },
        )
        logger.info(f"💳 Final payment of ${amounts['total']} requested for job {job.id}")
        return {"sessionId": session.id, "paymentLinkToken": token, "checkoutUrl": session.url}

    def create_fee_session(
        self, job: JobRecord, fee_type: str, extra_metadata: Optional[dict[str, str]] = None
    ) -> CheckoutSession:
        """Late reschedule/cancellation fee; nothing on the job changes until it is paid"""
        self.gateway.require_available()
        action = "Reschedule" if fee_type == RESCHEDULE_FEE else "Cancellation"
        return self.gateway.create_checkout_session(
            name=f"{action} Fee - {job.title}",
            description=(
                f"Late {action.lower()} fee "
                f"(less than {config.FREE_CHANGE_WINDOW_HOURS} hours notice)"
            ),
            amount=config.LATE_CHANGE_FEE,
            success_url=f"{config.BASE_URL}/my-jobs",
            cancel_url=f"{config.BASE_URL}/my-jobs",
            metadata={"jobId": job.id, "type": fee_type, **(extra_metadata or {})},
        )

    def resolve_payment_link(self, token: str) -> str:
        """Hosted checkout URL for the job's most recent session"""
        job = self.storage.get_job_by_payment_link_token(token)
        if not job or not job.checkout_session_id:
            raise NotFoundError("Payment link not found or expired")
        session = self.gateway.retrieve_checkout_session(job.checkout_session_id)
        if not session.url:
            raise ValidationFailed("Invalid checkout session")
        return session.url

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    def handle_webhook(self, payload: bytes, signature: Optional[str]) -> dict[str, Any]:
        event = self.gateway.construct_event(payload, signature)
        event_type = event.get("type")
        logger.info(f"📥 Stripe webhook received: {event_type}")

        if event_type == "checkout.session.completed":
            self.apply_checkout_completed(event["data"]["object"])

        return {"received": True}

    def apply_checkout_completed(self, session: dict[str, Any]) -> Optional[JobRecord]:
        metadata = session.get("metadata") or {}
        job_id = metadata.get("jobId")
        if not job_id:
            logger.warning(f"⚠️ Checkout session {session.get('id')} has no jobId metadata")
            return None
        job = self.storage.get_job(job_id)
        if not job:
            logger.warning(f"⚠️ Checkout completed for unknown job {job_id}")
            return None

        payment_type = metadata.get("type")
        now = utcnow()

        if payment_type == DEPOSIT:
            updates: dict[str, Any] = {"deposit_status": "paid", "deposit_paid_at": now}
            if job.checkout_session_id == session.get("id"):
                updates["payment_link_token"] = None
            updates = self._try_transition(job, JobStatus.CONFIRMED.value, updates, now)

        elif payment_type == RESCHEDULE_FEE:
            updates = {"cancellation_fee": config.LATE_CHANGE_FEE, "cancellation_fee_status": "paid"}
            new_date, new_time = metadata.get("newDate"), metadata.get("newTime")
            if new_date and new_time:
                try:
                    new_appointment = parse_appointment(new_date, new_time)
                    updates = lifecycle.plan_reschedule(job, new_appointment, fee_paid=True, now=now)
                except (LifecycleError, ValueError) as e:
                    logger.warning(f"⚠️ Paid reschedule for job {job.id} not applied: {e}")
            else:
                logger.warning(f"⚠️ Reschedule fee for job {job.id} has no new date/time")

        elif payment_type == CANCELLATION_FEE:
            updates = {"cancellation_fee": config.LATE_CHANGE_FEE, "cancellation_fee_status": "paid"}
            updates = self._try_transition(
                job, JobStatus.CANCELLED.value, updates, now, fee_paid=True
            )

        else:
            updates = {
                "payment_status": "paid",
                "checkout_session_id": session.get("id"),
                "payment_link_token": None,
            }

        updated = self._save(job, updates)
        logger.info(f"✅ Payment ({payment_type or FINAL}) recorded for job {job.id}")
        return updated

    def _try_transition(self, job, target, updates, now, fee_paid=False):
        """Record the payment even when the job can no longer make the move"""
        try:
            return lifecycle.transition(job, target, updates, fee_paid=fee_paid, now=now)
        except LifecycleError as e:
            logger.warning(f"⚠️ Payment recorded for job {job.id} without status change: {e.message}")
            return updates
