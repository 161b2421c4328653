"""Customer self-service - email access codes, reschedules and cancellations"""

import logging
import secrets
import string
from datetime import timedelta
from typing import Any, Optional

from ... import config
from ...errors import LifecycleError, NotFoundError, UnauthorizedError, ValidationFailed
from ...schemas import JobRecord
from ...shared.clock import parse_appointment, utcnow
from ...storage import Storage
from ..auth.passwords import constant_time_compare
from ..auth.sessions import generate_token
from ..jobs import lifecycle
from ..jobs.lifecycle import JobStatus
from ..payments.service import CANCELLATION_FEE, RESCHEDULE_FEE, PaymentService

logger = logging.getLogger(__name__)


def generate_verification_code(length: int = 6) -> str:
    """Generate a numeric verification code"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


class CustomerAccessService:
    def __init__(self, storage: Storage, payments: PaymentService):
        self.storage = storage
        self.payments = payments

    # ------------------------------------------------------------------
    # Email access codes
    # ------------------------------------------------------------------

    def request_access(self, email: str) -> dict[str, Any]:
        """
        Issue a six digit code for an email that has jobs on file.

        Only the newest code for an email is valid. Outside production the
        code is returned in the response since no email is sent.
        """
        if not self.storage.get_jobs_by_customer_email(email):
            raise NotFoundError("No jobs found for this email")

        code = generate_verification_code()
        expires_at = utcnow() + timedelta(minutes=config.VERIFICATION_CODE_TTL_MINUTES)
        self.storage.create_verification_code(email, code, expires_at)

        result: dict[str, Any] = {"message": "Verification code sent"}
        if not config.is_production():
            logger.info(f"📧 Verification code for {email}: {code}")
            result["code"] = code
        return result

    def verify_access(self, email: str, code: str) -> dict[str, Any]:
        """Exchange a valid code for an access token attached to every job of the email"""
        record = self.storage.get_latest_verification_code(email)
        if not record or not constant_time_compare(record.code, code):
            raise UnauthorizedError("Invalid or expired verification code")
        if utcnow() > record.expires_at:
            self.storage.delete_verification_code(record.id)
            raise UnauthorizedError("Invalid or expired verification code")

        access_token = generate_token()
        jobs = self.storage.get_jobs_by_customer_email(email)
        for job in jobs:
            self.storage.update_job(job.id, {"customer_access_token": access_token})
        self.storage.delete_verification_code(record.id)

        logger.info(f"✅ Customer access granted for {len(jobs)} job(s)")
        return {"accessToken": access_token, "message": "Access granted successfully"}

    def list_jobs(self, access_token: Optional[str]) -> list[JobRecord]:
        if not access_token:
            raise ValidationFailed("Access token is required")
        job = self.storage.get_job_by_customer_access_token(access_token)
        if not job:
            raise NotFoundError("No jobs found for this access token")
        return self.storage.get_jobs_by_customer_email(job.customer_email)

    # ------------------------------------------------------------------
    # Reschedule / cancel
    # ------------------------------------------------------------------

    def _authorized_job(self, job_id: str, access_token: str) -> JobRecord:
        job = self.storage.get_job(job_id)
        if not job:
            raise NotFoundError("Job not found")
        if not job.customer_access_token or not constant_time_compare(
            job.customer_access_token, access_token
        ):
            raise UnauthorizedError("Invalid access token")
        if lifecycle.is_terminal(job):
            raise LifecycleError(f"Job is already {job.status}")
        if job.appointment_date_time is None:
            raise LifecycleError("No appointment scheduled")
        return job

    def reschedule(
        self, job_id: str, access_token: str, new_date: str, new_time: str
    ) -> dict[str, Any]:
        """Free with enough notice; otherwise returns a fee checkout and leaves the job alone"""
        job = self._authorized_job(job_id, access_token)
        new_appointment = parse_appointment(new_date, new_time)

        if lifecycle.is_free_change(job):
            updates = lifecycle.plan_reschedule(job, new_appointment)
            self.storage.update_job(job.id, updates, expected_version=job.version)
            logger.info(f"✅ Job {job.id} rescheduled to {new_appointment.isoformat()}")
            return {
                "success": True,
                "message": "Appointment rescheduled successfully",
                "newAppointmentDateTime": new_appointment.isoformat(),
            }

        session = self.payments.create_fee_session(
            job, RESCHEDULE_FEE, {"newDate": new_date, "newTime": new_time}
        )
        return {
            "requiresPayment": True,
            "checkoutUrl": session.url,
            "message": (
                f"Reschedule within {config.FREE_CHANGE_WINDOW_HOURS} hours "
                f"requires a ${config.LATE_CHANGE_FEE} fee"
            ),
        }

    def cancel(self, job_id: str, access_token: str) -> dict[str, Any]:
        job = self._authorized_job(job_id, access_token)

        if lifecycle.is_free_change(job):
            updates = lifecycle.transition(job, JobStatus.CANCELLED.value)
            self.storage.update_job(job.id, updates, expected_version=job.version)
            return {"success": True, "message": "Appointment cancelled successfully"}

        session = self.payments.create_fee_session(job, CANCELLATION_FEE)
        return {
            "requiresPayment": True,
            "checkoutUrl": session.url,
            "message": (
                f"Cancellation within {config.FREE_CHANGE_WINDOW_HOURS} hours "
                f"requires a ${config.LATE_CHANGE_FEE} fee"
            ),
        }
