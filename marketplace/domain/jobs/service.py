"""Job service - Business logic for job operations"""

import logging
from datetime import timedelta
from typing import Optional

from ... import config
from ...errors import ConflictError, NotFoundError
from ...schemas import JobFilters, JobRecord
from ...shared.clock import parse_appointment, utcnow
from ...storage import Storage
from . import lifecycle
from .lifecycle import JobStatus
from .schemas import ContractSignRequest, JobCreate, JobUpdate

logger = logging.getLogger(__name__)


class JobService:
    """Service layer for job business logic"""

    def __init__(self, storage: Storage):
        self.storage = storage

    def get_job(self, job_id: str) -> JobRecord:
        job = self.storage.get_job(job_id)
        if not job:
            raise NotFoundError("Job not found")
        return job

    def list_jobs(self, filters: Optional[JobFilters] = None) -> list[JobRecord]:
        return self.storage.list_jobs(filters)

    def create_job(self, data: JobCreate) -> JobRecord:
        """Create a job in the requested state from the public request form"""
        fields = data.model_dump(exclude_none=True)
        fields["title"] = data.title or data.service_type
        if data.appointment_date_time is None:
            fields["appointment_date_time"] = parse_appointment(
                data.preferred_date, data.preferred_time
            )
        if data.is_urgent and data.response_deadline is None:
            fields["response_deadline"] = utcnow() + timedelta(hours=config.URGENT_RESPONSE_HOURS)
        fields.setdefault("deposit_amount", config.DEFAULT_DEPOSIT_AMOUNT)
        fields["status"] = JobStatus.REQUESTED.value

        job = self.storage.create_job(fields)
        logger.info(f"✅ Job {job.id} created ({job.service_type}, urgent={job.is_urgent})")
        return job

    def update_job(self, job_id: str, data: JobUpdate, admin: bool = False) -> JobRecord:
        """
        Apply a staff edit. A status change goes through the lifecycle rules;
        admins may confirm without a paid deposit and cancel without notice.
        """
        job = self.get_job(job_id)
        updates = data.model_dump(exclude_none=True)
        status = updates.pop("status", None)
        if status:
            updates = lifecycle.transition(job, status, updates, admin_override=admin)
        if not updates:
            return job
        return self._save(job, updates)

    def accept_job(
        self,
        job_id: str,
        provider_id: str,
        estimated_price: int,
        expected_version: Optional[int] = None,
    ) -> JobRecord:
        """Assign a provider and price in one conditional write; the first accept wins"""
        job = self.get_job(job_id)
        if job.status == JobStatus.ACCEPTED.value:
            raise ConflictError("Job has already been accepted")
        updates = lifecycle.transition(
            job,
            JobStatus.ACCEPTED.value,
            {"provider_id": provider_id, "estimated_price": estimated_price},
        )
        version = expected_version if expected_version is not None else job.version
        updated = self.storage.update_job(job_id, updates, expected_version=version)
        if not updated:
            raise NotFoundError("Job not found")
        logger.info(f"✅ Job {job_id} accepted by provider {provider_id} at ${estimated_price}")
        return updated

    def check_in(self, job_id: str) -> JobRecord:
        job = self.get_job(job_id)
        return self._save(job, lifecycle.check_in(job))

    def check_out(self, job_id: str, notes: Optional[str] = None) -> JobRecord:
        job = self.get_job(job_id)
        return self._save(job, lifecycle.check_out(job, notes))

    def complete_job(self, job_id: str) -> JobRecord:
        job = self.get_job(job_id)
        return self._save(job, lifecycle.transition(job, JobStatus.COMPLETED.value))

    def sign_contract(self, job_id: str, data: ContractSignRequest) -> JobRecord:
        """Store contract terms with both signatures"""
        job = self.get_job(job_id)
        updates = {
            "contract_terms": data.contract_terms,
            "customer_signature": data.customer_signature,
            "provider_signature": data.provider_signature,
            "signed_at": utcnow(),
        }
        signed = self._save(job, updates)
        logger.info(f"✅ Contract signed for job {job_id}")
        return signed

    def _save(self, job: JobRecord, updates: dict) -> JobRecord:
        updated = self.storage.update_job(job.id, updates, expected_version=job.version)
        if not updated:
            raise NotFoundError("Job not found")
        return updated
