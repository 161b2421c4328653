"""Job router - FastAPI endpoints for job operations"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...dependencies import get_storage
from ...schemas import JobFilters, JobResponse, SessionRecord
from ...shared.clock import to_naive_utc
from ...storage import Storage
from ..auth.dependencies import require_provider, require_staff
from .schemas import AcceptJobRequest, CheckOutRequest, ContractSignRequest, JobCreate, JobUpdate
from .service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["Jobs"])


def get_job_service(storage: Storage = Depends(get_storage)) -> JobService:
    """Dependency injection for JobService"""
    return JobService(storage)


# ============================================================================
# CORE CRUD OPERATIONS
# ============================================================================


@router.post("", response_model=JobResponse)
async def create_job(data: JobCreate, service: JobService = Depends(get_job_service)):
    """Public job request form"""
    return service.create_job(data)


@router.get("", response_model=list[JobResponse])
async def list_jobs(
    service: JobService = Depends(get_job_service),
    status: Optional[str] = Query(None),
    service_type: Optional[str] = Query(None, alias="serviceType"),
    is_urgent: Optional[bool] = Query(None, alias="isUrgent"),
    customer_email: Optional[str] = Query(None, alias="customerEmail"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
):
    """List jobs, newest first, with optional filters"""
    filters = JobFilters(
        status=status,
        service_type=service_type,
        is_urgent=is_urgent,
        customer_email=customer_email.strip().lower() if customer_email else None,
        start_date=to_naive_utc(start_date),
        end_date=to_naive_utc(end_date),
    )
    return service.list_jobs(filters)


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, service: JobService = Depends(get_job_service)):
    return service.get_job(job_id)


@router.patch("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str,
    data: JobUpdate,
    staff: SessionRecord = Depends(require_staff),
    service: JobService = Depends(get_job_service),
):
    """Partial update; status changes are validated against the job lifecycle"""
    return service.update_job(job_id, data, admin=staff.kind == "admin")


# ============================================================================
# LIFECYCLE ACTIONS
# ============================================================================


@router.post("/{job_id}/accept", response_model=JobResponse)
async def accept_job(
    job_id: str,
    data: AcceptJobRequest,
    provider: SessionRecord = Depends(require_provider),
    service: JobService = Depends(get_job_service),
):
    return service.accept_job(job_id, provider.principal_id, data.estimated_price, data.version)


@router.post("/{job_id}/check-in", response_model=JobResponse)
async def check_in(
    job_id: str,
    _staff: SessionRecord = Depends(require_staff),
    service: JobService = Depends(get_job_service),
):
    return service.check_in(job_id)


@router.post("/{job_id}/check-out", response_model=JobResponse)
async def check_out(
    job_id: str,
    data: Optional[CheckOutRequest] = None,
    _staff: SessionRecord = Depends(require_staff),
    service: JobService = Depends(get_job_service),
):
    return service.check_out(job_id, data.notes if data else None)


@router.post("/{job_id}/complete", response_model=JobResponse)
async def complete_job(
    job_id: str,
    _staff: SessionRecord = Depends(require_staff),
    service: JobService = Depends(get_job_service),
):
    return service.complete_job(job_id)


@router.post("/{job_id}/contract", response_model=JobResponse)
async def sign_contract(
    job_id: str,
    data: ContractSignRequest,
    service: JobService = Depends(get_job_service),
):
    """Contract signing page submits terms and both signatures"""
    return service.sign_contract(job_id, data)
