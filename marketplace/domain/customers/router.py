"""Customer self-service router - access codes and appointment changes"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...schemas import JobResponse
from ..payments.router import get_payment_service
from ..payments.service import PaymentService
from .schemas import CancelRequest, RequestAccessRequest, RescheduleRequest, VerifyAccessRequest
from .service import CustomerAccessService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customer", tags=["Customers"])


def get_customer_service(
    payments: PaymentService = Depends(get_payment_service),
) -> CustomerAccessService:
    """Dependency injection for CustomerAccessService"""
    return CustomerAccessService(payments.storage, payments)


@router.post("/request-access")
async def request_access(
    data: RequestAccessRequest, service: CustomerAccessService = Depends(get_customer_service)
):
    return service.request_access(data.email)


@router.post("/verify-access")
async def verify_access(
    data: VerifyAccessRequest, service: CustomerAccessService = Depends(get_customer_service)
):
    return service.verify_access(data.email, data.code)


@router.get("/jobs", response_model=list[JobResponse])
async def customer_jobs(
    token: Optional[str] = Query(None),
    service: CustomerAccessService = Depends(get_customer_service),
):
    """All jobs for the email that owns the access token"""
    return service.list_jobs(token)


@router.post("/reschedule")
async def reschedule(
    data: RescheduleRequest, service: CustomerAccessService = Depends(get_customer_service)
):
    return service.reschedule(data.job_id, data.access_token, data.new_date, data.new_time)


@router.post("/cancel")
async def cancel(data: CancelRequest, service: CustomerAccessService = Depends(get_customer_service)):
    return service.cancel(data.job_id, data.access_token)
