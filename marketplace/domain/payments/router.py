"""Payment router - checkout sessions, payment links and the Stripe webhook"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from ...dependencies import get_gateway, get_storage
from ...schemas import RequestModel, SessionRecord
from ...storage import Storage
from ..auth.dependencies import require_admin
from .service import PaymentService
from .stripe_service import StripeService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Payments"])


class FinalCheckoutRequest(RequestModel):
    job_id: str


def get_payment_service(
    storage: Storage = Depends(get_storage),
    gateway: StripeService = Depends(get_gateway),
) -> PaymentService:
    """Dependency injection for PaymentService"""
    return PaymentService(storage, gateway)


@router.post("/deposits/{job_id}")
async def create_deposit(
    job_id: str,
    _admin: SessionRecord = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Create a deposit checkout session and move the job to deposit_due"""
    return service.create_deposit_session(job_id)


@router.post("/checkout-sessions")
async def create_final_checkout(
    data: FinalCheckoutRequest,
    _admin: SessionRecord = Depends(require_admin),
    service: PaymentService = Depends(get_payment_service),
):
    """Create the final balance checkout session"""
    return service.create_final_session(data.job_id)


@router.get("/pay/{token}")
async def pay_link_redirect(token: str, service: PaymentService = Depends(get_payment_service)):
    """Public payment link; redirects to the hosted checkout page"""
    return RedirectResponse(url=service.resolve_payment_link(token), status_code=303)


@router.post("/webhooks/stripe")
async def stripe_webhook(request: Request, service: PaymentService = Depends(get_payment_service)):
    payload = await request.body()
    return service.handle_webhook(payload, request.headers.get("stripe-signature"))
