"""Providers for the long-lived collaborators kept on app.state"""

from fastapi import Request

from .domain.messaging.notifier import ConnectionRegistry
from .domain.payments.stripe_service import StripeService
from .storage import Storage


def get_storage(request: Request) -> Storage:
    return request.app.state.storage


def get_gateway(request: Request) -> StripeService:
    return request.app.state.gateway


def get_notifier(request: Request) -> ConnectionRegistry:
    return request.app.state.notifier
