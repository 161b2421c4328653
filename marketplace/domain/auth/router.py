"""Auth router - admin, provider and customer login endpoints"""

import logging

from fastapi import APIRouter, Depends, Request, Response

from ...dependencies import get_storage
from ...storage import Storage
from .schemas import (
    AdminLoginRequest,
    CustomerRegisterRequest,
    LoginRequest,
    ProviderRegisterRequest,
)
from .service import AuthService, public_user
from .sessions import SESSION_COOKIES, clear_session_cookie, set_session_cookie

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Auth"])


def get_auth_service(storage: Storage = Depends(get_storage)) -> AuthService:
    """Dependency injection for AuthService"""
    return AuthService(storage)


def _logout(kind: str, request: Request, response: Response, service: AuthService) -> dict:
    service.logout(kind, request.cookies.get(SESSION_COOKIES[kind]))
    clear_session_cookie(response, kind)
    return {"success": True}


def _verify(kind: str, request: Request, response: Response, service: AuthService) -> dict:
    token = request.cookies.get(SESSION_COOKIES[kind])
    result = service.verify(kind, token)
    if token and not result["authenticated"]:
        clear_session_cookie(response, kind)
    return result


# ============================================================================
# ADMIN
# ============================================================================


@router.post("/admin/login")
async def admin_login(
    data: AdminLoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    session = service.admin_login(data.password)
    set_session_cookie(response, session)
    return {"success": True}


@router.post("/admin/logout")
async def admin_logout(
    request: Request, response: Response, service: AuthService = Depends(get_auth_service)
):
    return _logout("admin", request, response, service)


@router.get("/admin/verify")
async def admin_verify(
    request: Request, response: Response, service: AuthService = Depends(get_auth_service)
):
    return _verify("admin", request, response, service)


# ============================================================================
# PROVIDER
# ============================================================================


@router.post("/provider/register")
async def provider_register(
    data: ProviderRegisterRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    """Create a provider account and start a provider session"""
    user, session = service.register_provider(data)
    set_session_cookie(response, session)
    return {"success": True, "user": public_user(user), "employeeId": user.employee_id}


@router.post("/provider/login")
async def provider_login(
    data: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    user, session = service.login(data.username, data.password, "provider")
    set_session_cookie(response, session)
    return {"success": True, "user": public_user(user)}


@router.post("/provider/logout")
async def provider_logout(
    request: Request, response: Response, service: AuthService = Depends(get_auth_service)
):
    return _logout("provider", request, response, service)


@router.get("/provider/verify")
async def provider_verify(
    request: Request, response: Response, service: AuthService = Depends(get_auth_service)
):
    return _verify("provider", request, response, service)


# ============================================================================
# CUSTOMER ACCOUNTS
# ============================================================================


@router.post("/customer/register")
async def customer_register(
    data: CustomerRegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    user = service.register_customer(data)
    return {"success": True, "user": public_user(user)}


@router.post("/customer/login")
async def customer_login(
    data: LoginRequest,
    response: Response,
    service: AuthService = Depends(get_auth_service),
):
    user, session = service.login(data.username, data.password, "customer")
    set_session_cookie(response, session)
    return {"success": True, "user": public_user(user)}


@router.post("/customer/logout")
async def customer_logout(
    request: Request, response: Response, service: AuthService = Depends(get_auth_service)
):
    return _logout("customer", request, response, service)


@router.get("/customer/verify")
async def customer_verify(
    request: Request, response: Response, service: AuthService = Depends(get_auth_service)
):
    return _verify("customer", request, response, service)
