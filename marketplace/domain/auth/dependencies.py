"""Cookie-based guards for routes"""

from fastapi import Depends, Request

from ...dependencies import get_storage
from ...errors import UnauthorizedError
from ...schemas import SessionRecord
from ...storage import Storage
from .sessions import SESSION_COOKIES, SessionIssuer


def get_session_issuer(storage: Storage = Depends(get_storage)) -> SessionIssuer:
    return SessionIssuer(storage)


def _require(kind: str, request: Request, issuer: SessionIssuer) -> SessionRecord:
    session = issuer.resolve(kind, request.cookies.get(SESSION_COOKIES[kind]))
    if not session:
        raise UnauthorizedError("Unauthorized")
    return session


def require_admin(
    request: Request, issuer: SessionIssuer = Depends(get_session_issuer)
) -> SessionRecord:
    return _require("admin", request, issuer)


def require_provider(
    request: Request, issuer: SessionIssuer = Depends(get_session_issuer)
) -> SessionRecord:
    return _require("provider", request, issuer)


def require_staff(
    request: Request, issuer: SessionIssuer = Depends(get_session_issuer)
) -> SessionRecord:
    """Admin or provider; the admin session wins when both cookies are present"""
    for kind in ("admin", "provider"):
        session = issuer.resolve(kind, request.cookies.get(SESSION_COOKIES[kind]))
        if session:
            return session
    raise UnauthorizedError("Unauthorized")
