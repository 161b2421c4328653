"""Bearer sessions for the admin, provider and customer namespaces"""

import logging
import secrets
from datetime import timedelta
from typing import Optional

from fastapi import Response

from ... import config
from ...schemas import SessionRecord
from ...shared.clock import utcnow
from ...storage import Storage

logger = logging.getLogger(__name__)

SESSION_COOKIES = {
    "admin": "adminToken",
    "provider": "providerToken",
    "customer": "customerToken",
}


def session_lifetime(kind: str) -> timedelta:
    if kind == "admin":
        return timedelta(hours=config.ADMIN_SESSION_HOURS)
    if kind == "provider":
        return timedelta(days=config.PROVIDER_SESSION_DAYS)
    return timedelta(days=config.CUSTOMER_SESSION_DAYS)


def generate_token() -> str:
    return secrets.token_hex(32)


class SessionIssuer:
    """Issues, resolves and revokes session tokens; expiry is checked on lookup"""

    def __init__(self, storage: Storage):
        self.storage = storage

    def issue(self, kind: str, principal_id: Optional[str] = None) -> SessionRecord:
        expires_at = utcnow() + session_lifetime(kind)
        return self.storage.create_session(kind, generate_token(), expires_at, principal_id)

    def resolve(self, kind: str, token: Optional[str]) -> Optional[SessionRecord]:
        """Return the live session for a token; expired sessions are deleted"""
        if not token:
            return None
        session = self.storage.get_session_by_token(kind, token)
        if not session:
            return None
        if utcnow() > session.expires_at:
            self.storage.delete_session(kind, session.id)
            logger.info(f"⚠️ Expired {kind} session removed")
            return None
        return session

    def revoke(self, kind: str, token: Optional[str]) -> bool:
        if not token:
            return False
        session = self.storage.get_session_by_token(kind, token)
        if not session:
            return False
        return self.storage.delete_session(kind, session.id)


def set_session_cookie(response: Response, session: SessionRecord) -> None:
    response.set_cookie(
        key=SESSION_COOKIES[session.kind],
        value=session.token,
        httponly=True,
        secure=config.is_production(),
        samesite="lax",
        max_age=int(session_lifetime(session.kind).total_seconds()),
        path="/",
    )


def clear_session_cookie(response: Response, kind: str) -> None:
    response.delete_cookie(key=SESSION_COOKIES[kind], path="/")
