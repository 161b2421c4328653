"""Auth service - logins, registration and session introspection"""

import logging
import secrets
import time
from typing import Any, Optional

from ... import config
from ...errors import ConfigurationError, ConflictError, ForbiddenError, UnauthorizedError
from ...schemas import PublicUser, SessionRecord, UserRecord
from ...storage import Storage
from .passwords import constant_time_compare, hash_password, is_hashed, verify_password
from .schemas import CustomerRegisterRequest, ProviderRegisterRequest
from .sessions import SessionIssuer

logger = logging.getLogger(__name__)


def generate_employee_id() -> str:
    """EMP-<epoch ms>-<4 random digits>"""
    return f"EMP-{int(time.time() * 1000)}-{1000 + secrets.randbelow(9000)}"


def public_user(user: UserRecord) -> dict[str, Any]:
    return PublicUser.model_validate(user).model_dump(by_alias=True)


class AuthService:
    def __init__(self, storage: Storage):
        self.storage = storage
        self.sessions = SessionIssuer(storage)

    def admin_login(self, password: str) -> SessionRecord:
        if not config.ADMIN_PASSWORD:
            logger.error("❌ ADMIN_PASSWORD is not configured")
            raise ConfigurationError("Admin password not configured")
        if not constant_time_compare(password, config.ADMIN_PASSWORD):
            logger.warning("⚠️ Failed admin login attempt")
            raise UnauthorizedError("Invalid password")
        logger.info("✅ Admin logged in")
        return self.sessions.issue("admin")

    def register_provider(self, data: ProviderRegisterRequest) -> tuple[UserRecord, SessionRecord]:
        """Create a provider account and log it in"""
        self._ensure_username_free(data.username)
        user = self.storage.create_user(
            {
                "username": data.username,
                "password": hash_password(data.password),
                "role": "provider",
                "first_name": data.first_name,
                "last_name": data.last_name,
                "phone_number": data.phone_number,
                "employee_id": generate_employee_id(),
            }
        )
        logger.info(f"✅ Provider registered: {user.id} ({user.employee_id})")
        return user, self.sessions.issue("provider", user.id)

    def register_customer(self, data: CustomerRegisterRequest) -> UserRecord:
        self._ensure_username_free(data.username)
        user = self.storage.create_user(
            {
                "username": data.username,
                "password": hash_password(data.password),
                "role": "customer",
                "first_name": data.first_name,
                "last_name": data.last_name,
                "phone_number": data.phone_number,
            }
        )
        logger.info(f"✅ Customer registered: {user.id}")
        return user

    def login(self, username: str, password: str, role: str) -> tuple[UserRecord, SessionRecord]:
        """
        Password login for providers and customers.

        Legacy accounts whose password was stored in plaintext are upgraded
        to a bcrypt hash on their first successful login.
        """
        user = self.storage.get_user_by_username(username)
        if not user or not verify_password(password, user.password):
            raise UnauthorizedError("Invalid username or password")
        if user.role != role:
            raise ForbiddenError(f"Not authorized as a {role}")

        if not is_hashed(user.password):
            user = self.storage.update_user(user.id, {"password": hash_password(password)}) or user
            logger.info(f"✅ Upgraded legacy password storage for user {user.id}")

        logger.info(f"✅ {role.capitalize()} logged in: {user.id}")
        return user, self.sessions.issue(role, user.id)

    def logout(self, kind: str, token: Optional[str]) -> None:
        self.sessions.revoke(kind, token)

    def verify(self, kind: str, token: Optional[str]) -> dict[str, Any]:
        """Session introspection for the dashboard pages"""
        session = self.sessions.resolve(kind, token)
        if not session:
            return {"authenticated": False}
        if kind == "admin":
            return {"authenticated": True}
        user = self.storage.get_user(session.principal_id) if session.principal_id else None
        return {"authenticated": True, "user": public_user(user) if user else None}

    def _ensure_username_free(self, username: str) -> None:
        if self.storage.get_user_by_username(username):
            raise ConflictError("Username already exists")
