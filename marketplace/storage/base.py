"""Storage interface shared by the in-memory and relational backends"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from ..schemas import (
    ConversationRecord,
    JobFilters,
    JobRecord,
    MessageRecord,
    SessionRecord,
    UserRecord,
    VerificationCodeRecord,
)

SESSION_KINDS = ("admin", "provider", "customer")


class Storage(ABC):
    """
    CRUD-plus-query operations for every entity.

    Lookups of unknown ids return None. Job updates bump ``version`` and, when
    ``expected_version`` is given, raise ConflictError on a stale version.
    """

    # Users
    @abstractmethod
    def create_user(self, data: dict[str, Any]) -> UserRecord: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def get_user_by_username(self, username: str) -> Optional[UserRecord]: ...

    @abstractmethod
    def update_user(self, user_id: str, updates: dict[str, Any]) -> Optional[UserRecord]: ...

    # Jobs
    @abstractmethod
    def create_job(self, data: dict[str, Any]) -> JobRecord: ...

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[JobRecord]: ...

    @abstractmethod
    def list_jobs(self, filters: Optional[JobFilters] = None) -> list[JobRecord]: ...

    @abstractmethod
    def get_jobs_by_customer_email(self, email: str) -> list[JobRecord]: ...

    @abstractmethod
    def get_job_by_payment_link_token(self, token: str) -> Optional[JobRecord]: ...

    @abstractmethod
    def get_job_by_customer_access_token(self, token: str) -> Optional[JobRecord]: ...

    @abstractmethod
    def update_job(
        self,
        job_id: str,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Optional[JobRecord]: ...

    # Conversations and messages
    @abstractmethod
    def create_conversation(self, data: dict[str, Any]) -> ConversationRecord: ...

    @abstractmethod
    def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]: ...

    @abstractmethod
    def get_conversation_by_job_id(self, job_id: str) -> Optional[ConversationRecord]: ...

    @abstractmethod
    def get_conversations_by_user_id(self, user_id: str) -> list[ConversationRecord]: ...

    @abstractmethod
    def create_message(self, data: dict[str, Any]) -> MessageRecord: ...

    @abstractmethod
    def get_messages_by_conversation_id(self, conversation_id: str) -> list[MessageRecord]: ...

    @abstractmethod
    def get_last_message_by_conversation_id(
        self, conversation_id: str
    ) -> Optional[MessageRecord]: ...

    # Sessions
    @abstractmethod
    def create_session(
        self,
        kind: str,
        token: str,
        expires_at: datetime,
        principal_id: Optional[str] = None,
    ) -> SessionRecord: ...

    @abstractmethod
    def get_session_by_token(self, kind: str, token: str) -> Optional[SessionRecord]: ...

    @abstractmethod
    def delete_session(self, kind: str, session_id: str) -> bool: ...

    # Verification codes
    @abstractmethod
    def create_verification_code(
        self, email: str, code: str, expires_at: datetime
    ) -> VerificationCodeRecord: ...

    @abstractmethod
    def get_latest_verification_code(self, email: str) -> Optional[VerificationCodeRecord]: ...

    @abstractmethod
    def delete_verification_code(self, code_id: str) -> bool: ...


def check_session_kind(kind: str) -> None:
    if kind not in SESSION_KINDS:
        raise ValueError(f"Unknown session kind: {kind}")


def check_fields(updates: dict[str, Any], allowed: frozenset) -> None:
    unknown = set(updates) - allowed
    if unknown:
        raise ValueError(f"Unknown fields: {', '.join(sorted(unknown))}")
