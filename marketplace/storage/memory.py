"""In-memory storage used when no DATABASE_URL is configured. Data is lost on restart."""

import uuid
from datetime import datetime
from typing import Any, Optional

from ..errors import ConflictError
from ..schemas import (
    JOB_FIELDS,
    USER_FIELDS,
    ConversationRecord,
    JobFilters,
    JobRecord,
    MessageRecord,
    SessionRecord,
    UserRecord,
    VerificationCodeRecord,
)
from ..shared.clock import utcnow
from .base import Storage, check_fields, check_session_kind


def _new_id() -> str:
    return str(uuid.uuid4())


def job_matches(job: JobRecord, filters: JobFilters) -> bool:
    if filters.status and job.status != filters.status:
        return False
    if filters.service_type and job.service_type != filters.service_type:
        return False
    if filters.is_urgent is not None and job.is_urgent != filters.is_urgent:
        return False
    if filters.customer_email and job.customer_email != filters.customer_email:
        return False
    if filters.start_date or filters.end_date:
        if job.appointment_date_time is None:
            return False
        if filters.start_date and job.appointment_date_time < filters.start_date:
            return False
        if filters.end_date and job.appointment_date_time > filters.end_date:
            return False
    return True


class MemStorage(Storage):
    def __init__(self):
        self.users: dict[str, UserRecord] = {}
        self.jobs: dict[str, JobRecord] = {}
        self.conversations: dict[str, ConversationRecord] = {}
        self.messages: dict[str, MessageRecord] = {}
        self.last_message_by_conversation_id: dict[str, MessageRecord] = {}
        self.sessions: dict[str, dict[str, SessionRecord]] = {
            "admin": {},
            "provider": {},
            "customer": {},
        }
        self.verification_codes: dict[str, VerificationCodeRecord] = {}

    # Users

    def create_user(self, data: dict[str, Any]) -> UserRecord:
        check_fields(data, USER_FIELDS)
        if self.get_user_by_username(data["username"]):
            raise ConflictError("Username already exists")
        user = UserRecord(**{**data, "id": _new_id(), "created_at": utcnow()})
        self.users[user.id] = user
        return user

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        return self.users.get(user_id)

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        return next((u for u in self.users.values() if u.username == username), None)

    def update_user(self, user_id: str, updates: dict[str, Any]) -> Optional[UserRecord]:
        check_fields(updates, USER_FIELDS)
        user = self.users.get(user_id)
        if not user:
            return None
        updated = user.model_copy(update=updates)
        self.users[user_id] = updated
        return updated

    # Jobs

    def create_job(self, data: dict[str, Any]) -> JobRecord:
        check_fields(data, JOB_FIELDS)
        job = JobRecord(**{**data, "id": _new_id(), "created_at": utcnow(), "version": 1})
        self.jobs[job.id] = job
        return job

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        return self.jobs.get(job_id)

    def list_jobs(self, filters: Optional[JobFilters] = None) -> list[JobRecord]:
        filters = filters or JobFilters()
        jobs = [j for j in self.jobs.values() if job_matches(j, filters)]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def get_jobs_by_customer_email(self, email: str) -> list[JobRecord]:
        return self.list_jobs(JobFilters(customer_email=email))

    def get_job_by_payment_link_token(self, token: str) -> Optional[JobRecord]:
        return next((j for j in self.jobs.values() if j.payment_link_token == token), None)

    def get_job_by_customer_access_token(self, token: str) -> Optional[JobRecord]:
        return next((j for j in self.jobs.values() if j.customer_access_token == token), None)

    def update_job(
        self,
        job_id: str,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Optional[JobRecord]:
        check_fields(updates, JOB_FIELDS)
        job = self.jobs.get(job_id)
        if not job:
            return None
        if expected_version is not None and job.version != expected_version:
            raise ConflictError("Job was modified by another request")
        changes = {k: v for k, v in updates.items() if k not in ("id", "created_at", "version")}
        updated = job.model_copy(update={**changes, "version": job.version + 1})
        self.jobs[job_id] = updated
        return updated

    # Conversations and messages

    def create_conversation(self, data: dict[str, Any]) -> ConversationRecord:
        conversation = ConversationRecord(**{**data, "id": _new_id(), "created_at": utcnow()})
        self.conversations[conversation.id] = conversation
        return conversation

    def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        return self.conversations.get(conversation_id)

    def get_conversation_by_job_id(self, job_id: str) -> Optional[ConversationRecord]:
        return next((c for c in self.conversations.values() if c.job_id == job_id), None)

    def get_conversations_by_user_id(self, user_id: str) -> list[ConversationRecord]:
        return [
            c
            for c in self.conversations.values()
            if c.customer_id == user_id or c.provider_id == user_id
        ]

    def create_message(self, data: dict[str, Any]) -> MessageRecord:
        message = MessageRecord(**{**data, "id": _new_id(), "created_at": utcnow()})
        self.messages[message.id] = message
        self.last_message_by_conversation_id[message.conversation_id] = message
        return message

    def get_messages_by_conversation_id(self, conversation_id: str) -> list[MessageRecord]:
        messages = [m for m in self.messages.values() if m.conversation_id == conversation_id]
        return sorted(messages, key=lambda m: m.created_at)

    def get_last_message_by_conversation_id(
        self, conversation_id: str
    ) -> Optional[MessageRecord]:
        return self.last_message_by_conversation_id.get(conversation_id)

    # Sessions

    def create_session(
        self,
        kind: str,
        token: str,
        expires_at: datetime,
        principal_id: Optional[str] = None,
    ) -> SessionRecord:
        check_session_kind(kind)
        session = SessionRecord(
            id=_new_id(),
            kind=kind,
            principal_id=principal_id,
            token=token,
            created_at=utcnow(),
            expires_at=expires_at,
        )
        self.sessions[kind][session.id] = session
        return session

    def get_session_by_token(self, kind: str, token: str) -> Optional[SessionRecord]:
        check_session_kind(kind)
        return next((s for s in self.sessions[kind].values() if s.token == token), None)

    def delete_session(self, kind: str, session_id: str) -> bool:
        check_session_kind(kind)
        return self.sessions[kind].pop(session_id, None) is not None

    # Verification codes

    def create_verification_code(
        self, email: str, code: str, expires_at: datetime
    ) -> VerificationCodeRecord:
        # One active code per email
        for existing in [v for v in self.verification_codes.values() if v.email == email]:
            del self.verification_codes[existing.id]
        record = VerificationCodeRecord(
            id=_new_id(), email=email, code=code, expires_at=expires_at, created_at=utcnow()
        )
        self.verification_codes[record.id] = record
        return record

    def get_latest_verification_code(self, email: str) -> Optional[VerificationCodeRecord]:
        codes = [v for v in self.verification_codes.values() if v.email == email]
        if not codes:
            return None
        return max(codes, key=lambda v: v.created_at)

    def delete_verification_code(self, code_id: str) -> bool:
        return self.verification_codes.pop(code_id, None) is not None
