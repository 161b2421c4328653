"""Relational storage backed by SQLAlchemy"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError
from ..models import (
    AdminSession,
    Conversation,
    CustomerSession,
    CustomerVerificationCode,
    Job,
    Message,
    ProviderSession,
    User,
)
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

logger = logging.getLogger(__name__)

# kind -> (model, principal column name)
SESSION_MODELS = {
    "admin": (AdminSession, None),
    "provider": (ProviderSession, "provider_id"),
    "customer": (CustomerSession, "customer_id"),
}


def _session_record(kind: str, row) -> SessionRecord:
    _, principal_column = SESSION_MODELS[kind]
    return SessionRecord(
        id=row.id,
        kind=kind,
        principal_id=getattr(row, principal_column) if principal_column else None,
        token=row.token,
        created_at=row.created_at,
        expires_at=row.expires_at,
    )


class SqlStorage(Storage):
    def __init__(self, session_factory):
        self.session_factory = session_factory

    # Users

    def create_user(self, data: dict[str, Any]) -> UserRecord:
        check_fields(data, USER_FIELDS)
        with self.session_factory() as db:
            if db.query(User).filter(User.username == data["username"]).first():
                raise ConflictError("Username already exists")
            user = User(**data, created_at=utcnow())
            db.add(user)
            try:
                db.commit()
            except IntegrityError as e:
                db.rollback()
                raise ConflictError("Username already exists") from e
            db.refresh(user)
            return UserRecord.model_validate(user)

    def get_user(self, user_id: str) -> Optional[UserRecord]:
        with self.session_factory() as db:
            user = db.get(User, user_id)
            return UserRecord.model_validate(user) if user else None

    def get_user_by_username(self, username: str) -> Optional[UserRecord]:
        with self.session_factory() as db:
            user = db.query(User).filter(User.username == username).first()
            return UserRecord.model_validate(user) if user else None

    def update_user(self, user_id: str, updates: dict[str, Any]) -> Optional[UserRecord]:
        check_fields(updates, USER_FIELDS)
        with self.session_factory() as db:
            user = db.get(User, user_id)
            if not user:
                return None
            for key, value in updates.items():
                setattr(user, key, value)
            db.commit()
            db.refresh(user)
            return UserRecord.model_validate(user)

    # Jobs

    def create_job(self, data: dict[str, Any]) -> JobRecord:
        check_fields(data, JOB_FIELDS)
        with self.session_factory() as db:
            job = Job(**data, created_at=utcnow(), version=1)
            db.add(job)
            db.commit()
            db.refresh(job)
            return JobRecord.model_validate(job)

    def get_job(self, job_id: str) -> Optional[JobRecord]:
        with self.session_factory() as db:
            job = db.get(Job, job_id)
            return JobRecord.model_validate(job) if job else None

    def list_jobs(self, filters: Optional[JobFilters] = None) -> list[JobRecord]:
        filters = filters or JobFilters()
        with self.session_factory() as db:
            query = db.query(Job)
            if filters.status:
                query = query.filter(Job.status == filters.status)
            if filters.service_type:
                query = query.filter(Job.service_type == filters.service_type)
            if filters.is_urgent is not None:
                query = query.filter(Job.is_urgent == filters.is_urgent)
            if filters.customer_email:
                query = query.filter(Job.customer_email == filters.customer_email)
            if filters.start_date:
                query = query.filter(Job.appointment_date_time >= filters.start_date)
            if filters.end_date:
                query = query.filter(Job.appointment_date_time <= filters.end_date)
            jobs = query.order_by(Job.created_at.desc()).all()
            return [JobRecord.model_validate(j) for j in jobs]

    def get_jobs_by_customer_email(self, email: str) -> list[JobRecord]:
        return self.list_jobs(JobFilters(customer_email=email))

    def get_job_by_payment_link_token(self, token: str) -> Optional[JobRecord]:
        with self.session_factory() as db:
            job = db.query(Job).filter(Job.payment_link_token == token).first()
            return JobRecord.model_validate(job) if job else None

    def get_job_by_customer_access_token(self, token: str) -> Optional[JobRecord]:
        with self.session_factory() as db:
            job = db.query(Job).filter(Job.customer_access_token == token).first()
            return JobRecord.model_validate(job) if job else None

    def update_job(
        self,
        job_id: str,
        updates: dict[str, Any],
        expected_version: Optional[int] = None,
    ) -> Optional[JobRecord]:
        check_fields(updates, JOB_FIELDS)
        changes = {k: v for k, v in updates.items() if k not in ("id", "created_at", "version")}
        with self.session_factory() as db:
            query = db.query(Job).filter(Job.id == job_id)
            if expected_version is not None:
                query = query.filter(Job.version == expected_version)
            updated = query.update(
                {**changes, "version": Job.version + 1}, synchronize_session=False
            )
            if updated == 0:
                db.rollback()
                if db.get(Job, job_id) is None:
                    return None
                logger.warning(f"⚠️ Stale update rejected for job {job_id}")
                raise ConflictError("Job was modified by another request")
            db.commit()
            job = db.get(Job, job_id)
            db.refresh(job)
            return JobRecord.model_validate(job)

    # Conversations and messages

    def create_conversation(self, data: dict[str, Any]) -> ConversationRecord:
        with self.session_factory() as db:
            conversation = Conversation(**data, created_at=utcnow())
            db.add(conversation)
            db.commit()
            db.refresh(conversation)
            return ConversationRecord.model_validate(conversation)

    def get_conversation(self, conversation_id: str) -> Optional[ConversationRecord]:
        with self.session_factory() as db:
            conversation = db.get(Conversation, conversation_id)
            return ConversationRecord.model_validate(conversation) if conversation else None

    def get_conversation_by_job_id(self, job_id: str) -> Optional[ConversationRecord]:
        with self.session_factory() as db:
            conversation = db.query(Conversation).filter(Conversation.job_id == job_id).first()
            return ConversationRecord.model_validate(conversation) if conversation else None

    def get_conversations_by_user_id(self, user_id: str) -> list[ConversationRecord]:
        with self.session_factory() as db:
            conversations = (
                db.query(Conversation)
                .filter(
                    (Conversation.customer_id == user_id) | (Conversation.provider_id == user_id)
                )
                .order_by(Conversation.created_at)
                .all()
            )
            return [ConversationRecord.model_validate(c) for c in conversations]

    def create_message(self, data: dict[str, Any]) -> MessageRecord:
        with self.session_factory() as db:
            message = Message(**data, created_at=utcnow())
            db.add(message)
            db.commit()
            db.refresh(message)
            return MessageRecord.model_validate(message)

    def get_messages_by_conversation_id(self, conversation_id: str) -> list[MessageRecord]:
        with self.session_factory() as db:
            messages = (
                db.query(Message)
                .filter(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.asc())
                .all()
            )
            return [MessageRecord.model_validate(m) for m in messages]

    def get_last_message_by_conversation_id(
        self, conversation_id: str
    ) -> Optional[MessageRecord]:
        with self.session_factory() as db:
            message = (
                db.query(Message)
                .filter(Message.conversation_id == conversation_id)
                .order_by(Message.created_at.desc())
                .first()
            )
            return MessageRecord.model_validate(message) if message else None

    # Sessions

    def create_session(
        self,
        kind: str,
        token: str,
        expires_at: datetime,
        principal_id: Optional[str] = None,
    ) -> SessionRecord:
        check_session_kind(kind)
        model, principal_column = SESSION_MODELS[kind]
        fields = {"token": token, "expires_at": expires_at, "created_at": utcnow()}
        if principal_column:
            fields[principal_column] = principal_id
        with self.session_factory() as db:
            row = model(**fields)
            db.add(row)
            db.commit()
            db.refresh(row)
            return _session_record(kind, row)

    def get_session_by_token(self, kind: str, token: str) -> Optional[SessionRecord]:
        check_session_kind(kind)
        model, _ = SESSION_MODELS[kind]
        with self.session_factory() as db:
            row = db.query(model).filter(model.token == token).first()
            return _session_record(kind, row) if row else None

    def delete_session(self, kind: str, session_id: str) -> bool:
        check_session_kind(kind)
        model, _ = SESSION_MODELS[kind]
        with self.session_factory() as db:
            deleted = db.query(model).filter(model.id == session_id).delete()
            db.commit()
            return deleted > 0

    # Verification codes

    def create_verification_code(
        self, email: str, code: str, expires_at: datetime
    ) -> VerificationCodeRecord:
        with self.session_factory() as db:
            # One active code per email
            db.query(CustomerVerificationCode).filter(
                CustomerVerificationCode.email == email
            ).delete()
            row = CustomerVerificationCode(
                email=email, code=code, expires_at=expires_at, created_at=utcnow()
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return VerificationCodeRecord.model_validate(row)

    def get_latest_verification_code(self, email: str) -> Optional[VerificationCodeRecord]:
        with self.session_factory() as db:
            row = (
                db.query(CustomerVerificationCode)
                .filter(CustomerVerificationCode.email == email)
                .order_by(CustomerVerificationCode.created_at.desc())
                .first()
            )
            return VerificationCodeRecord.model_validate(row) if row else None

    def delete_verification_code(self, code_id: str) -> bool:
        with self.session_factory() as db:
            deleted = (
                db.query(CustomerVerificationCode)
                .filter(CustomerVerificationCode.id == code_id)
                .delete()
            )
            db.commit()
            return deleted > 0
