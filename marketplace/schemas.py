"""
Record models returned by the storage layer.

Both storage backends hand back these pydantic models so callers never see
ORM instances. Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class RequestModel(BaseModel):
    """Request bodies use camelCase keys on the wire; unknown keys are rejected"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class UserRecord(RecordModel):
    id: str
    username: str
    password: str
    role: str
    employee_id: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime


class PublicUser(RecordModel):
    id: str
    username: str
    role: str


class JobRecord(RecordModel):
    id: str
    service_type: str
    title: str
    description: str = ""
    location: str = ""
    preferred_date: str
    preferred_time: str
    estimated_price: Optional[int] = None
    status: str = "requested"
    customer_id: Optional[str] = None
    provider_id: Optional[str] = None
    version: int = 1
    created_at: datetime

    contract_terms: Optional[str] = None
    customer_signature: Optional[str] = None
    provider_signature: Optional[str] = None
    signed_at: Optional[datetime] = None

    payment_status: Optional[str] = "pending"
    checkout_session_id: Optional[str] = None
    payment_link_token: Optional[str] = None

    is_urgent: bool = False
    response_deadline: Optional[datetime] = None
    customer_email: str
    customer_access_token: Optional[str] = None

    deposit_amount: Optional[int] = 100
    deposit_status: Optional[str] = "pending"
    deposit_checkout_session_id: Optional[str] = None
    deposit_paid_at: Optional[datetime] = None

    appointment_date_time: Optional[datetime] = None
    previous_appointment_date_time: Optional[datetime] = None
    reschedule_count: Optional[int] = 0
    rescheduled_at: Optional[datetime] = None

    cancellation_fee: Optional[int] = 0
    cancellation_fee_status: Optional[str] = "none"
    cancelled_at: Optional[datetime] = None

    mechanic_checked_in_at: Optional[datetime] = None
    mechanic_checked_out_at: Optional[datetime] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    job_notes: Optional[str] = None


class JobResponse(JobRecord):
    """Job as served over HTTP; the customer access token and payment link stay server side"""

    customer_access_token: Optional[str] = Field(default=None, exclude=True)
    payment_link_token: Optional[str] = Field(default=None, exclude=True)


class ConversationRecord(RecordModel):
    id: str
    job_id: str
    customer_id: str
    provider_id: str
    created_at: datetime


class MessageRecord(RecordModel):
    id: str
    conversation_id: str
    sender_id: str
    content: str
    created_at: datetime


class SessionRecord(RecordModel):
    id: str
    kind: str  # admin, provider or customer
    principal_id: Optional[str] = None
    token: str
    created_at: datetime
    expires_at: datetime


class VerificationCodeRecord(RecordModel):
    id: str
    email: str
    code: str
    expires_at: datetime
    created_at: datetime


class JobFilters(BaseModel):
    status: Optional[str] = None
    service_type: Optional[str] = None
    is_urgent: Optional[bool] = None
    customer_email: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None


JOB_FIELDS = frozenset(JobRecord.model_fields)
USER_FIELDS = frozenset(UserRecord.model_fields)
