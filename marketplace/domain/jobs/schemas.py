"""Job domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from ...schemas import RequestModel
from ...shared.clock import to_naive_utc
from ...shared.validators import validate_date_string, validate_email, validate_time_string


class JobCreate(RequestModel):
    """Schema for the public job request form"""

    service_type: str = Field(min_length=1)
    title: Optional[str] = None
    description: str = ""
    location: str = ""
    preferred_date: str
    preferred_time: str
    customer_email: str
    customer_id: Optional[str] = None
    estimated_price: Optional[int] = Field(default=None, ge=0)
    is_urgent: bool = False
    response_deadline: Optional[datetime] = None
    appointment_date_time: Optional[datetime] = None
    deposit_amount: Optional[int] = Field(default=None, gt=0)

    @field_validator("customer_email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("preferred_date")
    @classmethod
    def check_date(cls, v):
        return validate_date_string(v)

    @field_validator("preferred_time")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)

    @field_validator("response_deadline", "appointment_date_time")
    @classmethod
    def normalize_datetime(cls, v):
        return to_naive_utc(v)


class JobUpdate(RequestModel):
    """Schema for staff edits; payment bookkeeping fields are not editable here"""

    status: Optional[str] = None
    provider_id: Optional[str] = None
    estimated_price: Optional[int] = Field(default=None, ge=0)
    title: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None
    preferred_date: Optional[str] = None
    preferred_time: Optional[str] = None
    customer_email: Optional[str] = None
    is_urgent: Optional[bool] = None
    response_deadline: Optional[datetime] = None
    appointment_date_time: Optional[datetime] = None
    deposit_amount: Optional[int] = Field(default=None, gt=0)
    contract_terms: Optional[str] = None
    job_notes: Optional[str] = None

    @field_validator("customer_email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("preferred_date")
    @classmethod
    def check_date(cls, v):
        return validate_date_string(v)

    @field_validator("preferred_time")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)

    @field_validator("response_deadline", "appointment_date_time")
    @classmethod
    def normalize_datetime(cls, v):
        return to_naive_utc(v)


class AcceptJobRequest(RequestModel):
    estimated_price: int = Field(ge=0)
    # Version the provider saw; a stale value is rejected with 409
    version: Optional[int] = None


class CheckOutRequest(RequestModel):
    notes: Optional[str] = None


class ContractSignRequest(RequestModel):
    contract_terms: str = Field(min_length=1)
    customer_signature: str = Field(min_length=1)
    provider_signature: str = Field(min_length=1)
