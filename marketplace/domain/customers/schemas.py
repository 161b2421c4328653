"""Customer self-service schemas"""

from pydantic import field_validator

from ...schemas import RequestModel
from ...shared.validators import (
    validate_date_string,
    validate_email,
    validate_time_string,
    validate_verification_code,
)


class RequestAccessRequest(RequestModel):
    email: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class VerifyAccessRequest(RequestModel):
    email: str
    code: str

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("code")
    @classmethod
    def check_code(cls, v):
        return validate_verification_code(v)


class RescheduleRequest(RequestModel):
    job_id: str
    access_token: str
    new_date: str
    new_time: str

    @field_validator("new_date")
    @classmethod
    def check_date(cls, v):
        return validate_date_string(v)

    @field_validator("new_time")
    @classmethod
    def check_time(cls, v):
        return validate_time_string(v)


class CancelRequest(RequestModel):
    job_id: str
    access_token: str
