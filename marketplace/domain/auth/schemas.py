"""Auth domain schemas"""

from typing import Optional

from pydantic import Field

from ...schemas import RequestModel


class AdminLoginRequest(RequestModel):
    password: str


class LoginRequest(RequestModel):
    username: str
    password: str


class ProviderRegisterRequest(RequestModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)


class CustomerRegisterRequest(RequestModel):
    username: str = Field(min_length=3)
    password: str = Field(min_length=6)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None
