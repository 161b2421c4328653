"""Messaging schemas"""

from pydantic import Field

from ...schemas import RequestModel


class ConversationCreate(RequestModel):
    job_id: str
    customer_id: str
    provider_id: str


class MessageCreate(RequestModel):
    conversation_id: str
    sender_id: str
    content: str = Field(min_length=1)
