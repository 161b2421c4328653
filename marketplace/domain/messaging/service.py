"""Messaging service - job conversations and live message delivery"""

import logging
from typing import Any, Optional

from ...errors import ForbiddenError, NotFoundError
from ...schemas import ConversationRecord, JobResponse, MessageRecord
from ...storage import Storage
from .notifier import ConnectionRegistry
from .schemas import ConversationCreate, MessageCreate

logger = logging.getLogger(__name__)


class MessagingService:
    def __init__(self, storage: Storage, notifier: ConnectionRegistry):
        self.storage = storage
        self.notifier = notifier

    def list_conversations(self, user_id: str) -> list[dict[str, Any]]:
        """Conversations for a user with their job and last message text"""
        results = []
        for conversation in self.storage.get_conversations_by_user_id(user_id):
            job = self.storage.get_job(conversation.job_id)
            last_message = self.storage.get_last_message_by_conversation_id(conversation.id)
            item = conversation.model_dump(mode="json", by_alias=True)
            item["job"] = (
                JobResponse.model_validate(job).model_dump(mode="json", by_alias=True) if job else None
            )
            item["lastMessage"] = last_message.content if last_message else None
            results.append(item)
        return results

    def get_conversation_by_job(self, job_id: str) -> Optional[ConversationRecord]:
        return self.storage.get_conversation_by_job_id(job_id)

    def create_conversation(self, data: ConversationCreate) -> ConversationRecord:
        """One conversation per job; an existing one is returned as is"""
        existing = self.storage.get_conversation_by_job_id(data.job_id)
        if existing:
            return existing
        if not self.storage.get_job(data.job_id):
            raise NotFoundError("Job not found")
        conversation = self.storage.create_conversation(data.model_dump())
        logger.info(f"✅ Conversation {conversation.id} opened for job {data.job_id}")
        return conversation

    def list_messages(self, conversation_id: str) -> list[MessageRecord]:
        return self.storage.get_messages_by_conversation_id(conversation_id)

    async def send_message(self, data: MessageCreate) -> MessageRecord:
        """Append a message and push it to both participants"""
        conversation = self.storage.get_conversation(data.conversation_id)
        if not conversation:
            raise NotFoundError("Conversation not found")
        participants = [conversation.customer_id, conversation.provider_id]
        if data.sender_id not in participants:
            raise ForbiddenError("Sender is not part of this conversation")

        message = self.storage.create_message(data.model_dump())
        job = self.storage.get_job(conversation.job_id)
        payload = {
            "type": "new_message",
            "message": message.model_dump(mode="json", by_alias=True),
            "conversationId": conversation.id,
            "jobTitle": job.title if job else None,
        }
        delivered = await self.notifier.broadcast(participants, payload)
        logger.info(f"💬 Message {message.id} pushed to {delivered} connected participant(s)")
        return message
