"""Messaging router - conversations, messages and the /ws socket"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status

from ...dependencies import get_notifier, get_storage
from ...errors import ValidationFailed
from ...schemas import ConversationRecord, MessageRecord
from ...storage import Storage
from .notifier import ConnectionRegistry
from .schemas import ConversationCreate, MessageCreate
from .service import MessagingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Messaging"])
ws_router = APIRouter()


def get_messaging_service(
    storage: Storage = Depends(get_storage),
    notifier: ConnectionRegistry = Depends(get_notifier),
) -> MessagingService:
    """Dependency injection for MessagingService"""
    return MessagingService(storage, notifier)


@router.get("/conversations")
async def list_conversations(
    user_id: Optional[str] = Query(None, alias="userId"),
    service: MessagingService = Depends(get_messaging_service),
):
    if not user_id:
        raise ValidationFailed("userId is required")
    return service.list_conversations(user_id)


@router.get("/conversations/{job_id}", response_model=Optional[ConversationRecord])
async def get_conversation(job_id: str, service: MessagingService = Depends(get_messaging_service)):
    return service.get_conversation_by_job(job_id)


@router.post("/conversations", response_model=ConversationRecord)
async def create_conversation(
    data: ConversationCreate, service: MessagingService = Depends(get_messaging_service)
):
    return service.create_conversation(data)


@router.get("/messages/{conversation_id}", response_model=list[MessageRecord])
async def list_messages(
    conversation_id: str, service: MessagingService = Depends(get_messaging_service)
):
    return service.list_messages(conversation_id)


@router.post("/messages", response_model=MessageRecord)
async def send_message(data: MessageCreate, service: MessagingService = Depends(get_messaging_service)):
    return await service.send_message(data)


@ws_router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Register the socket under ?userId= until it closes; inbound frames are ignored"""
    user_id = websocket.query_params.get("userId")
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    notifier: ConnectionRegistry = websocket.app.state.notifier
    await websocket.accept()
    notifier.connect(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"🔌 WebSocket closed by client: {user_id}")
    finally:
        notifier.disconnect(user_id, websocket)
