# marketplace/api/v1/messages.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from marketplace.api.dependencies import get_chat_session
from marketplace.schemas import ChatView, MessageCreate
from marketplace.services.chat_session import ChatSession

router = APIRouter()


@router.get("/{counterparty_id}", response_model=ChatView)
async def list_messages(
    counterparty_id: str,
    listing_id: Optional[str] = Query(None, description="Omit for general inquiries"),
    chat: ChatSession = Depends(get_chat_session)
):
    """
    Get the messages exchanged with a counterparty, oldest first.
    """
    return chat.resume(counterparty_id, listing_id).refresh()


@router.post("/{counterparty_id}", response_model=ChatView, status_code=status.HTTP_201_CREATED)
async def send_message(
    counterparty_id: str,
    message_data: MessageCreate,
    chat: ChatSession = Depends(get_chat_session)
):
    """
    Send a message to a counterparty and return the refreshed conversation.
    """
    return chat.resume(counterparty_id, message_data.listing_id).send(message_data.content)
