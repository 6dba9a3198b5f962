# marketplace/api/v1/conversations.py
from fastapi import APIRouter, Depends, Query

from marketplace.api.auth import get_current_caller
from marketplace.api.dependencies import get_chat_session, get_inbox, get_service
from marketplace.config import get_settings
from marketplace.schemas import (
    ChatView,
    ConversationList,
    InboxView,
    OpenConversationRequest,
    SelectConversationRequest,
    UnreadCountResponse,
)
from marketplace.services.auth_service import CallerSession
from marketplace.services.chat_session import ChatSession
from marketplace.services.conversation_service import ConversationService
from marketplace.services.inbox import Inbox

router = APIRouter()


@router.get("/", response_model=ConversationList)
async def list_conversations(
    page: int = Query(1, ge=1),
    page_size: int = Query(get_settings().CONVERSATION_PAGE_SIZE, ge=1, le=200),
    caller: CallerSession = Depends(get_current_caller),
    conversation_service: ConversationService = Depends(get_service(ConversationService))
):
    """
    List the caller's conversations, most recently active first.

    A conversation is every message exchanged with one counterparty about one
    listing (or about no listing at all).
    """
    conversations, total_count, total_pages = conversation_service.get_conversations_page(
        caller.user_id, page=page, page_size=page_size
    )
    return {
        "items": conversations,
        "total": total_count,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages
    }


@router.get("/unread", response_model=UnreadCountResponse)
async def get_unread_count(inbox: Inbox = Depends(get_inbox)):
    """Total unread messages addressed to the caller."""
    return {"user_id": inbox.caller.user_id, "unread_count": inbox.unread_total()}


@router.post("/select", response_model=InboxView)
async def select_conversation(
    request: SelectConversationRequest,
    inbox: Inbox = Depends(get_inbox)
):
    """
    Show one conversation next to the inbox. Messages addressed to the caller
    are marked as read after the response is sent.
    """
    return inbox.select(request.counterparty_id, request.listing_id)


@router.post("/{counterparty_id}/open", response_model=ChatView)
async def open_conversation(
    counterparty_id: str,
    request: OpenConversationRequest,
    chat: ChatSession = Depends(get_chat_session)
):
    """
    Open a chat with a counterparty, sending the greeting when the
    conversation has no messages yet.
    """
    return chat.open(counterparty_id, request.listing_id, request.attachment_name)
