from typing import List, Optional
from pydantic import BaseModel, Field
from datetime import datetime

from marketplace.models.enums import ConfirmationState
from marketplace.schemas.base import PaginatedResponse
from marketplace.schemas.messages import MessageDetailResponse
from marketplace.schemas.sale_confirmations import SaleConfirmationResponse


class ConversationSummary(BaseModel):
    """One inbox row: everything exchanged with a counterparty about one listing."""
    id: str
    participant_id: str
    participant_name: str
    listing_id: Optional[str] = None
    listing_title: Optional[str] = None
    last_message: str
    last_message_time: datetime
    unread_count: int


class ConversationList(PaginatedResponse):
    items: List[ConversationSummary]


class OpenConversationRequest(BaseModel):
    listing_id: Optional[str] = None
    attachment_name: Optional[str] = Field(None, max_length=255)


class SelectConversationRequest(BaseModel):
    counterparty_id: str
    listing_id: Optional[str] = None


class UnreadCountResponse(BaseModel):
    user_id: str
    unread_count: int


class ChatView(BaseModel):
    counterparty_id: str
    listing_id: Optional[str] = None
    messages: List[MessageDetailResponse]
    confirmation: Optional[SaleConfirmationResponse] = None
    state: ConfirmationState


class InboxView(BaseModel):
    conversations: List[ConversationSummary]
    selected: Optional[ChatView] = None
