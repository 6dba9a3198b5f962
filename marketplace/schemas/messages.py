from typing import Optional
from pydantic import BaseModel, Field
from datetime import datetime


class MessageBase(BaseModel):
    """Base message properties."""
    content: str = Field(..., min_length=1)


class MessageCreate(MessageBase):
    """Properties required to send a message to a counterparty."""
    listing_id: Optional[str] = None


class MessageResponse(MessageBase):
    """Response model with the stored message columns."""
    id: str
    sender_id: str
    receiver_id: str
    listing_id: Optional[str] = None
    is_read: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class MessageDetailResponse(MessageResponse):
    """Message with the sender's display name resolved."""
    sender_name: str
