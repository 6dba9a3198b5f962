# marketplace/models/message.py
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, String, Text

from marketplace.database import Base
from marketplace.models.mixins import TimestampMixin, generate_uuid, utcnow


class Message(Base, TimestampMixin):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    sender_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    receiver_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    # NULL listing means a general inquiry
    listing_id = Column(String(36), ForeignKey("marketplace_listings.id"), nullable=True)
    content = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)

    # Sub-second precision keeps inserts ordered on backends whose now() is per-second
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("sender_id != receiver_id", name="check_message_not_self_addressed"),
        Index("ix_messages_pair_listing_created", "sender_id", "receiver_id", "listing_id", "created_at"),
    )

    def counterparty_of(self, user_id: str) -> str:
        return self.receiver_id if self.sender_id == user_id else self.sender_id

    def __repr__(self):
        return f"<Message {self.id} {self.sender_id} -> {self.receiver_id}>"
