# marketplace/services/message_service.py
import logging
from typing import Iterable, List, Optional

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.config import get_settings
from marketplace.exceptions import IdentityError, TransientStoreError, ValidationError
from marketplace.models.message import Message

logger = logging.getLogger(__name__)


class MessageService:
    """Service for reading and writing rows of the messages table."""

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def _listing_filter(self, listing_id: Optional[str]):
        # NULL listing matches NULL listing only
        if listing_id is None:
            return Message.listing_id.is_(None)
        return Message.listing_id == listing_id

    def list_messages(self, user_a: str, user_b: str, listing_id: Optional[str] = None) -> List[Message]:
        """
        Get every message exchanged between two users about one listing.

        Args:
            user_a: ID of one participant.
            user_b: ID of the other participant.
            listing_id: Listing the messages are about, or None for general inquiries.

        Returns:
            Messages oldest first. The result does not depend on argument order.
        """
        try:
            return (
                self.db.query(Message)
                .filter(
                    or_(
                        and_(Message.sender_id == user_a, Message.receiver_id == user_b),
                        and_(Message.sender_id == user_b, Message.receiver_id == user_a),
                    ),
                    self._listing_filter(listing_id),
                )
                .order_by(Message.created_at, Message.id)
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to list messages between {user_a} and {user_b}: {str(e)}")
            raise TransientStoreError("Failed to load messages") from e

    def list_user_messages(self, user_id: str) -> List[Message]:
        """Get every message the user sent or received, newest first."""
        try:
            return (
                self.db.query(Message)
                .filter(or_(Message.sender_id == user_id, Message.receiver_id == user_id))
                .order_by(Message.created_at.desc(), Message.id.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to list messages for user {user_id}: {str(e)}")
            raise TransientStoreError("Failed to load conversations") from e

    def insert_message(
        self,
        sender_id: str,
        receiver_id: str,
        listing_id: Optional[str],
        content: str
    ) -> Message:
        """
        Persist a new message.

        Raises:
            ValidationError: content is empty or whitespace.
            IdentityError: sender and receiver are the same user.
            TransientStoreError: the write failed.
        """
        if sender_id == receiver_id:
            raise IdentityError("Cannot send a message to yourself")
        if content is None or not content.strip():
            raise ValidationError("Message content cannot be empty")

        message = Message(
            sender_id=sender_id,
            receiver_id=receiver_id,
            listing_id=listing_id,
            content=content.strip(),
            is_read=False
        )
        try:
            self.db.add(message)
            self.db.commit()
            self.db.refresh(message)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to insert message from {sender_id} to {receiver_id}: {str(e)}")
            raise TransientStoreError("Failed to send message") from e
        return message

    def mark_read(self, message_ids: Iterable[str], reader_id: str) -> int:
        """
        Flag messages as read on behalf of their receiver.

        Ids that are unknown or addressed to someone else are skipped silently.
        Large sets are written in chunks of MARK_READ_BATCH_SIZE.

        Returns:
            Number of rows that changed.
        """
        ids = sorted(set(message_ids))
        if not ids:
            return 0

        batch_size = max(1, self.settings.MARK_READ_BATCH_SIZE)
        updated = 0
        try:
            for start in range(0, len(ids), batch_size):
                chunk = ids[start:start + batch_size]
                updated += (
                    self.db.query(Message)
                    .filter(
                        Message.id.in_(chunk),
                        Message.receiver_id == reader_id,
                        Message.is_read == False  # noqa: E712
                    )
                    .update({"is_read": True}, synchronize_session=False)
                )
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to mark messages read for {reader_id}: {str(e)}")
            raise TransientStoreError("Failed to mark messages as read") from e

        return updated

    def count_unread(self, user_id: str) -> int:
        """Total unread messages addressed to the user across all conversations."""
        try:
            return self.db.query(func.count(Message.id)).filter(
                Message.receiver_id == user_id,
                Message.is_read == False  # noqa: E712
            ).scalar() or 0
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to count unread messages for {user_id}: {str(e)}")
            raise TransientStoreError("Failed to count unread messages") from e
