# marketplace/services/conversation_service.py
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session

from marketplace.models.message import Message
from marketplace.schemas.conversations import ConversationSummary
from marketplace.services.directory_service import DirectoryService, UNKNOWN_USER
from marketplace.services.message_service import MessageService

GENERAL = "general"

ConversationKey = Tuple[str, Optional[str]]


def conversation_id(counterparty_id: str, listing_id: Optional[str]) -> str:
    return f"{counterparty_id}-{listing_id or GENERAL}"


@dataclass
class ConversationGroup:
    """Messages shared with one counterparty about one listing."""
    counterparty_id: str
    listing_id: Optional[str]
    latest: Message
    unread_count: int = 0


def group_messages(messages: Iterable[Message], current_user_id: str) -> Dict[ConversationKey, ConversationGroup]:
    """
    Group raw messages by (counterparty, listing).

    Messages not involving the current user are ignored. The latest message of
    each group is the one with the greatest (created_at, id), whatever the input order.
    """
    groups: Dict[ConversationKey, ConversationGroup] = {}
    for message in messages:
        if current_user_id not in (message.sender_id, message.receiver_id):
            continue
        counterparty_id = message.counterparty_of(current_user_id)
        key = (counterparty_id, message.listing_id)

        group = groups.get(key)
        if group is None:
            group = ConversationGroup(counterparty_id=counterparty_id, listing_id=message.listing_id, latest=message)
            groups[key] = group
        elif (message.created_at, message.id) > (group.latest.created_at, group.latest.id):
            # Same tie-break as the chat history: equal timestamps order by id
            group.latest = message

        if message.receiver_id == current_user_id and not message.is_read:
            group.unread_count += 1
    return groups


def build_conversations(
    messages: Iterable[Message],
    current_user_id: str,
    directory: DirectoryService
) -> List[ConversationSummary]:
    """
    Derive conversation summaries from the user's messages.

    Names and titles are resolved with one profile query and one listing query
    for the whole inbox. Output order is not significant.
    """
    groups = group_messages(messages, current_user_id)
    if not groups:
        return []

    names = directory.get_profile_names(group.counterparty_id for group in groups.values())
    titles = directory.get_listing_titles(group.listing_id for group in groups.values())

    return [
        ConversationSummary(
            id=conversation_id(group.counterparty_id, group.listing_id),
            participant_id=group.counterparty_id,
            participant_name=names.get(group.counterparty_id, UNKNOWN_USER),
            listing_id=group.listing_id,
            listing_title=titles.get(group.listing_id) if group.listing_id else None,
            last_message=group.latest.content,
            last_message_time=group.latest.created_at,
            unread_count=group.unread_count,
        )
        for group in groups.values()
    ]


class ConversationService:
    """Service for building a user's inbox from the message log."""

    def __init__(self, db: Session):
        self.db = db
        self.message_service = MessageService(db)
        self.directory = DirectoryService(db)

    def get_conversations(self, user_id: str) -> List[ConversationSummary]:
        """All conversations of a user, most recently active first."""
        messages = self.message_service.list_user_messages(user_id)
        conversations = build_conversations(messages, user_id, self.directory)
        conversations.sort(key=lambda c: c.last_message_time, reverse=True)
        return conversations

    def get_conversations_page(
        self,
        user_id: str,
        page: int = 1,
        page_size: int = 50
    ) -> Tuple[List[ConversationSummary], int, int]:
        """
        Paginated inbox.

        Returns:
            Tuple of (conversations, total_count, total_pages)
        """
        conversations = self.get_conversations(user_id)
        total_count = len(conversations)
        total_pages = math.ceil(total_count / page_size) if total_count > 0 else 1
        offset = (page - 1) * page_size if page > 0 else 0
        return conversations[offset:offset + page_size], total_count, total_pages
