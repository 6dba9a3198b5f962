# marketplace/services/inbox.py
from typing import List, Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from marketplace.exceptions import SessionStateError
from marketplace.schemas.conversations import ConversationSummary, InboxView
from marketplace.services.auth_service import CallerSession
from marketplace.services.chat_session import ChatSession
from marketplace.services.conversation_service import ConversationService
from marketplace.services.message_service import MessageService


class Inbox:
    """Multi-conversation view: the aggregated inbox plus at most one selected chat."""

    def __init__(self, db: Session, caller: CallerSession, background: BackgroundTasks):
        self.db = db
        self.caller = caller
        self.background = background
        self.conversation_service = ConversationService(db)
        self.message_service = MessageService(db)

        self.conversations: List[ConversationSummary] = []
        self.selected: Optional[ChatSession] = None

    def load(self) -> List[ConversationSummary]:
        self.conversations = self.conversation_service.get_conversations(self.caller.user_id)
        return self.conversations

    def select(self, counterparty_id: str, listing_id: Optional[str] = None) -> InboxView:
        """
        Show an existing conversation. Unlike ChatSession.open() no greeting is sent.
        """
        chat = ChatSession(self.db, self.caller, self.background)
        view = chat.resume(counterparty_id, listing_id).refresh()
        self.selected = chat
        return InboxView(conversations=self.load(), selected=view)

    def send(self, content: str) -> InboxView:
        chat = self._require_selection()
        view = chat.send(content)
        return InboxView(conversations=self.load(), selected=view)

    def confirm_sale(self) -> InboxView:
        chat = self._require_selection()
        view = chat.confirm_sale()
        return InboxView(conversations=self.load(), selected=view)

    def unread_total(self) -> int:
        """Unread messages across every conversation, for the dashboard badge."""
        return self.message_service.count_unread(self.caller.user_id)

    def _require_selection(self) -> ChatSession:
        if self.selected is None:
            raise SessionStateError("Select a conversation first")
        return self.selected

