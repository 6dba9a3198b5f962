# marketplace/services/chat_session.py
import logging
from typing import List, Optional, Tuple

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from marketplace.exceptions import IdentityError, MarketplaceError, SessionStateError, ValidationError
from marketplace.models.enums import SessionState, UserRole
from marketplace.models.message import Message
from marketplace.models.sale_confirmation import SaleConfirmation
from marketplace.schemas.conversations import ChatView
from marketplace.schemas.messages import MessageDetailResponse, MessageResponse
from marketplace.schemas.sale_confirmations import SaleConfirmationResponse
from marketplace.services.auth_service import CallerSession
from marketplace.services.background import spawn_detached
from marketplace.services.directory_service import DirectoryService, UNKNOWN_USER
from marketplace.services.message_service import MessageService
from marketplace.services.sale_confirmation_service import SaleConfirmationService, state_of

logger = logging.getLogger(__name__)

INITIAL_MESSAGE = "Hi, I am interested."
ATTACHMENT_MESSAGE = "Hi, I am interested. I would like a quote for printing my file: {file_name}"
SALE_COMPLETED_MESSAGE = "🎉 Sale completed! Both buyer and seller have confirmed this order."


def greeting_for(attachment_name: Optional[str] = None) -> str:
    if attachment_name and attachment_name.strip():
        return ATTACHMENT_MESSAGE.format(file_name=attachment_name.strip())
    return INITIAL_MESSAGE


class ChatSession:
    """
    Drives one open conversation between the caller and a counterparty,
    optionally about a listing.

    A session starts CLOSED; open() or resume() binds it to a conversation.
    Every write is followed by a full re-fetch from the store.
    """

    def __init__(self, db: Session, caller: CallerSession, background: BackgroundTasks):
        self.db = db
        self.caller = caller
        self.background = background
        self.message_service = MessageService(db)
        self.confirmation_service = SaleConfirmationService(db)
        self.directory = DirectoryService(db)

        self.state = SessionState.CLOSED
        self.counterparty_id: Optional[str] = None
        self.listing_id: Optional[str] = None
        self.messages: List[Message] = []
        self.confirmation: Optional[SaleConfirmation] = None

    def open(
        self,
        counterparty_id: str,
        listing_id: Optional[str] = None,
        attachment_name: Optional[str] = None
    ) -> ChatView:
        """
        Open a conversation and greet the counterparty if nothing was said yet.

        The greeting mentions attachment_name when the caller is sharing a file.
        It is guarded only by the emptiness of the fetched history, so two
        sessions opening at once can both send it.
        """
        self.resume(counterparty_id, listing_id)
        view = self.refresh()
        if not self.messages and self._send_greeting(attachment_name):
            view = self.refresh()
        return view

    def resume(self, counterparty_id: str, listing_id: Optional[str] = None) -> "ChatSession":
        """Bind the session to a conversation without fetching or greeting."""
        if counterparty_id == self.caller.user_id:
            raise IdentityError("Cannot open a conversation with yourself")
        self.counterparty_id = counterparty_id
        self.listing_id = listing_id
        self.state = SessionState.OPEN
        return self

    def refresh(self) -> ChatView:
        """Re-fetch messages and the sale confirmation, then mark what the caller can see as read."""
        self._require_open()
        self.messages = self.message_service.list_messages(
            self.caller.user_id, self.counterparty_id, self.listing_id
        )
        self.confirmation = self.load_confirmation()
        self.mark_visible_as_read()
        return self._view()

    def send(self, content: str) -> ChatView:
        self._require_open()
        self.message_service.insert_message(
            self.caller.user_id, self.counterparty_id, self.listing_id, content
        )
        self._ensure_placeholder()
        return self.refresh()

    def mark_visible_as_read(self) -> int:
        """
        Schedule one detached mark-read for fetched messages addressed to the caller.

        Returns:
            Number of message ids handed to the task.
        """
        unread_ids = [
            message.id for message in self.messages
            if message.receiver_id == self.caller.user_id and not message.is_read
        ]
        if unread_ids:
            spawn_detached(
                self.background,
                self.message_service.mark_read,
                unread_ids,
                self.caller.user_id,
                label="mark-read"
            )
        return len(unread_ids)

    def confirm_sale(self) -> ChatView:
        """
        Confirm the sale as the caller's role. The call that completes the
        handshake appends the completion notice to the conversation.
        """
        self._require_open()
        if self.listing_id is None:
            raise ValidationError("A sale can only be confirmed for a listing")

        buyer_id, seller_id = self._parties()
        result = self.confirmation_service.confirm(self.caller.role, self.listing_id, buyer_id, seller_id)
        if result.completed_now:
            self._post_completion_notice()
        return self.refresh()

    def _parties(self) -> Tuple[str, str]:
        if self.caller.role == UserRole.BUYER:
            return self.caller.user_id, self.counterparty_id
        return self.counterparty_id, self.caller.user_id

    def load_confirmation(self) -> Optional[SaleConfirmation]:
        if self.listing_id is None:
            return None
        buyer_id, seller_id = self._parties()
        return self.confirmation_service.get_confirmation(self.listing_id, buyer_id, seller_id)

    def _send_greeting(self, attachment_name: Optional[str]) -> bool:
        try:
            self.message_service.insert_message(
                self.caller.user_id, self.counterparty_id, self.listing_id, greeting_for(attachment_name)
            )
        except MarketplaceError:
            logger.warning(
                f"Initial message to {self.counterparty_id} failed, continuing without it",
                exc_info=True
            )
            return False
        self._ensure_placeholder()
        return True

    def _ensure_placeholder(self) -> None:
        # A buyer writing about a listing gives the seller something to confirm
        if self.caller.role != UserRole.BUYER or self.listing_id is None:
            return
        try:
            self.confirmation_service.ensure_placeholder(
                self.listing_id, self.caller.user_id, self.counterparty_id
            )
        except MarketplaceError:
            logger.warning(f"Could not create sale confirmation for listing {self.listing_id}", exc_info=True)

    def _post_completion_notice(self) -> None:
        try:
            self.message_service.insert_message(
                self.caller.user_id, self.counterparty_id, self.listing_id, SALE_COMPLETED_MESSAGE
            )
        except MarketplaceError:
            logger.error(f"Sale completed for listing {self.listing_id} but the notice was not posted", exc_info=True)

    def _require_open(self) -> None:
        if self.state != SessionState.OPEN:
            raise SessionStateError("Open a conversation first")

    def _view(self) -> ChatView:
        names = self.directory.get_profile_names({message.sender_id for message in self.messages})
        messages = [
            MessageDetailResponse(
                **MessageResponse.model_validate(message).model_dump(),
                sender_name=names.get(message.sender_id, UNKNOWN_USER)
            )
            for message in self.messages
        ]
        confirmation = (
            SaleConfirmationResponse.model_validate(self.confirmation)
            if self.confirmation is not None else None
        )
        return ChatView(
            counterparty_id=self.counterparty_id,
            listing_id=self.listing_id,
            messages=messages,
            confirmation=confirmation,
            state=state_of(self.confirmation),
        )
