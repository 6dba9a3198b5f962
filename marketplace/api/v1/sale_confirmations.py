# marketplace/api/v1/sale_confirmations.py
from typing import Optional

from fastapi import APIRouter, Depends, Query

from marketplace.api.dependencies import get_chat_session
from marketplace.schemas import ChatView, ConfirmSaleRequest, SaleConfirmationResponse
from marketplace.services.chat_session import ChatSession

router = APIRouter()


@router.get("/{counterparty_id}", response_model=Optional[SaleConfirmationResponse])
async def get_sale_confirmation(
    counterparty_id: str,
    listing_id: str = Query(...),
    chat: ChatSession = Depends(get_chat_session)
):
    """
    Get the confirmation record for a listing conversation, or null when
    neither party has started one.
    """
    return chat.resume(counterparty_id, listing_id).load_confirmation()


@router.post("/{counterparty_id}/confirm", response_model=ChatView)
async def confirm_sale(
    counterparty_id: str,
    request: ConfirmSaleRequest,
    chat: ChatSession = Depends(get_chat_session)
):
    """
    Confirm the sale as the caller's role (buyer or seller).

    The sale completes once both parties confirmed, in either order; a
    completion notice is then posted to the conversation.
    """
    return chat.resume(counterparty_id, request.listing_id).confirm_sale()
