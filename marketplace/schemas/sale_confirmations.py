from typing import Optional
from pydantic import BaseModel
from datetime import datetime

from marketplace.models.enums import ConfirmationState


class ConfirmSaleRequest(BaseModel):
    listing_id: str


class SaleConfirmationResponse(BaseModel):
    id: str
    listing_id: Optional[str] = None
    buyer_id: str
    seller_id: str
    seller_confirmed: bool
    buyer_confirmed: bool
    sale_completed: bool
    seller_confirmed_at: Optional[datetime] = None
    buyer_confirmed_at: Optional[datetime] = None
    sale_completed_at: Optional[datetime] = None
    state: ConfirmationState

    class Config:
        from_attributes = True
