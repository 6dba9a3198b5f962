# marketplace/models/sale_confirmation.py
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from marketplace.database import Base
from marketplace.models.enums import ConfirmationState, UserRole
from marketplace.models.mixins import TimestampMixin, generate_uuid


class SaleConfirmation(Base, TimestampMixin):
    """Two-party handshake that moves a listing conversation to a completed sale."""
    __tablename__ = "sale_confirmations"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    listing_id = Column(String(36), ForeignKey("marketplace_listings.id"), nullable=True)
    buyer_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    seller_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)

    seller_confirmed = Column(Boolean, default=False, nullable=False)
    buyer_confirmed = Column(Boolean, default=False, nullable=False)
    sale_completed = Column(Boolean, default=False, nullable=False)

    seller_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    buyer_confirmed_at = Column(DateTime(timezone=True), nullable=True)
    sale_completed_at = Column(DateTime(timezone=True), nullable=True)

    # Every UPDATE is predicated on this value (optimistic concurrency)
    version = Column(Integer, nullable=False)

    __table_args__ = (
        UniqueConstraint("listing_id", "buyer_id", "seller_id", name="uq_sale_confirmation_triple"),
    )
    __mapper_args__ = {"version_id_col": version}

    def is_confirmed_by(self, role: UserRole) -> bool:
        if role == UserRole.SELLER:
            return bool(self.seller_confirmed)
        return bool(self.buyer_confirmed)

    @property
    def state(self) -> ConfirmationState:
        if self.sale_completed:
            return ConfirmationState.BOTH_CONFIRMED
        if self.seller_confirmed and not self.buyer_confirmed:
            return ConfirmationState.PENDING_BUYER
        if self.buyer_confirmed and not self.seller_confirmed:
            return ConfirmationState.PENDING_SELLER
        if self.buyer_confirmed and self.seller_confirmed:
            # Both flags without completion is never written by the service
            return ConfirmationState.BOTH_CONFIRMED
        return ConfirmationState.UNCONFIRMED

    def __repr__(self):
        return f"<SaleConfirmation {self.id} listing={self.listing_id} state={self.state.value}>"
