# marketplace/services/sale_confirmation_service.py
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from marketplace.config import get_settings
from marketplace.exceptions import ConflictError, TransientStoreError, ValidationError
from marketplace.models.enums import ConfirmationState, UserRole
from marketplace.models.listing import MarketplaceListing
from marketplace.models.mixins import utcnow
from marketplace.models.sale_confirmation import SaleConfirmation

logger = logging.getLogger(__name__)


@dataclass
class ConfirmationResult:
    """Outcome of one confirm() call."""
    record: SaleConfirmation
    # True only for the call that moved the record to BOTH_CONFIRMED
    completed_now: bool = False
    changed: bool = True


def state_of(record: Optional[SaleConfirmation]) -> ConfirmationState:
    if record is None:
        return ConfirmationState.NONE
    return record.state


class SaleConfirmationService:
    """
    Buyer/seller co-signature on a listing conversation.

    NONE -> PENDING_BUYER | PENDING_SELLER -> BOTH_CONFIRMED, in either order.
    Records are keyed by (listing_id, buyer_id, seller_id) and never deleted.
    """

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def get_confirmation(
        self,
        listing_id: Optional[str],
        buyer_id: str,
        seller_id: str,
        refresh: bool = False
    ) -> Optional[SaleConfirmation]:
        """
        Get the confirmation record for a listing conversation.

        Args:
            refresh: Overwrite any copy already held by the session with the stored row.
        """
        query = self.db.query(SaleConfirmation).filter(
            SaleConfirmation.buyer_id == buyer_id,
            SaleConfirmation.seller_id == seller_id,
        )
        if listing_id is None:
            query = query.filter(SaleConfirmation.listing_id.is_(None))
        else:
            query = query.filter(SaleConfirmation.listing_id == listing_id)
        if refresh:
            query = query.populate_existing()
        try:
            return query.first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to load sale confirmation for listing {listing_id}: {str(e)}")
            raise TransientStoreError("Failed to load sale confirmation") from e

    def ensure_placeholder(self, listing_id: str, buyer_id: str, seller_id: str) -> SaleConfirmation:
        """
        Make sure a record exists for the triple, creating an unconfirmed one if needed.
        Lets the seller be prompted before either party has confirmed.
        """
        existing = self.get_confirmation(listing_id, buyer_id, seller_id)
        if existing is not None:
            return existing

        try:
            self._require_listing(listing_id)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to look up listing {listing_id}: {str(e)}")
            raise TransientStoreError("Failed to create sale confirmation") from e

        record = SaleConfirmation(
            listing_id=listing_id,
            buyer_id=buyer_id,
            seller_id=seller_id,
            seller_confirmed=False,
            buyer_confirmed=False,
            sale_completed=False,
        )
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
            logger.info(f"Created placeholder sale confirmation {record.id} for listing {listing_id}")
            return record
        except IntegrityError:
            # Another session created it first
            self.db.rollback()
            existing = self.get_confirmation(listing_id, buyer_id, seller_id, refresh=True)
            if existing is None:
                raise ConflictError("Sale confirmation could not be created, please try again")
            return existing
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to create sale confirmation for listing {listing_id}: {str(e)}")
            raise TransientStoreError("Failed to create sale confirmation") from e

    def confirm(
        self,
        role: UserRole,
        listing_id: Optional[str],
        buyer_id: str,
        seller_id: str
    ) -> ConfirmationResult:
        """
        Record the acting party's confirmation.

        Every write is predicated on the version that was read, so a counterpart
        confirming at the same time makes the write fail instead of being lost.
        On such a conflict the state is re-read and the transition retried; when
        the retry budget is spent ConflictError is raised.

        Returns:
            ConfirmationResult whose completed_now flag is set only on the call
            that completed the sale.
        """
        attempts = max(1, self.settings.CONFIRM_MAX_ATTEMPTS)
        for attempt in range(1, attempts + 1):
            try:
                return self._apply_confirmation(role, listing_id, buyer_id, seller_id)
            except (StaleDataError, IntegrityError) as e:
                self.db.rollback()
                logger.warning(
                    f"Sale confirmation conflict for listing {listing_id} "
                    f"(attempt {attempt}/{attempts}): {str(e)}"
                )
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Failed to confirm sale for listing {listing_id}: {str(e)}")
                raise TransientStoreError("Failed to confirm sale") from e

        raise ConflictError("The sale confirmation changed while saving, please try again")

    def _apply_confirmation(
        self,
        role: UserRole,
        listing_id: Optional[str],
        buyer_id: str,
        seller_id: str
    ) -> ConfirmationResult:
        role = UserRole(role)
        now = utcnow()
        record = self.get_confirmation(listing_id, buyer_id, seller_id, refresh=True)

        if record is None:
            # Only a duplicate triple may fail the insert below
            self._require_listing(listing_id)
            record = SaleConfirmation(
                listing_id=listing_id,
                buyer_id=buyer_id,
                seller_id=seller_id,
                seller_confirmed=False,
                buyer_confirmed=False,
                sale_completed=False,
            )
            self._set_confirmed(record, role, now)
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
            logger.info(f"{role.value} opened sale confirmation {record.id} for listing {listing_id}")
            return ConfirmationResult(record=record)

        if record.sale_completed or record.is_confirmed_by(role):
            return ConfirmationResult(record=record, changed=False)

        self._set_confirmed(record, role, now)
        other = UserRole.BUYER if role == UserRole.SELLER else UserRole.SELLER
        completed = record.is_confirmed_by(other)
        if completed:
            record.sale_completed = True
            record.sale_completed_at = now

        self.db.commit()
        self.db.refresh(record)
        if completed:
            logger.info(f"Sale completed for listing {listing_id} (confirmation {record.id})")
        return ConfirmationResult(record=record, completed_now=completed)

    def _require_listing(self, listing_id: Optional[str]) -> None:
        if listing_id is None:
            return
        exists = (
            self.db.query(MarketplaceListing.id)
            .filter(MarketplaceListing.id == listing_id)
            .first()
        )
        if exists is None:
            raise ValidationError(f"Listing {listing_id} does not exist")

    @staticmethod
    def _set_confirmed(record: SaleConfirmation, role: UserRole, now) -> None:
        if role == UserRole.SELLER:
            record.seller_confirmed = True
            record.seller_confirmed_at = now
        else:
            record.buyer_confirmed = True
            record.buyer_confirmed_at = now
