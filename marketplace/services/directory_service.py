# marketplace/services/directory_service.py
import logging
from typing import Dict, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from marketplace.exceptions import TransientStoreError
from marketplace.models.listing import MarketplaceListing
from marketplace.models.profile import Profile

logger = logging.getLogger(__name__)

UNKNOWN_USER = "Unknown User"


class DirectoryService:
    """Batched lookups against the profiles and marketplace_listings tables."""

    def __init__(self, db: Session):
        self.db = db

    def get_profile_names(self, user_ids: Iterable[str]) -> Dict[str, str]:
        """
        Resolve display names for many users with a single query.
        Users without a profile are absent from the result.
        """
        ids = set(user_ids)
        if not ids:
            return {}
        try:
            rows = self.db.query(Profile.id, Profile.full_name).filter(Profile.id.in_(ids)).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Profile lookup failed: {str(e)}")
            raise TransientStoreError("Failed to load profiles") from e
        return {row.id: row.full_name for row in rows}

    def get_listing_titles(self, listing_ids: Iterable[Optional[str]]) -> Dict[str, str]:
        """Resolve listing titles for many listings with a single query."""
        ids = {listing_id for listing_id in listing_ids if listing_id is not None}
        if not ids:
            return {}
        try:
            rows = (
                self.db.query(MarketplaceListing.id, MarketplaceListing.title)
                .filter(MarketplaceListing.id.in_(ids))
                .all()
            )
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Listing lookup failed: {str(e)}")
            raise TransientStoreError("Failed to load listings") from e
        return {row.id: row.title for row in rows}
