# marketplace/models/listing.py
from sqlalchemy import Column, String, Text, ForeignKey

from marketplace.database import Base
from marketplace.models.mixins import TimestampMixin, generate_uuid


class MarketplaceListing(Base, TimestampMixin):
    __tablename__ = "marketplace_listings"

    id = Column(String(36), primary_key=True, default=generate_uuid, index=True)
    seller_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)

    def __repr__(self):
        return f"<MarketplaceListing {self.id} - {self.title}>"
