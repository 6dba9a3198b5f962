"""
SQLAlchemy models for the marketplace messaging core.
Importing this package registers every table on the shared Base metadata.
"""

from marketplace.models.profile import Profile
from marketplace.models.listing import MarketplaceListing
from marketplace.models.message import Message
from marketplace.models.sale_confirmation import SaleConfirmation
from marketplace.models.enums import UserRole, ConfirmationState, SessionState
