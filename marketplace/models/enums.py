# marketplace/models/enums.py
import enum


class UserRole(str, enum.Enum):
    BUYER = "buyer"
    SELLER = "seller"


class ConfirmationState(str, enum.Enum):
    NONE = "none"
    UNCONFIRMED = "unconfirmed"
    PENDING_BUYER = "pending_buyer"
    PENDING_SELLER = "pending_seller"
    BOTH_CONFIRMED = "both_confirmed"


class SessionState(str, enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
