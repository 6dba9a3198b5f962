# marketplace/exceptions.py


class MarketplaceError(Exception):
    """Base exception for errors raised by the messaging core"""
    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(detail)


class ValidationError(MarketplaceError):
    """Rejected input, e.g. empty message content. Never retried."""


class IdentityError(ValidationError):
    """A message addressed to its own sender."""


class TransientStoreError(MarketplaceError):
    """The datastore failed to answer a read or write."""


class ConflictError(MarketplaceError):
    """A sale confirmation kept changing underneath the caller."""


class SessionStateError(MarketplaceError):
    """A chat session operation was used before the session was opened."""
