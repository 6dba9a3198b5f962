"""
Schema definitions for the application.
This module exports all schemas for easy importing throughout the app.
"""

# Import from base
from marketplace.schemas.base import PaginatedResponse

# Import from auth
from marketplace.schemas.auth import (
    SignInRequest, RefreshTokenRequest, TokenResponse
)

# Import from messages
from marketplace.schemas.messages import (
    MessageBase, MessageCreate, MessageResponse, MessageDetailResponse
)

# Import from sale confirmations
from marketplace.schemas.sale_confirmations import (
    ConfirmSaleRequest, SaleConfirmationResponse
)

# Import from conversations
from marketplace.schemas.conversations import (
    ConversationSummary, ConversationList, OpenConversationRequest,
    SelectConversationRequest, UnreadCountResponse, ChatView, InboxView
)
