# marketplace/api/v1/router.py
from fastapi import APIRouter
from marketplace.api.v1 import auth, conversations, messages, sale_confirmations

# Create the main router
api_router = APIRouter()

# Include all the sub-routers
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(conversations.router, prefix="/conversations", tags=["conversations"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
api_router.include_router(sale_confirmations.router, prefix="/sale-confirmations", tags=["sale-confirmations"])
