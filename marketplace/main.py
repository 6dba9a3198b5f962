# marketplace/main.py
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

import marketplace.models  # noqa: F401  registers tables on Base.metadata
from marketplace.api.v1.router import api_router
from marketplace.config import get_settings
from marketplace.database import engine, Base
from marketplace.exceptions import (
    ConflictError,
    MarketplaceError,
    SessionStateError,
    TransientStoreError,
    ValidationError,
)

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# Get settings
settings = get_settings()

ERROR_STATUS = {
    ValidationError: status.HTTP_400_BAD_REQUEST,
    SessionStateError: status.HTTP_409_CONFLICT,
    ConflictError: status.HTTP_409_CONFLICT,
    TransientStoreError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def create_app() -> FastAPI:
    # Create tables in the database
    Base.metadata.create_all(bind=engine)

    app = FastAPI(
        title="3D Print Marketplace Messaging API",
        description="Buyer/seller messaging and two-party sale confirmation for a 3D printing marketplace",
        version="0.1.0"
    )

    # CORS middleware for frontend access
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Replace with specific origins in production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include API routes
    app.include_router(api_router, prefix=settings.API_PREFIX)

    @app.get("/")
    async def root():
        """Health check and welcome message"""
        return {
            "message": "Welcome to the 3D Print Marketplace Messaging API",
            "status": "online",
            "version": "0.1.0"
        }

    @app.exception_handler(MarketplaceError)
    async def marketplace_exception_handler(request: Request, exc: MarketplaceError):
        status_code = next(
            (code for error_class, code in ERROR_STATUS.items() if isinstance(exc, error_class)),
            status.HTTP_400_BAD_REQUEST
        )
        if status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.detail}")
        return JSONResponse(status_code=status_code, content={"detail": exc.detail})

    # Error handler for global exceptions
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Global exception: {str(exc)}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("marketplace.main:app", host="0.0.0.0", port=8000, reload=True)
