# marketplace/api/auth.py
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.services.auth_service import AuthService, CallerSession

# Setup security scheme
security = HTTPBearer()


async def get_current_caller(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> CallerSession:
    """
    Dependency resolving the bearer token into the caller's id and marketplace role.
    Tokens are Supabase-issued JWTs.
    """
    auth_service = AuthService(db)
    return auth_service.resolve_caller(credentials.credentials)
