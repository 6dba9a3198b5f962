# marketplace/services/auth_service.py
from dataclasses import dataclass
from typing import Any, Dict, Optional

import jwt
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from marketplace.config import get_settings
from marketplace.database import get_supabase
from marketplace.models.enums import UserRole
from marketplace.models.profile import Profile


@dataclass(frozen=True)
class CallerSession:
    """Authenticated caller, resolved once per request and passed to every controller."""
    user_id: str
    role: UserRole


class AuthService:
    """Service for handling authentication using Supabase,
    resolving tokens into marketplace profiles.
    """

    def __init__(self, db: Session):
        self.db = db
        self.settings = get_settings()

    def sign_in(self, email: str, password: str) -> Dict[str, Any]:
        """
        Sign in a user with Supabase Auth. A profile must already exist.
        """
        try:
            auth_response = get_supabase().auth.sign_in_with_password({
                "email": email,
                "password": password
            })
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Authentication failed: {str(e)}"
            )

        return {
            "access_token": auth_response.session.access_token,
            "refresh_token": auth_response.session.refresh_token,
            "user_id": auth_response.user.id,
            "email": email
        }

    def refresh_token(self, refresh_token: str) -> Dict[str, Any]:
        """
        Refresh an authentication token using Supabase Auth.
        """
        try:
            response = get_supabase().auth.refresh_session(refresh_token)
        except Exception as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Token refresh failed: {str(e)}"
            )

        return {
            "access_token": response.session.access_token,
            "refresh_token": response.session.refresh_token,
            "user_id": response.user.id,
            "email": response.user.email
        }

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify a JWT token using the Supabase JWT secret and return its payload.
        """
        try:
            payload = jwt.decode(
                token,
                self.settings.SUPABASE_JWT_SECRET,
                algorithms=["HS256"],
                audience="authenticated"
            )
        except jwt.PyJWTError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token",
                headers={"WWW-Authenticate": "Bearer"}
            )

        if not payload.get("sub"):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid token: missing subject",
                headers={"WWW-Authenticate": "Bearer"}
            )
        return payload

    def get_profile(self, user_id: str) -> Optional[Profile]:
        return self.db.query(Profile).filter(Profile.id == user_id).first()

    def resolve_caller(self, token: str) -> CallerSession:
        """
        Turn a bearer token into the caller's identity and marketplace role.
        """
        payload = self.verify_token(token)
        profile = self.get_profile(payload["sub"])
        if not profile:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="No marketplace profile for this account",
                headers={"WWW-Authenticate": "Bearer"}
            )

        try:
            role = UserRole(profile.user_type)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Unsupported account type: {profile.user_type}"
            )
        return CallerSession(user_id=profile.id, role=role)
