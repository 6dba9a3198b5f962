# marketplace/api/v1/auth.py
from fastapi import APIRouter, Depends

from marketplace.api.dependencies import get_service
from marketplace.schemas import SignInRequest, RefreshTokenRequest, TokenResponse
from marketplace.services.auth_service import AuthService

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: SignInRequest,
    auth_service: AuthService = Depends(get_service(AuthService))
):
    """
    Sign in with email and password through Supabase Auth.
    """
    return auth_service.sign_in(credentials.email, credentials.password)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    request: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_service(AuthService))
):
    """
    Exchange a refresh token for a new access token.
    """
    return auth_service.refresh_token(request.refresh_token)
