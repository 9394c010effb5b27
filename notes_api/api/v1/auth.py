from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from notes_api.database import get_db
from notes_api.dependencies import get_token_service
from notes_api.schemas.auth import (
    LoginRequest, SignupRequest, RefreshTokenRequest, LogoutRequest,
    LoginResponse, RefreshResponse, UserResponse,
)
from notes_api.schemas.common import error_responses
from notes_api.services.auth_service import auth_service, serialize_user
from notes_api.services.token_service import TokenService

router = APIRouter(prefix="/auth")


# ─── POST /auth/signup ────────────────────────────────────────────────────────
@router.post(
    "/signup",
    status_code=status.HTTP_201_CREATED,
    summary="Create a user account",
    response_model=UserResponse,
    responses=error_responses(409, 422),
)
def signup(data: SignupRequest, db: Session = Depends(get_db)):
    """
    Register a new user.
    - Email is compared case-insensitively and must be unique.
    - Password minimum 8 characters.
    """
    user = auth_service.signup(db, data)
    return serialize_user(user)


# ─── POST /auth/login ─────────────────────────────────────────────────────────
@router.post(
    "/login",
    status_code=status.HTTP_200_OK,
    summary="Login and receive access + refresh tokens",
    response_model=LoginResponse,
    responses=error_responses(401, 422),
)
def login(
    data: LoginRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """
    Authenticate user.
    Returns access_token (15 min) and refresh_token (30 days).
    """
    return auth_service.login(db, data, tokens)


# ─── POST /auth/refresh ───────────────────────────────────────────────────────
@router.post(
    "/refresh",
    status_code=status.HTTP_200_OK,
    summary="Get a new access token using a refresh token",
    response_model=RefreshResponse,
    responses=error_responses(401),
)
def refresh(
    data: RefreshTokenRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """The refresh token itself is not rotated; it stays valid until it expires or is revoked."""
    return auth_service.refresh(db, data.refresh_token, tokens)


# ─── DELETE /auth/logout ──────────────────────────────────────────────────────
@router.delete(
    "/logout",
    status_code=status.HTTP_200_OK,
    summary="Revoke a refresh token (logout)",
)
def logout(
    data: LogoutRequest,
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
):
    """Idempotent: revoking an unknown or already revoked token still succeeds."""
    auth_service.logout(db, data.refresh_token, tokens)
    return {"message": "logged_out"}
