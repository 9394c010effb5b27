from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from notes_api.database import get_db
from notes_api.models.user import User
from notes_api.services.note_service import NoteService
from notes_api.services.storage_service import BlobService
from notes_api.services.token_service import TokenService
from notes_api.utils.exceptions import InvalidTokenError, UnauthorizedError

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


# ─── Shared services ──────────────────────────────────────────────────────────
# Built once in create_app() and kept on app.state; tests swap them there.
def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_blob_service(request: Request) -> BlobService:
    return request.app.state.blob_service


def get_note_service(request: Request) -> NoteService:
    return request.app.state.note_service


# ─── Get Current User ─────────────────────────────────────────────────────────
def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
    tokens: TokenService = Depends(get_token_service),
) -> User:
    """
    Validate the `Authorization: Bearer <token>` header and return the current User.
    Raises 401 if the token is missing, invalid, expired, or names a deleted user.
    """
    if not credentials:
        raise UnauthorizedError("No authentication token provided")

    user_id = tokens.verify_access_token(credentials.credentials)

    user = db.get(User, user_id)
    if not user:
        raise InvalidTokenError()

    return user
