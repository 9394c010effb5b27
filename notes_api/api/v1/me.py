from fastapi import APIRouter, Depends

from notes_api.dependencies import get_current_user
from notes_api.models.user import User
from notes_api.schemas.auth import UserResponse
from notes_api.schemas.common import error_responses
from notes_api.services.auth_service import serialize_user

router = APIRouter()


@router.get("/me", summary="Current user profile", response_model=UserResponse,
            responses=error_responses(401))
def get_me(current_user: User = Depends(get_current_user)):
    return serialize_user(current_user)
