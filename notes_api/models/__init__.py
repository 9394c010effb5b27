"""
Import all models here so that:
1. Alembic can auto-detect them when generating migrations
2. Relationships between models resolve correctly

Order matters: import parent tables before child tables.
"""

from notes_api.models.user import User
from notes_api.models.refresh_token import RefreshToken
from notes_api.models.note import Note, NoteStatus
from notes_api.models.blob import Blob
from notes_api.models.attachment import Attachment

__all__ = [
    "User",
    "RefreshToken",
    "Note",
    "NoteStatus",
    "Blob",
    "Attachment",
]
