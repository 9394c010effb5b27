from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from notes_api.database import get_db
from notes_api.dependencies import get_note_service
from notes_api.schemas.common import error_responses
from notes_api.schemas.note import PublicNoteEnvelope
from notes_api.services.note_service import NoteService

router = APIRouter(prefix="/p")


# No authentication: only notes whose effective status is published are visible
@router.get("/{note_id}", summary="Read a published note", response_model=PublicNoteEnvelope,
            responses=error_responses(404))
def get_public_note(
    note_id: str,
    db:      Session     = Depends(get_db),
    notes:   NoteService = Depends(get_note_service),
):
    return {"note": notes.serialize_public(notes.get_public_note(db, note_id))}
