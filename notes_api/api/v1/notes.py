from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, Response, status
from sqlalchemy.orm import Session

from notes_api.database import get_db
from notes_api.dependencies import get_blob_service, get_current_user, get_note_service
from notes_api.models.user import User
from notes_api.schemas.common import error_responses
from notes_api.schemas.note import NoteEnvelope, NoteFields, NoteListEnvelope
from notes_api.services.note_service import NoteService
from notes_api.services.storage_service import BlobService

router = APIRouter(prefix="/notes")


@router.get("", summary="List own notes", response_model=NoteListEnvelope,
            responses=error_responses(401, 422))
def list_notes(
    q:      Optional[str] = Query(None, description="Case-insensitive match on title or body"),
    sort:   Optional[str] = Query(None, description="created_at | updated_at, prefix - for descending"),
    status: Optional[str] = Query(None, description="personal | published | archived"),
    db:     Session       = Depends(get_db),
    current_user: User    = Depends(get_current_user),
    notes:  NoteService   = Depends(get_note_service),
    blobs:  BlobService   = Depends(get_blob_service),
):
    items = notes.list_notes(db, current_user, q=q, sort=sort, status=status)
    return {"notes": [notes.serialize(n, blobs) for n in items]}


@router.post("", status_code=status.HTTP_201_CREATED, summary="Create a note",
             response_model=NoteEnvelope, responses=error_responses(401, 422))
def create_note(
    note:  NoteFields  = Body(..., embed=True),
    db:    Session     = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    blobs: BlobService = Depends(get_blob_service),
):
    created = notes.create_note(db, current_user, note, blobs)
    return {"note": notes.serialize(created, blobs)}


@router.get("/{note_id}", summary="Get a note", response_model=NoteEnvelope,
            responses=error_responses(401, 404))
def get_note(
    note_id: str,
    db:      Session     = Depends(get_db),
    current_user: User   = Depends(get_current_user),
    notes:   NoteService = Depends(get_note_service),
    blobs:   BlobService = Depends(get_blob_service),
):
    return {"note": notes.serialize(notes.get_note(db, current_user, note_id), blobs)}


@router.patch("/{note_id}", summary="Update a note", response_model=NoteEnvelope,
              responses=error_responses(401, 404, 422))
def update_note(
    note_id: str,
    note:    NoteFields  = Body(..., embed=True),
    db:      Session     = Depends(get_db),
    current_user: User   = Depends(get_current_user),
    notes:   NoteService = Depends(get_note_service),
    blobs:   BlobService = Depends(get_blob_service),
):
    updated = notes.update_note(db, current_user, note_id, note, blobs)
    return {"note": notes.serialize(updated, blobs)}


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete a note and its children",
               responses=error_responses(401, 404))
def delete_note(
    note_id: str,
    db:      Session     = Depends(get_db),
    current_user: User   = Depends(get_current_user),
    notes:   NoteService = Depends(get_note_service),
    blobs:   BlobService = Depends(get_blob_service),
):
    notes.delete_note(db, current_user, note_id, blobs)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/{note_id}/attachments/{signed_id}", status_code=status.HTTP_204_NO_CONTENT,
               summary="Detach a file from a note", responses=error_responses(401, 404))
def detach_attachment(
    note_id:   str,
    signed_id: str,
    db:        Session     = Depends(get_db),
    current_user: User     = Depends(get_current_user),
    notes:     NoteService = Depends(get_note_service),
    blobs:     BlobService = Depends(get_blob_service),
):
    notes.detach_attachment(db, current_user, note_id, signed_id, blobs)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
