from fastapi import APIRouter, Body, Depends, Request, Response, status
from fastapi.responses import FileResponse
from starlette.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from notes_api.database import get_db
from notes_api.dependencies import get_blob_service, get_current_user, get_note_service
from notes_api.models.user import User
from notes_api.schemas.common import error_responses
from notes_api.schemas.direct_upload import BlobFields, DirectUploadResponse
from notes_api.services.note_service import NoteService
from notes_api.services.storage_service import BlobService
from notes_api.services.upload_service import create_direct_upload, find_downloadable, read_limited_body

router = APIRouter()


# ─── POST /direct_uploads ─────────────────────────────────────────────────────
@router.post("/direct_uploads", status_code=status.HTTP_201_CREATED,
             summary="Register a file and get a direct upload URL",
             response_model=DirectUploadResponse, responses=error_responses(401, 422))
def create(
    blob:  BlobFields  = Body(..., embed=True),
    db:    Session     = Depends(get_db),
    _:     User        = Depends(get_current_user),
    notes: NoteService = Depends(get_note_service),
    blobs: BlobService = Depends(get_blob_service),
):
    return create_direct_upload(db, blob, blobs, notes.policy)


# ─── PUT /direct_uploads/{token} ──────────────────────────────────────────────
# The signed token in the URL is the credential; no bearer header is needed
@router.put("/direct_uploads/{token}", status_code=status.HTTP_204_NO_CONTENT,
            summary="Upload file bytes", responses=error_responses(401, 404, 422))
async def upload(
    token:   str,
    request: Request,
    db:      Session     = Depends(get_db),
    blobs:   BlobService = Depends(get_blob_service),
):
    # Session and disk work are blocking; only the body read stays on the event loop
    blob = await run_in_threadpool(blobs.find_upload_target, db, token)
    data = await read_limited_body(request, blob.byte_size)
    await run_in_threadpool(blobs.accept_upload, db, blob, data)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ─── GET /blobs/{signed_id} ───────────────────────────────────────────────────
@router.get("/blobs/{signed_id}", summary="Download a stored file", responses=error_responses(404))
def download(
    signed_id: str,
    db:        Session     = Depends(get_db),
    blobs:     BlobService = Depends(get_blob_service),
):
    blob, path = find_downloadable(db, signed_id, blobs)
    return FileResponse(path, media_type=blob.content_type, filename=blob.filename)
