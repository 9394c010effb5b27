from fastapi import Request
from sqlalchemy.orm import Session

from notes_api.schemas.direct_upload import BlobFields
from notes_api.services.note_policy import NoteIntegrityPolicy
from notes_api.services.storage_service import BlobService
from notes_api.utils.exceptions import InvalidParameterError, NotFoundError


def create_direct_upload(db: Session, data: BlobFields, blobs: BlobService, policy: NoteIntegrityPolicy) -> dict:
    """
    Register a file before the client uploads it. The same allowlist and size
    cap that guard note attachments are enforced here, up front.
    """
    if data.byte_size <= 0:
        raise InvalidParameterError("File size must be greater than 0")

    errors = policy.validate_attachment(data.content_type, data.byte_size)
    if errors:
        raise InvalidParameterError("; ".join(e.message for e in errors))

    blob = blobs.create_before_direct_upload(
        db,
        filename=data.filename,
        byte_size=data.byte_size,
        checksum=data.checksum,
        content_type=data.content_type,
    )
    return {
        "direct_upload": {
            "url":     blobs.direct_upload_url(blob),
            "headers": blobs.direct_upload_headers(blob),
        },
        "blob_signed_id": blobs.signed_id(blob),
        "blob_id":        blob.id,
    }


def find_downloadable(db: Session, signed_id: str, blobs: BlobService):
    """Return (blob, path) for a stored file, or raise NotFoundError."""
    blob = blobs.find_signed(db, signed_id)
    if not blob or not blob.uploaded:
        raise NotFoundError("File")
    path = blobs.path_for(blob)
    if not path.is_file():
        raise NotFoundError("File")
    return blob, path


async def read_limited_body(request: Request, limit: int) -> bytes:
    """
    Read the request body, refusing anything longer than `limit` bytes.
    A Content-Length over the limit is rejected before any byte is read.
    """
    too_large = InvalidParameterError("Uploaded size does not match the declared byte_size")

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        raise too_large

    data = bytearray()
    async for chunk in request.stream():
        data.extend(chunk)
        if len(data) > limit:
            raise too_large
    return bytes(data)
