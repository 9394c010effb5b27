from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator

from notes_api.utils.clock import as_utc


class NoteFields(BaseModel):
    """
    Writable note attributes. Every field is optional; on PATCH only the keys
    actually sent are applied, so an explicit `"favorited_at": null` clears it.
    `status` stays a plain string so the integrity policy reports bad values.
    """
    title:          Optional[str] = None
    body:           Optional[str] = None
    status:         Optional[str] = None
    parent_note_id: Optional[str] = None
    favorited_at:   Optional[datetime] = None
    attachment_ids: Optional[list[str]] = None

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v):
        if v is not None and len(v) > 255:
            raise ValueError("Title must be at most 255 characters")
        return v

    @field_validator("favorited_at")
    @classmethod
    def favorited_at_in_utc(cls, v):
        # Offset-less timestamps are taken as UTC
        return as_utc(v)


class AttachmentResponse(BaseModel):
    id:           int
    signed_id:    str
    filename:     str
    content_type: str
    byte_size:    int
    url:          str


class NoteResponse(BaseModel):
    id:               str
    title:            str
    body:             str
    status:           str
    effective_status: str
    parent_note_id:   Optional[str] = None
    favorited_at:     Optional[str] = None
    attachments:      list[AttachmentResponse]
    created_at:       str
    updated_at:       str


class NoteEnvelope(BaseModel):
    note: NoteResponse


class NoteListEnvelope(BaseModel):
    notes: list[NoteResponse]


class PublicNoteResponse(BaseModel):
    id:         str
    title:      str
    body:       str
    status:     str
    created_at: str
    updated_at: str


class PublicNoteEnvelope(BaseModel):
    note: PublicNoteResponse
