import logging
import uuid
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from notes_api.models.attachment import Attachment
from notes_api.models.blob import Blob
from notes_api.models.note import Note, NoteStatus
from notes_api.models.user import User
from notes_api.schemas.note import NoteFields
from notes_api.services.note_policy import Invalid, NoteIntegrityPolicy
from notes_api.services.storage_service import BlobService
from notes_api.utils.clock import as_utc
from notes_api.utils.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_SORT_FIELDS = ("created_at", "updated_at")
DEFAULT_SORT = "-created_at"


def parse_uuid(value) -> Optional[uuid.UUID]:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


def _isoformat(value) -> Optional[str]:
    return as_utc(value).isoformat() if value else None


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class NoteService:

    def __init__(self, policy: Optional[NoteIntegrityPolicy] = None):
        self.policy = policy or NoteIntegrityPolicy()

    # ─── Serialization ────────────────────────────────────────────────────────
    def effective_status(self, note: Note) -> NoteStatus:
        return self.policy.derive_effective_status(note, lambda n: n.parent)

    def serialize(self, note: Note, blobs: BlobService) -> dict:
        return {
            "id":               str(note.id),
            "title":            note.title,
            "body":             note.body,
            "status":           NoteStatus(note.status).value,
            "effective_status": self.effective_status(note).value,
            "parent_note_id":   str(note.parent_note_id) if note.parent_note_id else None,
            "favorited_at":     _isoformat(note.favorited_at),
            "attachments": [
                {
                    "id":           a.id,
                    "signed_id":    blobs.signed_id(a.blob),
                    "filename":     a.blob.filename,
                    "content_type": a.blob.content_type,
                    "byte_size":    a.blob.byte_size,
                    "url":          blobs.url_for(a.blob),
                }
                for a in note.attachments
            ],
            "created_at":       _isoformat(note.created_at),
            "updated_at":       _isoformat(note.updated_at),
        }

    def serialize_public(self, note: Note) -> dict:
        return {
            "id":         str(note.id),
            "title":      note.title,
            "body":       note.body,
            "status":     NoteStatus(note.status).value,
            "created_at": _isoformat(note.created_at),
            "updated_at": _isoformat(note.updated_at),
        }

    # ─── Lookups ──────────────────────────────────────────────────────────────
    def find_owned(self, db: Session, user: User, note_id) -> Note:
        """Scope the lookup to the owner so other users' notes read as not found."""
        parsed = parse_uuid(note_id)
        note = None
        if parsed:
            note = db.query(Note).filter(Note.id == parsed, Note.user_id == user.id).first()
        if not note:
            raise NotFoundError("Note")
        return note

    def _has_children(self, db: Session, note: Note) -> bool:
        if note.id is None:
            return False
        return db.query(Note.id).filter(Note.parent_note_id == note.id).first() is not None

    # ─── Queries ──────────────────────────────────────────────────────────────
    def list_notes(
        self, db: Session, user: User,
        q: str | None = None, sort: str | None = None, status: str | None = None,
    ) -> list[Note]:
        query = db.query(Note).filter(Note.user_id == user.id)

        if q:
            kw = f"%{_escape_like(q)}%"
            query = query.filter(or_(Note.title.ilike(kw, escape="\\"), Note.body.ilike(kw, escape="\\")))
        if status:
            invalid = self.policy.validate_status(status)
            if invalid:
                raise ValidationError([invalid.model_dump()])
            query = query.filter(Note.status == NoteStatus(status))

        return query.order_by(*self._sort_order(sort)).all()

    def _sort_order(self, sort: str | None):
        sort = sort or DEFAULT_SORT
        descending = sort.startswith("-")
        field = sort.lstrip("-")
        if field not in ALLOWED_SORT_FIELDS:
            return [Note.created_at.desc()]
        column = getattr(Note, field)
        return [column.desc() if descending else column.asc()]

    def get_note(self, db: Session, user: User, note_id) -> Note:
        return self.find_owned(db, user, note_id)

    def get_public_note(self, db: Session, note_id) -> Note:
        parsed = parse_uuid(note_id)
        note = db.get(Note, parsed) if parsed else None
        if not note or self.effective_status(note) != NoteStatus.PUBLISHED:
            raise NotFoundError("Note")
        return note

    # ─── Writes ───────────────────────────────────────────────────────────────
    def create_note(self, db: Session, user: User, data: NoteFields, blobs: BlobService) -> Note:
        note = Note(user_id=user.id, title="", body="", favorited_at=None)
        self._apply(db, note, data, blobs, previous_status=None)
        db.add(note)
        db.commit()
        db.refresh(note)
        logger.info(f"Note {note.id} created by user_id={user.id}")
        return note

    def update_note(self, db: Session, user: User, note_id, data: NoteFields, blobs: BlobService) -> Note:
        note = self.find_owned(db, user, note_id)
        self._apply(db, note, data, blobs, previous_status=note.status)
        db.commit()
        db.refresh(note)
        logger.info(f"Note {note.id} updated by user_id={user.id}")
        return note

    def _apply(
        self, db: Session, note: Note, data: NoteFields, blobs: BlobService, previous_status,
    ) -> None:
        """
        Copy the submitted fields onto `note`, run the integrity checks and the
        archive side effect. Nothing is flushed until every check passed.
        """
        fields = data.model_dump(exclude_unset=True)
        errors: list[Invalid] = []

        if "title" in fields:
            note.title = fields["title"] or ""
        if "body" in fields:
            note.body = fields["body"] or ""
        if "favorited_at" in fields:
            note.favorited_at = fields["favorited_at"]

        status = fields.get("status") if "status" in fields else (previous_status or NoteStatus.PERSONAL)
        invalid_status = self.policy.validate_status(status)
        if invalid_status:
            errors.append(invalid_status)

        if "parent_note_id" in fields:
            raw_parent = fields["parent_note_id"]
            parent_id = parse_uuid(raw_parent) if raw_parent is not None else None
            if raw_parent is not None and parent_id is None:
                errors.append(Invalid(field="parent_note_id", code="blank", message="must exist"))
            else:
                note.parent_note_id = parent_id
                has_children = parent_id is not None and self._has_children(db, note)
                errors.extend(self.policy.validate_parent(note, lambda pid: db.get(Note, pid), has_children))

        new_blobs = []
        for signed_id in fields.get("attachment_ids") or []:
            blob = blobs.find_signed(db, signed_id)
            if blob is None:
                errors.append(Invalid(field="attachment_ids", code="invalid",
                                      message="contains an unknown or tampered signed id"))
            elif not blob.uploaded:
                errors.append(Invalid(field="attachment_ids", code="invalid", message="has not been uploaded"))
            elif blob not in new_blobs and not any(a.blob_id == blob.id for a in note.attachments):
                new_blobs.append(blob)
        errors.extend(self.policy.validate_attachments(new_blobs))

        if errors:
            raise ValidationError([e.model_dump() for e in errors])

        note.status = NoteStatus(status)
        if "parent_note_id" in fields:
            # keep the relationship in step with the column for effective_status
            note.parent = db.get(Note, note.parent_note_id) if note.parent_note_id else None
        self.policy.apply_archive_side_effect(note, previous_status)
        for blob in new_blobs:
            note.attachments.append(Attachment(blob=blob))

    def _orphaned_blobs(self, db: Session, blob_ids) -> list[Blob]:
        """Blobs among `blob_ids` that no attachment row references any more."""
        if not blob_ids:
            return []
        return db.query(Blob).filter(Blob.id.in_(blob_ids), ~Blob.attachments.any()).all()

    def delete_note(self, db: Session, user: User, note_id, blobs: BlobService) -> None:
        note = self.find_owned(db, user, note_id)
        blob_ids = {a.blob_id for n in [note, *note.children] for a in n.attachments}

        # children and attachments go with the note
        db.delete(note)
        db.flush()

        orphans = self._orphaned_blobs(db, blob_ids)
        keys = [b.key for b in orphans]
        for blob in orphans:
            db.delete(blob)
        db.commit()
        blobs.delete_files(keys)
        logger.info(f"Note {note_id} deleted by user_id={user.id}")

    def detach_attachment(self, db: Session, user: User, note_id, signed_id: str, blobs: BlobService) -> None:
        note = self.find_owned(db, user, note_id)
        blob = blobs.find_signed(db, signed_id)
        attachment = None
        if blob:
            attachment = next((a for a in note.attachments if a.blob_id == blob.id), None)
        if not attachment:
            raise NotFoundError("Attachment")

        blob_id = blob.id
        note.attachments.remove(attachment)
        db.flush()

        orphans = self._orphaned_blobs(db, [blob_id])
        keys = [b.key for b in orphans]
        for orphan in orphans:
            db.delete(orphan)
        db.commit()
        blobs.delete_files(keys)
        logger.info(f"Detached blob id={blob_id} from note {note.id}")
