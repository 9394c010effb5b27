"""
Write-time integrity rules for notes.

Everything here is a pure function of the candidate note plus whatever the caller
resolves for it (its prospective parent, whether it has children). Nothing in this
module touches the session; `NoteService` loads the records and raises the
aggregated `ValidationError`.
"""
from typing import Any, Callable, Iterable, Optional

from pydantic import BaseModel

from notes_api.models.note import NoteStatus
from notes_api.utils.exceptions import ValidationError

ALLOWED_IMAGE_TYPES    = ("image/jpeg", "image/png", "image/gif", "image/webp")
ALLOWED_DOCUMENT_TYPES = ("application/pdf",)
ALLOWED_TEXT_TYPES     = ("text/plain", "text/csv", "application/json")
ALLOWED_ARCHIVE_TYPES  = ("application/zip",)

ALLOWED_CONTENT_TYPES = frozenset(
    ALLOWED_IMAGE_TYPES + ALLOWED_DOCUMENT_TYPES + ALLOWED_TEXT_TYPES + ALLOWED_ARCHIVE_TYPES
)
MAX_ATTACHMENT_SIZE = 30 * 1024 * 1024


class Invalid(BaseModel):
    """A single violated rule, rendered as one entry of the 422 `details` array."""
    field:   str
    code:    str
    message: str


def _status_value(status: Any) -> Optional[str]:
    if isinstance(status, NoteStatus):
        return status.value
    return status


class NoteIntegrityPolicy:

    def __init__(
        self,
        allowed_content_types: Iterable[str] = ALLOWED_CONTENT_TYPES,
        max_attachment_size: int = MAX_ATTACHMENT_SIZE,
    ):
        self.allowed_content_types = frozenset(allowed_content_types)
        self.max_attachment_size = max_attachment_size

    # ─── Status ───────────────────────────────────────────────────────────────
    def validate_status(self, status: Any) -> Optional[Invalid]:
        if _status_value(status) in {s.value for s in NoteStatus}:
            return None
        return Invalid(
            field="status",
            code="inclusion",
            message="must be personal, published or archived",
        )

    # ─── Parent / child ───────────────────────────────────────────────────────
    def validate_parent(
        self,
        candidate: Any,
        parent_lookup: Callable[[Any], Any],
        has_children: bool = False,
    ) -> list[Invalid]:
        """
        `candidate` needs `id`, `user_id` and `parent_note_id`; `parent_lookup`
        maps a note id to a note (or None). Ownership is checked here, so the
        lookup must not be scoped to the candidate's user.
        """
        parent_id = candidate.parent_note_id
        if parent_id is None:
            return []

        if candidate.id is not None and parent_id == candidate.id:
            return [Invalid(field="parent_note_id", code="invalid", message="cannot be its own parent")]

        parent = parent_lookup(parent_id)
        if parent is None:
            return [Invalid(field="parent_note_id", code="blank", message="must exist")]

        errors = []
        if parent.parent_note_id is not None:
            errors.append(Invalid(
                field="parent_note_id",
                code="invalid",
                message="cannot create grandchild notes (max depth is 2)",
            ))
        if parent.user_id != candidate.user_id:
            errors.append(Invalid(
                field="parent_note_id",
                code="invalid",
                message="must belong to the same user",
            ))
        if has_children:
            errors.append(Invalid(
                field="parent_note_id",
                code="invalid",
                message="cannot nest a note that has children (max depth is 2)",
            ))
        return errors

    # ─── Attachments ──────────────────────────────────────────────────────────
    def validate_attachment(self, content_type: str, byte_size: int, filename: str | None = None) -> list[Invalid]:
        label = f"{filename}: " if filename else ""
        errors = []
        if content_type not in self.allowed_content_types:
            errors.append(Invalid(
                field="attachments",
                code="content_type",
                message=f"{label}unsupported file type ({content_type})",
            ))
        if byte_size is None or byte_size > self.max_attachment_size:
            errors.append(Invalid(
                field="attachments",
                code="too_large",
                message=f"{label}exceeds the {self.max_attachment_size // (1024 * 1024)}MB limit",
            ))
        return errors

    def validate_attachments(self, attachments: Iterable[Any]) -> list[Invalid]:
        """Check every attachment; violations accumulate instead of stopping at the first."""
        errors = []
        for attachment in attachments:
            errors.extend(self.validate_attachment(
                attachment.content_type,
                attachment.byte_size,
                getattr(attachment, "filename", None),
            ))
        return errors

    # ─── Derived state ────────────────────────────────────────────────────────
    def derive_effective_status(
        self,
        note: Any,
        parent_resolver: Optional[Callable[[Any], Any]] = None,
    ) -> NoteStatus:
        """
        Archived notes stay archived; otherwise a child shows its parent's status.
        The parent is evaluated without a resolver, so this is at most one hop.
        """
        status = NoteStatus(_status_value(note.status))
        if status == NoteStatus.ARCHIVED:
            return status

        parent = parent_resolver(note) if parent_resolver else None
        if parent is None:
            return status
        return self.derive_effective_status(parent)

    def apply_archive_side_effect(self, note: Any, previous_status: Any = None) -> Any:
        """
        Clear `favorited_at` when this write moves the note into archived.
        `previous_status` is None for a note being created.
        """
        current = _status_value(note.status)
        if current == NoteStatus.ARCHIVED.value and _status_value(previous_status) != current:
            note.favorited_at = None
        return note

    # ─── Aggregate ────────────────────────────────────────────────────────────
    def check(
        self,
        note: Any,
        parent_lookup: Callable[[Any], Any],
        attachments: Iterable[Any] = (),
        has_children: bool = False,
    ) -> None:
        """Run every rule and raise one ValidationError listing all violations."""
        errors: list[Invalid] = []
        invalid_status = self.validate_status(note.status)
        if invalid_status:
            errors.append(invalid_status)
        errors.extend(self.validate_parent(note, parent_lookup, has_children))
        errors.extend(self.validate_attachments(attachments))
        if errors:
            raise ValidationError([e.model_dump() for e in errors])

