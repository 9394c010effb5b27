"""NoteIntegrityPolicy on plain objects, no database involved."""
import uuid
from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from notes_api.models.note import NoteStatus
from notes_api.services.note_policy import (
    ALLOWED_CONTENT_TYPES, MAX_ATTACHMENT_SIZE, NoteIntegrityPolicy,
)
from notes_api.utils.exceptions import ValidationError

policy = NoteIntegrityPolicy()


def make_note(user_id=1, parent_note_id=None, status=NoteStatus.PERSONAL, favorited_at=None):
    return SimpleNamespace(
        id=uuid.uuid4(),
        user_id=user_id,
        parent_note_id=parent_note_id,
        status=status,
        favorited_at=favorited_at,
    )


def lookup(*notes):
    by_id = {n.id: n for n in notes}
    return by_id.get


def messages(errors):
    return [e.message for e in errors]


# ─── Status ───────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("status", ["personal", "published", "archived", NoteStatus.ARCHIVED])
def test_known_statuses_pass(status):
    assert policy.validate_status(status) is None


@pytest.mark.parametrize("status", ["draft", "", None, "PUBLISHED"])
def test_unknown_status_fails(status):
    invalid = policy.validate_status(status)
    assert invalid.field == "status"
    assert invalid.code == "inclusion"


# ─── Parent / child ───────────────────────────────────────────────────────────

def test_root_note_is_valid():
    assert policy.validate_parent(make_note(), lookup()) == []


def test_child_of_root_is_valid():
    parent = make_note()
    child = make_note(parent_note_id=parent.id)
    assert policy.validate_parent(child, lookup(parent)) == []


def test_grandchild_is_rejected():
    root = make_note()
    middle = make_note(parent_note_id=root.id)
    candidate = make_note(parent_note_id=middle.id)

    errors = policy.validate_parent(candidate, lookup(root, middle))

    assert messages(errors) == ["cannot create grandchild notes (max depth is 2)"]


def test_parent_of_another_user_is_rejected():
    parent = make_note(user_id=2)
    child = make_note(user_id=1, parent_note_id=parent.id)

    assert messages(policy.validate_parent(child, lookup(parent))) == ["must belong to the same user"]


def test_missing_parent_is_rejected():
    child = make_note(parent_note_id=uuid.uuid4())
    errors = policy.validate_parent(child, lookup())
    assert [(e.field, e.code, e.message) for e in errors] == [("parent_note_id", "blank", "must exist")]


def test_note_cannot_parent_itself():
    note = make_note()
    note.parent_note_id = note.id
    assert messages(policy.validate_parent(note, lookup(note))) == ["cannot be its own parent"]


def test_note_with_children_cannot_be_nested():
    parent = make_note()
    candidate = make_note(parent_note_id=parent.id)

    errors = policy.validate_parent(candidate, lookup(parent), has_children=True)

    assert messages(errors) == ["cannot nest a note that has children (max depth is 2)"]


def test_parent_violations_accumulate():
    root = make_note(user_id=2)
    middle = make_note(user_id=2, parent_note_id=root.id)
    candidate = make_note(user_id=1, parent_note_id=middle.id)

    errors = policy.validate_parent(candidate, lookup(root, middle))

    assert len(errors) == 2


# ─── Attachments ──────────────────────────────────────────────────────────────

def test_allowlist_has_nine_types():
    assert len(ALLOWED_CONTENT_TYPES) == 9


@pytest.mark.parametrize("content_type", sorted(ALLOWED_CONTENT_TYPES))
def test_allowlisted_types_pass(content_type):
    assert policy.validate_attachment(content_type, 1024) == []


@pytest.mark.parametrize("content_type", ["application/octet-stream", "image/svg+xml", "text/html"])
def test_other_types_fail(content_type):
    errors = policy.validate_attachment(content_type, 1024, "file.bin")
    assert [e.code for e in errors] == ["content_type"]
    assert content_type in errors[0].message


def test_size_limit_is_inclusive():
    assert MAX_ATTACHMENT_SIZE == 30 * 1024 * 1024
    assert policy.validate_attachment("image/png", MAX_ATTACHMENT_SIZE) == []

    errors = policy.validate_attachment("image/png", MAX_ATTACHMENT_SIZE + 1, "big.png")
    assert [e.code for e in errors] == ["too_large"]
    assert errors[0].message == "big.png: exceeds the 30MB limit"


def test_attachment_errors_accumulate():
    attachments = [
        SimpleNamespace(content_type="application/x-msdownload", byte_size=10, filename="a.exe"),
        SimpleNamespace(content_type="image/png", byte_size=MAX_ATTACHMENT_SIZE + 1, filename="b.png"),
        SimpleNamespace(content_type="text/csv", byte_size=10, filename="c.csv"),
    ]
    errors = policy.validate_attachments(attachments)
    assert [e.code for e in errors] == ["content_type", "too_large"]


def test_custom_limits():
    small = NoteIntegrityPolicy(allowed_content_types=["text/plain"], max_attachment_size=10)
    assert small.validate_attachment("text/plain", 10) == []
    assert len(small.validate_attachment("image/png", 11)) == 2


# ─── Derived state ────────────────────────────────────────────────────────────

@pytest.mark.parametrize("own, parent, expected", [
    (NoteStatus.PERSONAL,  None,                 NoteStatus.PERSONAL),
    (NoteStatus.PUBLISHED, None,                 NoteStatus.PUBLISHED),
    (NoteStatus.PERSONAL,  NoteStatus.PUBLISHED, NoteStatus.PUBLISHED),
    (NoteStatus.PUBLISHED, NoteStatus.PERSONAL,  NoteStatus.PERSONAL),
    (NoteStatus.PERSONAL,  NoteStatus.ARCHIVED,  NoteStatus.ARCHIVED),
    (NoteStatus.ARCHIVED,  NoteStatus.PUBLISHED, NoteStatus.ARCHIVED),
])
def test_effective_status(own, parent, expected):
    parent_note = make_note(status=parent) if parent else None
    note = make_note(status=own, parent_note_id=parent_note.id if parent_note else None)

    assert policy.derive_effective_status(note, lambda n: parent_note) == expected


def test_effective_status_accepts_plain_strings():
    assert policy.derive_effective_status(make_note(status="published")) == NoteStatus.PUBLISHED


def test_archiving_clears_favorite():
    note = make_note(status=NoteStatus.ARCHIVED, favorited_at=datetime.now(timezone.utc))
    policy.apply_archive_side_effect(note, previous_status=NoteStatus.PUBLISHED)
    assert note.favorited_at is None


def test_creating_archived_note_clears_favorite():
    note = make_note(status=NoteStatus.ARCHIVED, favorited_at=datetime.now(timezone.utc))
    policy.apply_archive_side_effect(note, previous_status=None)
    assert note.favorited_at is None


def test_favoriting_an_already_archived_note_sticks():
    favorited = datetime.now(timezone.utc)
    note = make_note(status=NoteStatus.ARCHIVED, favorited_at=favorited)
    policy.apply_archive_side_effect(note, previous_status=NoteStatus.ARCHIVED)
    assert note.favorited_at == favorited


def test_non_archived_note_keeps_favorite():
    favorited = datetime.now(timezone.utc)
    note = make_note(status=NoteStatus.PUBLISHED, favorited_at=favorited)
    policy.apply_archive_side_effect(note, previous_status=NoteStatus.PERSONAL)
    assert note.favorited_at == favorited


# ─── Aggregate ────────────────────────────────────────────────────────────────

def test_check_raises_with_every_violation():
    parent = make_note(user_id=2)
    note = make_note(user_id=1, parent_note_id=parent.id, status="draft")
    attachments = [SimpleNamespace(content_type="text/html", byte_size=1, filename="x.html")]

    with pytest.raises(ValidationError) as exc:
        policy.check(note, lookup(parent), attachments)

    fields = [d["field"] for d in exc.value.details]
    assert fields == ["status", "parent_note_id", "attachments"]
    assert exc.value.status_code == 422


def test_check_passes_for_valid_note():
    policy.check(make_note(), lookup())
