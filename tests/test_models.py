from datetime import timedelta

from notes_api.models.note import Note
from notes_api.models.refresh_token import RefreshToken
from notes_api.models.user import User
from notes_api.utils.clock import utcnow


def test_deleting_user_removes_notes_and_refresh_tokens(db):
    owner = User(email="leaving@example.com", password_hash="x")
    keeper = User(email="staying@example.com", password_hash="x")
    db.add_all([owner, keeper])
    db.commit()

    parent = Note(user_id=owner.id, title="parent")
    db.add(parent)
    db.commit()
    db.add_all([
        Note(user_id=owner.id, title="child", parent_note_id=parent.id),
        Note(user_id=keeper.id, title="unrelated"),
        RefreshToken(user_id=owner.id, token="c" * 64, expires_at=utcnow() + timedelta(days=30)),
    ])
    db.commit()
    owner_id = owner.id

    db.delete(owner)
    db.commit()
    db.expire_all()

    assert db.query(Note).filter(Note.user_id == owner_id).count() == 0
    assert db.query(RefreshToken).filter(RefreshToken.user_id == owner_id).count() == 0
    assert [n.title for n in db.query(Note).all()] == ["unrelated"]


def test_email_is_stored_lower_cased(db):
    user = User(email="  MiXeD@Example.COM ", password_hash="x")
    db.add(user)
    db.commit()
    assert user.email == "mixed@example.com"
