from datetime import timedelta

from click.testing import CliRunner

from notes_api.cli import cli
from notes_api.models.refresh_token import RefreshToken
from notes_api.models.user import User
from notes_api.utils.clock import utcnow
from notes_api.utils.security import verify_password


def test_seed_admin_creates_then_updates(db):
    runner = CliRunner()

    first = runner.invoke(cli, ["seed-admin", "--email", "Admin@Example.com", "--password", "first-password"])
    second = runner.invoke(cli, ["seed-admin", "--email", "admin@example.com", "--password", "second-password"])

    assert first.exit_code == 0
    assert "created: admin@example.com" in first.output
    assert "updated: admin@example.com" in second.output
    users = db.query(User).all()
    assert len(users) == 1
    assert verify_password("second-password", users[0].password_hash)


def test_seed_admin_without_credentials(monkeypatch):
    monkeypatch.setattr("notes_api.cli.settings.ADMIN_EMAIL", None)
    monkeypatch.setattr("notes_api.cli.settings.ADMIN_PASSWORD", None)

    result = CliRunner().invoke(cli, ["seed-admin"])

    assert result.exit_code == 0
    assert "Skipping" in result.output


def test_purge_expired_tokens(db):
    user = User(email="purge@example.com", password_hash="x")
    db.add(user)
    db.commit()
    now = utcnow()
    db.add_all([
        RefreshToken(user_id=user.id, token="a" * 64, expires_at=now - timedelta(days=1)),
        RefreshToken(user_id=user.id, token="b" * 64, expires_at=now + timedelta(days=1)),
    ])
    db.commit()

    result = CliRunner().invoke(cli, ["purge-expired-tokens"])

    assert result.exit_code == 0
    assert "Deleted 1 expired refresh token(s)" in result.output
    db.expire_all()
    assert [t.token for t in db.query(RefreshToken).all()] == ["b" * 64]


def test_hash_password():
    result = CliRunner().invoke(cli, ["hash-password", "s3cret-pass"])
    assert result.exit_code == 0
    assert verify_password("s3cret-pass", result.output.strip())
