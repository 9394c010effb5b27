from sqlalchemy import create_engine

from notes_api import database


def test_check_db_connection():
    assert database.check_db_connection() is True


def test_check_db_connection_reports_failure(monkeypatch, tmp_path):
    unreachable = create_engine(f"sqlite:///{tmp_path}/missing/dir/notes.db")
    monkeypatch.setattr(database, "engine", unreachable)
    assert database.check_db_connection() is False


def test_get_db_yields_a_session():
    gen = database.get_db()
    session = next(gen)
    assert session.is_active
    gen.close()
