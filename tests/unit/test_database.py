import pytest
from sqlalchemy import func, select, text
from sqlalchemy.exc import OperationalError

from geobus.infrastructure.db.models import User
from geobus.infrastructure.db.session import Database


def test_engine_is_created_lazily(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'lazy.db'}")

    assert database._engine is None
    assert not (tmp_path / "lazy.db").exists()

    database.wait_until_ready(max_retries=1)

    assert database._engine is not None
    database.dispose()
    assert database._engine is None


def test_wait_until_ready_gives_up(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'no-such-dir' / 'geobus.db'}")

    with pytest.raises(OperationalError):
        database.wait_until_ready(max_retries=2, retry_delay=0)


def test_session_scope_commits_or_rolls_back(database):
    with database.session_scope() as db:
        db.add(User(name="Kept", email="kept@example.com"))

    with pytest.raises(RuntimeError):
        with database.session_scope() as db:
            db.add(User(name="Dropped", email="dropped@example.com"))
            db.flush()
            raise RuntimeError("boom")

    with database.session_scope() as db:
        emails = db.execute(select(User.email)).scalars().all()
        assert emails == ["kept@example.com"]
        assert db.execute(select(func.count()).select_from(User)).scalar_one() == 1


def test_sqlite_lower_folds_unicode(database):
    with database.engine.connect() as conn:
        assert conn.execute(text("SELECT lower('ÉVORA Ünye')")).scalar_one() == "évora ünye"
        assert conn.execute(text("SELECT lower(NULL)")).scalar_one() is None
