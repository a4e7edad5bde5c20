import pytest
from werkzeug.security import check_password_hash

from app.pmms.db import build_engine
from app.pmms.models import Base, User
from scripts._db_utils import script_session
from scripts.init_db import seed_only


@pytest.fixture()
def db_url(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path/'seed.db'}"
    engine = build_engine(url)
    Base.metadata.create_all(bind=engine)
    engine.dispose()
    for k in ("ADMIN_EMAIL", "ADMIN_PASSWORD", "SEED_DEMO_USERS", "ENV"):
        monkeypatch.delenv(k, raising=False)
    return url


def test_seed_is_idempotent_and_keeps_password(db_url, monkeypatch):
    monkeypatch.setenv("ADMIN_PASSWORD", "first")
    seed_only(database_url=db_url)
    monkeypatch.setenv("ADMIN_PASSWORD", "second")
    seed_only(database_url=db_url)

    with script_session(db_url) as s:
        users = s.query(User).all()
        assert [u.email for u in users] == ["admin@upnd.zm"]
        assert users[0].role == "National Admin"
        assert users[0].level == "National"
        assert check_password_hash(users[0].password_hash, "first")


def test_demo_users_seeded_on_request(db_url, monkeypatch):
    monkeypatch.setenv("SEED_DEMO_USERS", "1")
    seed_only(database_url=db_url)
    with script_session(db_url) as s:
        by_email = {u.email: u for u in s.query(User).all()}
    assert set(by_email) == {"admin@upnd.zm", "provincial@upnd.zm", "district@upnd.zm", "branch@upnd.zm"}
    assert by_email["provincial@upnd.zm"].jurisdiction == "Lusaka"
    assert check_password_hash(by_email["branch@upnd.zm"].password_hash, "upnd2024")


def test_demo_users_refused_in_production(db_url, monkeypatch):
    monkeypatch.setenv("SEED_DEMO_USERS", "1")
    monkeypatch.setenv("ENV", "production")
    with pytest.raises(RuntimeError):
        seed_only(database_url=db_url)
