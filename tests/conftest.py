import pytest
from werkzeug.security import generate_password_hash

from app.pmms import create_app
from app.pmms.auth import reset_login_attempts
from app.pmms.constants import (
    LEVEL_DISTRICT,
    LEVEL_NATIONAL,
    LEVEL_PROVINCIAL,
    LEVEL_SECTION,
    ROLE_DISTRICT_ADMIN,
    ROLE_MEMBER,
    ROLE_NATIONAL_ADMIN,
    ROLE_PROVINCIAL_ADMIN,
    ROLE_SECTION_ADMIN,
)
from app.pmms.db import session_scope
from app.pmms.models import Base, User
from app.pmms.modules.members.service import create_member

# email, role, level, jurisdiction
SEED_USERS = (
    ("admin@upnd.zm", ROLE_NATIONAL_ADMIN, LEVEL_NATIONAL, "National"),
    ("lusaka@upnd.zm", ROLE_PROVINCIAL_ADMIN, LEVEL_PROVINCIAL, "Lusaka"),
    ("kitwe@upnd.zm", ROLE_DISTRICT_ADMIN, LEVEL_DISTRICT, "Kitwe"),
    ("section@upnd.zm", ROLE_SECTION_ADMIN, LEVEL_SECTION, "Section A"),
    ("member@upnd.zm", ROLE_MEMBER, LEVEL_NATIONAL, "National"),
)


@pytest.fixture()
def app(tmp_path, monkeypatch):
    monkeypatch.setenv("SECRET_KEY", "test-secret")
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path/'test.db'}")
    monkeypatch.setenv("ENV", "test")
    monkeypatch.setenv("STORAGE_BACKEND", "local")
    monkeypatch.setenv("LOCAL_STORAGE_ROOT", str(tmp_path / "storage"))
    for k in ("S3_ENDPOINT", "S3_REGION", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY"):
        monkeypatch.delenv(k, raising=False)
    reset_login_attempts()

    app = create_app()
    engine = app.extensions["sqlalchemy_engine"]
    Base.metadata.create_all(bind=engine)

    with session_scope(app) as s:
        for email, role, level, jurisdiction in SEED_USERS:
            s.add(
                User(
                    email=email,
                    password_hash=generate_password_hash("pw"),
                    name=email.split("@")[0].title(),
                    role=role,
                    level=level,
                    jurisdiction=jurisdiction,
                    is_active=True,
                )
            )
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def login(client):
    """Log in and return the headers a mutating request needs."""

    def _login(email="admin@upnd.zm", password="pw"):
        r = client.post("/auth/login", json={"email": email, "password": password})
        assert r.status_code == 200, r.get_json()
        return {"X-CSRF-Token": r.get_json()["csrf_token"]}

    return _login


@pytest.fixture()
def member_payload():
    def _payload(**overrides):
        data = {
            "full_name": "Mwila Banda",
            "nrc_number": "123456/78/1",
            "date_of_birth": "1985-04-12",
            "gender": "Female",
            "phone": "+260971234567",
            "email": "mwila@example.com",
            "residential_address": "Plot 12, Kabulonga Road",
            "province": "Lusaka",
            "district": "Lusaka",
            "constituency": "Kabulonga",
            "ward": "Ward 1",
            "branch": "Kabulonga",
            "section": "Section A",
        }
        data.update(overrides)
        return data

    return _payload


@pytest.fixture()
def make_member(app, member_payload):
    """Insert a member directly through the service; returns (id, membership_id)."""

    def _make(status=None, **overrides):
        with session_scope(app) as s:
            m = create_member(s, member_payload(**overrides), None)
            if status:
                m.status = status
                s.flush()
            ref = (m.id, m.membership_id)
        return ref

    return _make
