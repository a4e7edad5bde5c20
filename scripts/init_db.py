import os
import sys
from pathlib import Path

from werkzeug.security import generate_password_hash

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.pmms.constants import (  # noqa: E402
    LEVEL_DISTRICT,
    LEVEL_NATIONAL,
    LEVEL_PROVINCIAL,
    LEVEL_BRANCH,
    ROLE_BRANCH_ADMIN,
    ROLE_DISTRICT_ADMIN,
    ROLE_NATIONAL_ADMIN,
    ROLE_PROVINCIAL_ADMIN,
)
from app.pmms.models import User  # noqa: E402
from scripts._db_utils import script_session  # noqa: E402

# Demo accounts for non-production environments (SEED_DEMO_USERS=1).
DEMO_ADMINS = (
    ("provincial@upnd.zm", "Lusaka Provincial Admin", ROLE_PROVINCIAL_ADMIN, LEVEL_PROVINCIAL, "Lusaka", "Provincial Chairperson"),
    ("district@upnd.zm", "Lusaka District Admin", ROLE_DISTRICT_ADMIN, LEVEL_DISTRICT, "Lusaka", "District Chairperson"),
    ("branch@upnd.zm", "Kabulonga Branch Admin", ROLE_BRANCH_ADMIN, LEVEL_BRANCH, "Kabulonga", "Branch Chairperson"),
)


def _ensure_user(s, *, email: str, password: str, name: str, role: str, level: str, jurisdiction: str, position: str | None) -> User:
    """Create the user if missing. Never overwrites an existing password."""
    user = s.query(User).filter(User.email == email).one_or_none()
    if not user:
        user = User(email=email, password_hash=generate_password_hash(password), is_active=True)
        s.add(user)
    user.name = user.name or name
    user.role = role
    user.level = level
    user.jurisdiction = jurisdiction
    user.party_position = user.party_position or position
    return user


def seed_only(*, database_url: str | None = None) -> None:
    """
    Seed the National Admin (and optional demo admins) in an idempotent way.
    Does NOT overwrite an existing admin user's password.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@upnd.zm").strip().lower()
    admin_password = os.environ.get("ADMIN_PASSWORD") or "change-me"
    seed_demo = (os.environ.get("SEED_DEMO_USERS") or "").strip() == "1"
    env = (os.environ.get("ENV") or "").strip().lower()
    if seed_demo and env in ("prod", "production"):
        raise RuntimeError("Refusing to seed demo users in production.")

    db_url = (database_url or os.environ.get("DATABASE_URL") or "sqlite:///pmms.db").strip()

    # Direct engine/session so this can run in release without importing app.wsgi.
    with script_session(db_url) as s:
        _ensure_user(
            s,
            email=admin_email,
            password=admin_password,
            name="National Administrator",
            role=ROLE_NATIONAL_ADMIN,
            level=LEVEL_NATIONAL,
            jurisdiction="National",
            position="National Secretary",
        )
        if seed_demo:
            demo_password = os.environ.get("DEMO_PASSWORD") or "upnd2024"
            for email, name, role, level, jurisdiction, position in DEMO_ADMINS:
                _ensure_user(
                    s,
                    email=email,
                    password=demo_password,
                    name=name,
                    role=role,
                    level=level,
                    jurisdiction=jurisdiction,
                    position=position,
                )

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    print("Admin password: (from ADMIN_PASSWORD)")
    if seed_demo:
        print(f"Demo admins: {', '.join(d[0] for d in DEMO_ADMINS)}")


def main() -> None:
    seed_only(database_url=None)


if __name__ == "__main__":
    main()
