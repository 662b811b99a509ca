import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

os.environ["JWT_SECRET_KEY"] = "sigaram-test-secret-key-0123456789abcdef"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OTP_DEBUG_FALLBACK"] = "true"
os.environ["EVENT_DATE"] = "2025-03-01"
os.environ["APP_TIMEZONE"] = "Asia/Kolkata"
for key in ("SMTP_PRIMARY_HOST", "SMTP_SECONDARY_HOST", "S3_BUCKET_NAME", "NOTIFY_EMAIL", "ADMIN_EMAIL"):
    os.environ.pop(key, None)

from fastapi.testclient import TestClient

from auth import get_password_hash, issue_token_pair
from database import Base, SessionLocal, engine
from models import Profile, StaffRole
from server import app

STAFF_PASSWORD = "password123"


@pytest.fixture(autouse=True)
def fresh_db():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def make_staff(db):
    def _make(email, role, rights=None, full_name=None, is_active=True):
        user = Profile(
            email=email,
            full_name=full_name or email.split("@")[0].title(),
            role=role,
            rights=rights,
            hashed_password=get_password_hash(STAFF_PASSWORD),
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def headers_for():
    def _headers(user, mfa=False, portal=None):
        tokens = issue_token_pair(user.email, "staff", role=user.role.value, mfa=mfa, portal=portal)
        return {"Authorization": f"Bearer {tokens['access_token']}"}

    return _headers


@pytest.fixture
def admin(make_staff):
    return make_staff("admin@sigaram.org", StaffRole.ADMIN, full_name="Chief Admin")


@pytest.fixture
def admin_headers(admin, headers_for):
    return headers_for(admin, mfa=True)


@pytest.fixture
def create_event(client, admin_headers):
    def _create(name, **fields):
        payload = {"name": name, **fields}
        res = client.post("/api/admin/events", json=payload, headers=admin_headers)
        assert res.status_code == 200, res.text
        return res.json()

    return _create


@pytest.fixture
def add_entry(client, admin_headers):
    def _add(event_id, branch, *names, team_name=None, event_type="Individual"):
        payload = {
            "ima_branch": branch,
            "team_name": team_name,
            "event_type": event_type,
            "members": [{"name": name} for name in names],
        }
        res = client.post(f"/api/admin/events/{event_id}/entries", json=payload, headers=admin_headers)
        assert res.status_code == 200, res.text
        return res.json()

    return _add
