from bootstrap import (
    clear_bootstrap_marker,
    has_bootstrap_marker,
    run_bootstrap_migrations,
    set_bootstrap_marker,
)
from auth import verify_password
from models import Profile, ScoringConfig, StaffRole, SystemConfig


def test_bootstrap_seeds_defaults(db, monkeypatch):
    monkeypatch.setenv("ADMIN_EMAIL", "Root@Sigaram.org")
    monkeypatch.setenv("ADMIN_PASSWORD", "bootstrap-pass")
    run_bootstrap_migrations()
    run_bootstrap_migrations()

    admins = db.query(Profile).filter(Profile.role == StaffRole.ADMIN).all()
    assert [admin.email for admin in admins] == ["root@sigaram.org"]
    assert verify_password("bootstrap-pass", admins[0].hashed_password)
    assert db.query(ScoringConfig).count() == 4
    assert db.query(SystemConfig).filter(SystemConfig.key == "registration_open").one().value == "true"


def test_bootstrap_without_admin_env(db, monkeypatch):
    monkeypatch.delenv("ADMIN_EMAIL", raising=False)
    monkeypatch.delenv("ADMIN_PASSWORD", raising=False)
    run_bootstrap_migrations()
    assert db.query(Profile).count() == 0


def test_marker_lifecycle():
    assert has_bootstrap_marker() is False
    set_bootstrap_marker()
    set_bootstrap_marker()
    assert has_bootstrap_marker() is True
    assert clear_bootstrap_marker() is True
    assert clear_bootstrap_marker() is False


def test_health(client):
    assert client.get("/api/health").json() == {"status": "healthy"}


def test_check_reports_nothing_pending_after_create_all():
    from run_migrations import pending_changes

    assert pending_changes() == []
