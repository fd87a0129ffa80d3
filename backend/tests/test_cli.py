"""
CLI command tests (flask system / users / catalog / licenses).
"""

import json

from ona.models import Component, License, User


class TestSystemCommands:
    def test_init_creates_admin_once(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["system", "init"])
        assert result.exit_code == 0
        assert "PASS Created admin: admin@ona.local" in result.output
        assert db_session.query(User).filter_by(role="super_admin").count() == 1

        again = runner.invoke(args=["system", "init"])
        assert "already exists" in again.output

    def test_cleanup_sessions(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["system", "cleanup-sessions"])
        assert "PASS Removed 0 session tokens" in result.output


class TestUserCommands:
    def test_create_admin_rejects_weak_password(self, app, db_session):
        result = app.test_cli_runner().invoke(
            args=["users", "create-admin", "--email", "ops@ona.test", "--password", "weak"]
        )
        assert result.exit_code != 0
        assert "at least 8 characters" in result.output

    def test_issue_token(self, app, admin_user):
        result = app.test_cli_runner().invoke(args=["users", "issue-token", "admin@ona.test", "--days", "7"])
        assert result.exit_code == 0
        token = result.output.strip().splitlines()[-1]
        assert len(token) == 64

    def test_list_users(self, app, admin_user, regular_user):
        result = app.test_cli_runner().invoke(args=["users", "list", "--role", "admin"])
        assert "admin@ona.test" in result.output
        assert "user@ona.test" not in result.output


class TestCatalogCommands:
    def test_seed_is_idempotent(self, app, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["catalog", "seed"])
        assert "with 6 components" in result.output
        assert db_session.query(Component).filter_by(status="published").count() == 6

        again = runner.invoke(args=["catalog", "seed"])
        assert "skipping seed" in again.output
        assert db_session.query(Component).count() == 6

    def test_export_to_file(self, app, subcategory, tmp_path):
        output = tmp_path / "catalog.json"
        result = app.test_cli_runner().invoke(args=["catalog", "export", "--output", str(output)])
        assert result.exit_code == 0
        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["categories"][0]["slug"] == "marketing"

    def test_stats(self, app, premium_component):
        result = app.test_cli_runner().invoke(args=["catalog", "stats"])
        assert "Components:     1 (1 published)" in result.output


class TestLicenseCommands:
    def test_issue_validate_deactivate(self, app, regular_user, db_session):
        runner = app.test_cli_runner()
        result = runner.invoke(args=["licenses", "issue", "user@ona.test", "--tier", "team"])
        assert result.exit_code == 0
        lic = db_session.query(License).one()
        assert lic.seats_allowed == 5

        assert "PASS Valid team license" in runner.invoke(args=["licenses", "validate", lic.license_key]).output
        runner.invoke(args=["licenses", "deactivate", lic.id, "--reason", "refund"])
        assert "FAIL License deactivated" in runner.invoke(args=["licenses", "validate", lic.license_key]).output

    def test_unknown_email(self, app, db_session):
        result = app.test_cli_runner().invoke(args=["licenses", "issue", "ghost@ona.test"])
        assert result.exit_code != 0
        assert "No user with email ghost@ona.test" in result.output
