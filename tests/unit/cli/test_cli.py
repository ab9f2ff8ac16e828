"""Unit tests for the user-api command line."""

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from src.cli import app
from src.app.runtime.config.config_data import ConfigData
from src.app.runtime.context import with_context

runner = CliRunner()


@pytest.fixture
def file_database(tmp_path):
    """Point the CLI at a throwaway SQLite file for the duration of a test."""
    override = ConfigData()
    override.database.url = f"sqlite:///{tmp_path / 'cli.db'}"
    with with_context(override):
        yield


@pytest.mark.usefixtures("file_database")
class TestUserCommands:
    def test_list_empty(self):
        result = runner.invoke(app, ["users", "list"])

        assert result.exit_code == 0
        assert "No users found" in result.output

    def test_add_then_list(self):
        added = runner.invoke(
            app,
            ["users", "add", "John", "Doe", "--email", "john@example.com", "--phone", "+1"],
        )
        listed = runner.invoke(app, ["users", "list"])

        assert added.exit_code == 0
        assert "Created user 1" in added.output
        assert listed.exit_code == 0
        assert "john@example.com" in listed.output
        assert "Found 1 users" in listed.output

    def test_add_duplicate_email_fails(self):
        runner.invoke(app, ["users", "add", "John", "Doe", "-e", "john@example.com"])

        result = runner.invoke(
            app, ["users", "add", "Other", "Person", "-e", "john@example.com"]
        )

        assert result.exit_code == 1
        assert "already exists" in result.output

    def test_add_invalid_email_fails(self):
        result = runner.invoke(app, ["users", "add", "John", "Doe", "-e", "nope"])

        assert result.exit_code == 1
        assert "Invalid user" in result.output

    def test_delete_with_force(self):
        runner.invoke(app, ["users", "add", "John", "Doe", "-e", "john@example.com"])

        deleted = runner.invoke(app, ["users", "delete", "1", "--force"])
        again = runner.invoke(app, ["users", "delete", "1", "--force"])

        assert deleted.exit_code == 0
        assert "Deleted user 1" in deleted.output
        assert again.exit_code == 1
        assert "User with ID 1 not found" in again.output

    def test_delete_cancelled_at_prompt(self):
        runner.invoke(app, ["users", "add", "John", "Doe", "-e", "john@example.com"])

        result = runner.invoke(app, ["users", "delete", "1"], input="n\n")

        assert result.exit_code == 0
        assert "Deletion cancelled" in result.output
        assert "john@example.com" in runner.invoke(app, ["users", "list"]).output

    def test_seed_only_into_empty_store(self):
        first = runner.invoke(app, ["users", "seed"])
        second = runner.invoke(app, ["users", "seed"])

        assert "Seeded 2 demo users" in first.output
        assert "nothing seeded" in second.output

    def test_init_db_with_seed(self):
        result = runner.invoke(app, ["init-db", "--seed"])

        assert result.exit_code == 0
        assert "Database initialized" in result.output
        assert "Seeded 2 demo users" in result.output


class TestServeCommand:
    def test_serve_runs_uvicorn_with_config_defaults(self):
        override = ConfigData()
        override.app.host = "127.0.0.1"
        override.app.port = 8123

        with with_context(override), patch("uvicorn.run") as run:
            result = runner.invoke(app, ["serve"])

        assert result.exit_code == 0
        args, kwargs = run.call_args
        assert args == ("src.app.api.http.app:app",)
        assert kwargs["host"] == "127.0.0.1"
        assert kwargs["port"] == 8123
        assert kwargs["access_log"] is False
