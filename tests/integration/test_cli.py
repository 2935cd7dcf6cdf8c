"""End-to-end CLI tests through click's CliRunner against a temporary store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from auditor import __version__
from auditor.cli.main import cli
from auditor.core.store.database import Database
from tests.helpers import execve_line, make_record, syscall_line

_ENV_VARS = (
    "AUDITOR_CONFIG",
    "AUDITOR_LOG_FILE",
    "AUDITOR_HOST",
    "AUDITOR_PORT",
    "PORT",
    "AUDITOR_STATIC_DIR",
    "DATA_DIR",
    "AUDITOR_DB_PATH",
    "AUDITOR_LOG_LEVEL",
)


@pytest.fixture
def env(tmp_path: Path, monkeypatch) -> dict[str, str]:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return {
        "HOME": str(tmp_path / "home"),
        "AUDITOR_DATA_DIR": str(tmp_path / "data"),
        "AUDITOR_LOG_FILE": str(tmp_path / "audit.log"),
        "XDG_CONFIG_HOME": str(tmp_path / "xdg"),
    }


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def populated(tmp_path: Path) -> Path:
    db = Database(tmp_path / "data" / "auditor.db")
    db.connect()
    for i, (program, *args) in enumerate(
        [("ls", "-la"), ("git", "commit"), ("git", "status")], start=1
    ):
        db.insert_record(make_record(1717004048 + i, program, *args))
    db.close()
    return db.path


def _invoke(runner: CliRunner, env: dict[str, str], *args: str):  # type: ignore[no-untyped-def]
    return runner.invoke(cli, list(args), env=env, catch_exceptions=False)


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_help_lists_commands(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["-h"])
    for name in ("run", "logs", "search", "clear", "parse", "db", "config", "doctor", "service"):
        assert name in result.output


# ---------------------------------------------------------------------------
# parse
# ---------------------------------------------------------------------------


class TestParse:
    def test_execve_json(self, runner: CliRunner, env) -> None:
        line = 'type=EXECVE msg=audit(1717004049.439:18034): argc=2 a0="/bin/ls" a1="-la"'
        result = _invoke(runner, env, "parse", line, "--json")
        assert result.exit_code == 0
        body = json.loads(result.output)
        assert body["ok"] is True
        assert body["record"]["command"] == "/bin/ls -la"
        assert body["record"]["timestamp"] == "2024-05-29T17:34:09.000000439+00:00"

    def test_malformed(self, runner: CliRunner, env) -> None:
        result = _invoke(runner, env, "parse", "invalid log line", "--json")
        assert result.exit_code == 1
        assert "Missing log type" in json.loads(result.output)["reason"]

    def test_other_record_type(self, runner: CliRunner, env) -> None:
        result = _invoke(runner, env, "parse", syscall_line(1))
        assert result.exit_code == 1
        assert "not an EXECVE record" in result.output


# ---------------------------------------------------------------------------
# logs / search / clear
# ---------------------------------------------------------------------------


class TestQuery:
    def test_logs_empty(self, runner: CliRunner, env) -> None:
        result = _invoke(runner, env, "logs")
        assert result.exit_code == 0
        assert "No records" in result.output

    def test_logs_json(self, runner: CliRunner, env, populated) -> None:
        result = _invoke(runner, env, "logs", "--json", "--page-size", "2")
        assert result.exit_code == 0
        assert [r["command"] for r in json.loads(result.output)] == ["git status", "git commit"]

    def test_logs_second_page(self, runner: CliRunner, env, populated) -> None:
        result = _invoke(runner, env, "logs", "--json", "--page", "2", "--page-size", "2")
        assert [r["command"] for r in json.loads(result.output)] == ["ls -la"]

    def test_logs_rejects_page_zero(self, runner: CliRunner, env) -> None:
        result = runner.invoke(cli, ["logs", "--page", "0"], env=env)
        assert result.exit_code == 2

    def test_search_json(self, runner: CliRunner, env, populated) -> None:
        result = _invoke(runner, env, "search", "git stat", "--json")
        body = json.loads(result.output)
        assert [r["command"] for r in body] == ["git status", "git commit", "ls -la"]
        assert body[0]["score"] > body[1]["score"] > body[2]["score"]

    def test_search_limit(self, runner: CliRunner, env, populated) -> None:
        result = _invoke(runner, env, "search", "git", "-n", "1", "--json")
        assert len(json.loads(result.output)) == 1

    def test_clear(self, runner: CliRunner, env, populated) -> None:
        result = _invoke(runner, env, "clear")
        assert result.exit_code == 0
        assert "Deleted 3 record(s)" in result.output


# ---------------------------------------------------------------------------
# db
# ---------------------------------------------------------------------------


class TestDb:
    def test_info_before_first_run(self, runner: CliRunner, env) -> None:
        body = json.loads(_invoke(runner, env, "db", "info", "--json").output)
        assert body["exists"] is False

    def test_info(self, runner: CliRunner, env, populated) -> None:
        body = json.loads(_invoke(runner, env, "db", "info", "--json").output)
        assert body["exists"] is True
        assert body["records"] == 3
        assert body["schema_version"] == body["latest_version"]
        assert body["newest"] == "2024-05-29T17:34:11.000000000+00:00"

    def test_migrate_up_to_date(self, runner: CliRunner, env, populated) -> None:
        body = json.loads(_invoke(runner, env, "db", "migrate", "--json").output)
        assert body["status"] == "up_to_date"
        assert body["pending_migrations"] == []

    def test_migrate_dry_run_on_old_schema(self, runner: CliRunner, env, populated) -> None:
        import sqlite3

        conn = sqlite3.connect(str(populated))
        conn.execute("PRAGMA user_version = 1")
        conn.commit()
        conn.close()

        dry = json.loads(_invoke(runner, env, "db", "migrate", "--dry-run", "--json").output)
        assert dry["status"] == "dry_run"
        assert dry["pending_migrations"] == ["v1 -> v2"]

        applied = json.loads(_invoke(runner, env, "db", "migrate", "--json").output)
        assert applied["status"] == "applied"


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfig:
    def test_init_then_show(self, runner: CliRunner, env, tmp_path: Path) -> None:
        cfg = tmp_path / "cfg" / "config.toml"
        result = _invoke(runner, env, "config", "init", "--config", str(cfg), "--port", "9090")
        assert result.exit_code == 0
        assert cfg.exists()

        shown = _invoke(runner, env, "config", "show", "--config", str(cfg), "--json")
        body = json.loads(shown.output)
        assert body["server"]["port"] == 9090
        assert body["_config_path"] == str(cfg)

    def test_init_refuses_overwrite(self, runner: CliRunner, env, tmp_path: Path) -> None:
        cfg = tmp_path / "config.toml"
        _invoke(runner, env, "config", "init", "--config", str(cfg))
        result = runner.invoke(cli, ["config", "init", "--config", str(cfg)], env=env)
        assert result.exit_code == 2
        forced = _invoke(runner, env, "config", "init", "--config", str(cfg), "--force")
        assert forced.exit_code == 0

    def test_show_missing_explicit_file(self, runner: CliRunner, env, tmp_path: Path) -> None:
        result = runner.invoke(
            cli, ["config", "show", "--config", str(tmp_path / "nope.toml")], env=env
        )
        assert result.exit_code == 2


# ---------------------------------------------------------------------------
# doctor / service
# ---------------------------------------------------------------------------


class TestDoctor:
    def test_missing_log_file_fails(self, runner: CliRunner, env) -> None:
        result = runner.invoke(cli, ["doctor", "--json"], env=env)
        assert result.exit_code == 1
        body = json.loads(result.output)
        assert body["all_pass"] is False
        failed = [c["name"] for c in body["checks"] if c["status"] == "fail"]
        assert failed == ["Audit log"]

    def test_all_pass(self, runner: CliRunner, env, tmp_path: Path) -> None:
        (tmp_path / "audit.log").write_text(execve_line(1, "ls") + "\n")
        result = runner.invoke(cli, ["doctor", "--json"], env=env)
        assert result.exit_code == 0
        assert json.loads(result.output)["all_pass"] is True


def test_service_print(runner: CliRunner, env, tmp_path: Path) -> None:
    result = _invoke(runner, env, "service", "install", "--print")
    assert result.exit_code == 0
    assert f"run {tmp_path / 'audit.log'}" in result.output
    assert "[Install]" in result.output
