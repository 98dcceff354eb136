"""End-to-end CLI tests using Typer CliRunner, a real git repository and a fake Drive."""

from __future__ import annotations

from pathlib import Path

import pytest
from typer.testing import CliRunner

from todosync_cli import cli
from todosync_cli.cli import app
from todosync_core.config import ENV_VARS
from todosync_core.errors import SetupError, TransientError

from tests.framework import FakeRemoteStore, git, has_git, init_repo

runner = CliRunner()


@pytest.fixture()
def workspace(tmp_path: Path, monkeypatch):
    """Repository, local folder and a config file pointing at both."""
    for var in [*ENV_VARS, "TODOSYNC_CONFIG"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)

    repo = tmp_path / "repo"
    local = tmp_path / "local"
    local.mkdir()
    if has_git():
        init_repo(repo, {"todo.txt": "A\n", "done.txt": "B\n"})
    else:
        repo.mkdir()
    (local / "todo.txt").write_text("A\n", encoding="utf-8")
    (local / "done.txt").write_text("B\n", encoding="utf-8")

    token = tmp_path / "token.json"
    token.write_text("{}", encoding="utf-8")
    cfg = tmp_path / "todosync.yaml"
    cfg.write_text(
        f"repo-path: {repo}\nlocal-dir: {local}\ntoken-file: {token}\n",
        encoding="utf-8",
    )

    remote = FakeRemoteStore({"todo.txt": b"A\n", "done.txt": b"B\n"})
    monkeypatch.setattr(cli, "make_remote_store", lambda config, interactive=False: remote)
    return {"repo": repo, "local": local, "remote": remote, "config": cfg}


needs_git = pytest.mark.skipif(not has_git(), reason="git executable not available")


@needs_git
def test_once_pulls_remote_edit_and_commits(workspace):
    workspace["remote"].set_content("todo.txt", b"A\n(A) from phone\n")

    res = runner.invoke(app, ["once"])

    assert res.exit_code == 0, res.output
    assert "Cycle completed" in res.output
    assert (workspace["local"] / "todo.txt").read_bytes() == b"A\n(A) from phone\n"
    assert git(workspace["repo"], "log", "-1", "--format=%an|%s").strip() == (
        "ToDo Sync|Push from mobile"
    )


@needs_git
def test_once_with_nothing_to_do(workspace):
    res = runner.invoke(app, ["once"])

    assert res.exit_code == 0, res.output
    assert "No changes" in res.output


@needs_git
def test_run_for_a_fixed_number_of_cycles(workspace):
    (workspace["local"] / "done.txt").write_text("B\nx shipped\n", encoding="utf-8")

    res = runner.invoke(app, ["run", "--cycles", "2", "--interval", "0.01"])

    assert res.exit_code == 0, res.output
    assert "Cycles: 2" in res.output
    assert workspace["remote"].content("done.txt") == b"B\nx shipped\n"
    assert workspace["remote"].count("upload") == 1


@needs_git
def test_failed_cycle_exit_codes(workspace):
    workspace["remote"].set_content("todo.txt", b"changed")
    workspace["remote"].failures["download"] = TransientError("offline", "download")

    assert runner.invoke(app, ["once"]).exit_code == 1
    res = runner.invoke(app, ["run", "--fail-fast", "--interval", "0.01"])
    assert res.exit_code == 1
    assert "offline" in res.output


@needs_git
def test_empty_drive_is_fatal(workspace):
    workspace["remote"].objects.clear()

    res = runner.invoke(app, ["run", "--interval", "0.01"])

    assert res.exit_code == 2
    assert "No files found" in res.output


def test_missing_configuration_exits_2(tmp_path, monkeypatch):
    for var in [*ENV_VARS, "TODOSYNC_CONFIG"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)

    res = runner.invoke(app, ["once"])

    assert res.exit_code == 2
    assert "Configuration error" in res.output


def test_missing_local_directory_exits_2(workspace, tmp_path):
    res = runner.invoke(app, ["once", "--local", str(tmp_path / "nope")])

    assert res.exit_code == 2
    assert "Local directory not found" in res.output


def test_drive_connection_failure_exits_2(workspace, monkeypatch):
    def refuse(config, interactive=False):
        raise SetupError("no token", "authorize")

    monkeypatch.setattr(cli, "make_remote_store", refuse)

    res = runner.invoke(app, ["once"])

    assert res.exit_code == 2
    assert "Unable to connect" in res.output


def test_status_shows_pending_work(workspace):
    (workspace["local"] / "todo.txt").write_text("A\nnew\n", encoding="utf-8")

    res = runner.invoke(app, ["status"])

    assert res.exit_code == 0, res.output
    assert "push local" in res.output
    assert "in sync" in res.output
    # Status never writes
    assert workspace["remote"].count("upload") == 0


def test_status_with_tracked_file_override(workspace):
    res = runner.invoke(app, ["status", "--file", "todo.txt"])

    assert res.exit_code == 0, res.output
    assert "todo.txt" in res.output
    assert "done.txt" not in res.output


@needs_git
def test_doctor_reports_healthy_setup(workspace):
    res = runner.invoke(app, ["doctor"])

    assert res.exit_code == 0, res.output
    assert "looks good" in res.output


def test_doctor_flags_missing_credentials(workspace, tmp_path):
    (tmp_path / "token.json").unlink()

    res = runner.invoke(app, ["doctor"])

    assert res.exit_code == 1
    assert "OAuth client secret not found" in res.output
