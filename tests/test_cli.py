"""Tests for the garden-sync command line."""

from __future__ import annotations

import json
from unittest.mock import patch

import pytest
from conftest import FakeRepository

from garden_sync.cli import build_parser, run
from garden_sync.core.errors import AuthError, RemoteError
from garden_sync.core.repository import Release
from garden_sync.template.history import PullRequestHistory
from garden_sync.template.manifest import DEFAULT_CUSTOMIZATION_FILE, DEFAULT_TRACKED_FILES

PREFIX = "src/site/notes/"


@pytest.fixture(autouse=True)
def _cli_env(tmp_path, monkeypatch):
    """Isolate env, CWD, config discovery and logging from the host."""
    for name in (
        "GITHUB_TOKEN",
        "GARDEN_DEBUG",
        "GARDEN_BRANCH",
        "GARDEN_MAX_PARALLEL_REQUESTS",
        "GARDEN_SYNC_CONFIG",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("GARDEN_GITHUB_TOKEN", "ghp_test")
    monkeypatch.setenv("GARDEN_OWNER", "alice")
    monkeypatch.setenv("GARDEN_REPOSITORY", "garden")
    monkeypatch.chdir(tmp_path)

    with (
        patch("garden_sync.cli.load_dotenv"),
        patch("garden_sync.cli.setup_logging"),
        patch("garden_sync.cli.load_hierarchical_config", return_value={}),
    ):
        yield


def _run(argv: list[str]) -> int:
    with pytest.raises(SystemExit) as exc_info:
        run(argv)
    return exc_info.value.code


def _patch_clients(garden: FakeRepository, template: FakeRepository | None = None):
    client = patch("garden_sync.cli.GitHubClient")
    mock = client.start()
    mock.for_garden.return_value = garden
    mock.for_template.return_value = template
    return client


@pytest.fixture
def vault(tmp_path):
    root = tmp_path / "vault"
    root.mkdir()
    (root / "Home.md").write_bytes(b"# Home\n")
    (root / "New.md").write_bytes(b"# New\n")
    (root / "image.png").write_bytes(b"\x89PNG")
    return root


@pytest.fixture
def published_garden():
    return FakeRepository(
        files={
            PREFIX + "Home.md": b"# Home\n",
            PREFIX + "Gone.md": b"# Gone\n",
            PREFIX + "notes.json": b"{}",
        }
    )


def _template() -> FakeRepository:
    files = {path: f"// {path}\n".encode() for path in DEFAULT_TRACKED_FILES}
    files[DEFAULT_CUSTOMIZATION_FILE] = b"/* custom */\n"
    return FakeRepository(
        files=files,
        release=Release(
            version="3.1.0",
            url="https://github.com/oleeskild/digitalgarden/releases/tag/3.1.0",
        ),
        name="oleeskild/digitalgarden",
    )


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_update_template_flags(self):
        args = build_parser().parse_args(
            ["--owner", "bob", "update-template", "--dry-run", "--json"]
        )

        assert args.owner == "bob"
        assert args.command == "update-template"
        assert args.dry_run and args.json


class TestStatus:
    def test_prints_partition(self, vault, published_garden, capsys):
        client = _patch_clients(published_garden)
        try:
            code = _run(["status", str(vault)])
        finally:
            client.stop()

        out = capsys.readouterr().out
        assert code == 0
        assert "Published:   1" in out
        assert "Unpublished:\n  New.md" in out
        assert "Deleted:\n  Gone.md" in out
        assert "notes.json" not in out

    def test_missing_root_is_configuration_error(self, capsys):
        assert _run(["status"]) == 2
        assert "No content root given" in capsys.readouterr().err

    def test_root_from_config(self, vault, published_garden, capsys):
        client = _patch_clients(published_garden)
        try:
            with patch(
                "garden_sync.cli.load_hierarchical_config",
                return_value={"publish": {"root": str(vault)}},
            ):
                code = _run(["status"])
        finally:
            client.stop()

        assert code == 0
        assert "New.md" in capsys.readouterr().out


class TestPublish:
    def test_dry_run_writes_nothing(self, vault, published_garden, capsys):
        client = _patch_clients(published_garden)
        try:
            code = _run(["publish", str(vault), "--dry-run"])
        finally:
            client.stop()

        out = capsys.readouterr().out
        assert code == 0
        assert "DRY RUN" in out
        assert "[UNPUBLISHED] New.md: ok" in out
        assert "[DELETED] Gone.md: ok" in out
        assert published_garden.writes == []

    def test_publish_uploads_and_deletes(self, vault, published_garden, capsys):
        client = _patch_clients(published_garden)
        try:
            code = _run(["publish", str(vault)])
        finally:
            client.stop()

        files = published_garden.files_on("main")
        assert code == 0
        assert files[PREFIX + "New.md"] == b"# New\n"
        assert PREFIX + "Gone.md" not in files
        assert "2 succeeded, 0 failed" in capsys.readouterr().out

    def test_failed_item_sets_exit_code(self, vault, published_garden):
        published_garden.fail("delete_file", RemoteError("Server Error", 500))
        client = _patch_clients(published_garden)
        try:
            code = _run(["publish", str(vault)])
        finally:
            client.stop()

        assert code == 1


class TestUpdateTemplate:
    def test_opens_pull_request_and_records_it(self, tmp_path, capsys):
        garden = FakeRepository()
        client = _patch_clients(garden, _template())
        try:
            code = _run(["update-template"])
        finally:
            client.stop()

        out = capsys.readouterr().out
        assert code == 0
        assert "Pull request: https://github.com/alice/garden/pull/1" in out
        assert PullRequestHistory(tmp_path / ".garden_sync").urls() == [
            "https://github.com/alice/garden/pull/1"
        ]

    def test_second_run_records_nothing_new(self, tmp_path, capsys):
        garden = FakeRepository()
        template = _template()
        client = _patch_clients(garden, template)
        try:
            _run(["update-template"])
            code = _run(["update-template"])
        finally:
            client.stop()

        assert code == 0
        assert "No changes to propose" in capsys.readouterr().out
        assert len(PullRequestHistory(tmp_path / ".garden_sync").load()) == 1

    def test_dry_run_json(self, tmp_path, capsys):
        garden = FakeRepository()
        client = _patch_clients(garden, _template())
        try:
            code = _run(["update-template", "--dry-run", "--json"])
        finally:
            client.stop()

        data = json.loads(capsys.readouterr().out)
        assert code == 0
        assert data["dry_run"] is True
        assert data["version"] == "3.1.0"
        assert data["pull_request_url"] is None
        assert data["counts"]["created"] == len(DEFAULT_TRACKED_FILES) + 1
        assert garden.writes == []
        assert not (tmp_path / ".garden_sync").exists()

    def test_auth_error_exits_1(self, capsys):
        garden = FakeRepository()
        garden.fail("get_default_branch", AuthError("Bad credentials", 401))
        client = _patch_clients(garden, _template())
        try:
            code = _run(["update-template"])
        finally:
            client.stop()

        assert code == 1
        assert "rejected the credentials" in capsys.readouterr().err


class TestHistory:
    def test_empty(self, capsys):
        assert _run(["history"]) == 0
        assert "No pull requests recorded." in capsys.readouterr().out

    def test_lists_entries_without_credentials(self, tmp_path, monkeypatch, capsys):
        monkeypatch.delenv("GARDEN_GITHUB_TOKEN")
        PullRequestHistory(tmp_path / ".garden_sync").record(
            "https://github.com/alice/garden/pull/4", "3.1.0", "b"
        )

        assert _run(["history"]) == 0
        out = capsys.readouterr().out
        assert "3.1.0  https://github.com/alice/garden/pull/4" in out


def test_missing_token_exits_2(monkeypatch, capsys):
    monkeypatch.delenv("GARDEN_GITHUB_TOKEN")

    assert _run(["update-template"]) == 2
    assert "GitHub token not found" in capsys.readouterr().err
