"""
Tests for the bucketfs command line.
"""

from __future__ import annotations

import logging

import pytest
from typer.testing import CliRunner

from bucketfs.cli.main import app
from bucketfs.config import settings
from bucketfs.storage.memory import MemoryClient
from bucketfs.storage.registry import Store

runner = CliRunner()


@pytest.fixture(autouse=True)
def quiet_logging(monkeypatch: pytest.MonkeyPatch):
    # Keep log lines out of the captured command output.
    monkeypatch.setattr(settings, "log_level", "WARNING")
    yield
    logging.getLogger().handlers.clear()


@pytest.fixture
def memory_client() -> MemoryClient:
    client = MemoryClient()
    client.put("logs/a.txt", b"alpha")
    client.put("logs/b.json", b"{}")
    client.put("state/c.txt", b"gamma")
    return client


@pytest.fixture
def store(memory_client: MemoryClient) -> Store:
    return Store(memory_client, "cli-bucket")


def _invoke(store: Store, *args: str, **kwargs):
    return runner.invoke(app, list(args), obj=store, **kwargs)


class TestCommands:
    def test_ls(self, store: Store) -> None:
        result = _invoke(store, "ls", "logs/")
        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert [line.split("\t")[0] for line in lines] == ["logs/a.txt", "logs/b.json"]
        assert lines[0].split("\t")[1] == "5"

    def test_ls_pattern(self, store: Store) -> None:
        result = _invoke(store, "ls", "--pattern", "*.txt")
        lines = result.stdout.splitlines()
        assert [line.split("\t")[0] for line in lines] == ["logs/a.txt", "state/c.txt"]

    def test_stat(self, store: Store) -> None:
        result = _invoke(store, "stat", "state/c.txt")
        name, size, mode, _ = result.stdout.strip().split("\t")
        assert (name, size, mode) == ("state/c.txt", "5", "644")

    def test_cat(self, store: Store) -> None:
        result = _invoke(store, "cat", "logs/a.txt")
        assert result.exit_code == 0
        assert result.stdout_bytes == b"alpha"
        assert store.handles() == []

    def test_put_new_from_file(self, store: Store, memory_client: MemoryClient, tmp_path) -> None:
        source = tmp_path / "upload.txt"
        source.write_bytes(b"uploaded")
        result = _invoke(store, "put", "new/obj.txt", "--file", str(source))
        assert result.exit_code == 0
        assert memory_client.content("new/obj.txt") == b"uploaded"

    def test_put_from_stdin_replaces_existing(
        self, store: Store, memory_client: MemoryClient
    ) -> None:
        result = _invoke(store, "put", "logs/a.txt", input=b"new")
        assert result.exit_code == 0
        assert memory_client.content("logs/a.txt") == b"new"

    def test_rm(self, store: Store, memory_client: MemoryClient) -> None:
        result = _invoke(store, "rm", "state/c.txt")
        assert result.exit_code == 0
        assert "state/c.txt" not in memory_client


class TestErrors:
    def test_missing_object_exits_1(self, store: Store) -> None:
        result = _invoke(store, "cat", "missing.txt")
        assert result.exit_code == 1

    def test_rm_missing_exits_1(self, store: Store) -> None:
        assert _invoke(store, "rm", "missing.txt").exit_code == 1

    def test_no_command_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "Usage" in result.output
        assert "put" in result.output
