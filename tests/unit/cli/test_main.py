"""Unit tests for CLI command handling."""

from __future__ import annotations

import json

import pytest

from cli import main as cli_main
from cli.main import main
from core.config import BmoConfig
from core.errors import BmoStoreError
from core.types import IngestOptions
from ingest.pipeline import ingest_source
from store.table_store import TableStore
from tests.fake_store import InMemoryBackend
from tests.fixture_paths import fixture_path


def _patch_store(monkeypatch: pytest.MonkeyPatch, backend: InMemoryBackend) -> list[BmoConfig]:
    seen_configs: list[BmoConfig] = []

    def fake_ingest_source(options: IngestOptions, config: BmoConfig):
        seen_configs.append(config)
        store = TableStore(backend, config.database, config.table, config.insert_mode)
        return ingest_source(options, config, store)

    monkeypatch.setattr(cli_main, "ingest_source", fake_ingest_source)
    return seen_configs


def _error_events(stderr: str) -> list[dict[str, object]]:
    events = [json.loads(line) for line in stderr.splitlines() if line.startswith("{")]
    return [event for event in events if event["level"] == "error"]


def test_cli_ingest_prints_summary(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    """CLI ingest should report object and batch counts on success."""
    backend = InMemoryBackend()
    _patch_store(monkeypatch, backend)
    args = [
        str(fixture_path("streams/three_objects.json")),
        "--node",
        "db-1:28015",
        "--table",
        "cli_demo",
        "--batch-size",
        "2",
    ]

    exit_code = main(args)
    output = capsys.readouterr().out.strip()

    assert exit_code == 0
    assert output == "objects=3\tbatches=2\ttable_created=true"
    assert backend.created == ["cli_demo"]


def test_cli_flags_override_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    """Repeated --node flags and sizes should replace env defaults."""
    monkeypatch.setenv("BMO_NODES", "env-node")
    monkeypatch.setenv("BMO_DATABASE", "env_db")
    seen_configs = _patch_store(monkeypatch, InMemoryBackend())
    args = [
        str(fixture_path("streams/empty.json")),
        "--node",
        "db-1",
        "--node",
        "db-2:29015",
        "--pool-size",
        "5",
        "--insert-mode",
        "document",
    ]

    exit_code = main(args)

    assert exit_code == 0
    config = seen_configs[0]
    assert config.nodes == ("db-1", "db-2:29015")
    assert config.database == "env_db"
    assert (config.pool_size, config.insert_mode) == (5, "document")


def test_cli_returns_one_on_parse_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    """Malformed input should exit non-zero after flushing prior values."""
    backend = InMemoryBackend()
    _patch_store(monkeypatch, backend)

    exit_code = main([str(fixture_path("streams/bad_tail.json")), "--node", "db-1"])

    assert exit_code == 1
    assert len(backend.documents) == 1


def test_cli_returns_one_on_store_failure(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_ingest_source(options: IngestOptions, config: BmoConfig):
        raise BmoStoreError("connection refused")

    monkeypatch.setattr(cli_main, "ingest_source", failing_ingest_source)

    assert main([str(fixture_path("streams/three_objects.json")), "--node", "db-1"]) == 1


def test_cli_returns_two_for_invalid_configuration(capsys) -> None:
    """Out-of-range sizes should be rejected as usage errors."""
    exit_code = main(["--node", "db-1", "--pool-size", "0"])

    assert exit_code == 2
    assert "usage: bmo" in capsys.readouterr().err


def test_cli_requires_a_node_address(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    """Without --node or BMO_NODES the CLI should exit as a usage error."""
    monkeypatch.delenv("BMO_NODES", raising=False)
    backend = InMemoryBackend()
    _patch_store(monkeypatch, backend)

    exit_code = main([str(fixture_path("streams/three_objects.json"))])
    stderr = capsys.readouterr().err

    assert exit_code == 2
    assert "usage: bmo" in stderr
    assert "Specify at least one node address" in stderr
    assert backend.durabilities == []


def test_cli_logs_one_error_for_store_failure(monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    """A rejected insert should produce a single error event on stderr."""
    _patch_store(monkeypatch, InMemoryBackend(fail_on_insert=0))

    exit_code = main([str(fixture_path("streams/three_objects.json")), "--node", "db-1"])
    errors = _error_events(capsys.readouterr().err)

    assert exit_code == 1
    assert len(errors) == 1
    assert errors[0]["event"] == "ingest_failed"
    assert errors[0]["kind"] == "BmoStoreError"


def test_cli_logs_one_error_for_parse_failure_with_failed_flush(
    monkeypatch: pytest.MonkeyPatch, capsys
) -> None:
    """A parse error whose partial flush also fails should still log one error."""
    _patch_store(monkeypatch, InMemoryBackend(fail_on_insert=0))

    exit_code = main([str(fixture_path("streams/bad_tail.json")), "--node", "db-1"])
    errors = _error_events(capsys.readouterr().err)

    assert exit_code == 1
    assert len(errors) == 1
    assert errors[0]["event"] == "ingest_failed"
    assert errors[0]["kind"] == "StreamParseError"
    assert errors[0]["sequence"] == 1
