"""Unit tests for core config parsing."""

from __future__ import annotations

import os
from dataclasses import replace

import pytest

from core.config import BmoConfig
from core.constants import DEFAULT_BATCH_SIZE, DEFAULT_POOL_SIZE
from core.errors import BmoConfigError


def test_from_env_uses_reference_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should default to 20 workers and 200-document batches."""
    for name in ("BMO_NODES", "BMO_POOL_SIZE", "BMO_BATCH_SIZE", "BMO_INSERT_MODE"):
        monkeypatch.delenv(name, raising=False)

    config = BmoConfig.from_env()

    assert (config.pool_size, config.batch_size, config.insert_mode) == (
        DEFAULT_POOL_SIZE,
        DEFAULT_BATCH_SIZE,
        "batch",
    )


def test_from_env_splits_node_list(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should read comma-separated node addresses."""
    monkeypatch.setenv("BMO_NODES", "db-1:28015, db-2 ,")

    config = BmoConfig.from_env()

    assert config.nodes == ("db-1:28015", "db-2")


def test_from_env_raises_for_invalid_pool_size(monkeypatch: pytest.MonkeyPatch) -> None:
    """Config should fail for non-numeric pool size."""
    monkeypatch.setenv("BMO_POOL_SIZE", "many")

    with pytest.raises(BmoConfigError):
        BmoConfig.from_env()

    assert os.getenv("BMO_POOL_SIZE") == "many"


def test_validated_rejects_empty_node_list() -> None:
    """Validation should require at least one node address."""
    config = replace(BmoConfig.from_env(), nodes=())

    with pytest.raises(BmoConfigError):
        config.validated()


def test_validated_rejects_non_positive_batch_size() -> None:
    """Validation should reject zero-sized batches."""
    config = replace(BmoConfig.from_env(), batch_size=0)

    with pytest.raises(BmoConfigError):
        config.validated()


def test_validated_rejects_unknown_insert_mode() -> None:
    """Validation should only accept supported insert modes."""
    config = replace(BmoConfig.from_env(), insert_mode="bulk")

    with pytest.raises(BmoConfigError):
        config.validated()
