"""Shared pytest fixtures."""

from __future__ import annotations

import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    for name in list(os.environ):
        if name.startswith("THEMESYNC_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("THEMESYNC_LOG_DIR", str(tmp_path_factory.getbasetemp() / "logs"))


@pytest.fixture
def storage_path(tmp_path: Path) -> Path:
    return tmp_path / "storage.json"
