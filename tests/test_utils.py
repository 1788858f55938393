"""Tests for the logging helpers."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from themesync.services.settings import EngineSettings
from themesync.utils import logging as logging_utils


@pytest.fixture
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _flush() -> None:
    for handler in logging.getLogger().handlers:
        handler.flush()


def test_setup_logging_writes_rotating_file(tmp_path: Path, restore_root_logging: None) -> None:
    log_path = logging_utils.setup_logging("debug", log_dir=tmp_path, console=False, force=True)

    logging.getLogger("themesync.test").info("hello from test")
    _flush()

    assert log_path == tmp_path / "themesync.log"
    assert logging_utils.get_log_path() == log_path
    assert "| INFO     | themesync.test | hello from test" in log_path.read_text(encoding="utf-8")
    assert logging.getLogger("asyncio").level == logging.WARNING


def test_setup_logging_is_idempotent_unless_forced(tmp_path: Path, restore_root_logging: None) -> None:
    first = logging_utils.setup_logging(log_dir=tmp_path / "a", console=False, force=True)
    second = logging_utils.setup_logging(log_dir=tmp_path / "b", console=False)

    assert first == second


def test_log_dir_env_override(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path, restore_root_logging: None
) -> None:
    monkeypatch.setenv("THEMESYNC_LOG_DIR", str(tmp_path / "env-logs"))

    log_path = logging_utils.setup_logging(console=False, force=True)

    assert log_path.parent == tmp_path / "env-logs"


def test_settings_drive_level_and_directory(tmp_path: Path, restore_root_logging: None) -> None:
    settings = EngineSettings(log_level="error", log_dir=str(tmp_path / "from-settings"))

    log_path = logging_utils.setup_logging_from_settings(settings, console=False, force=True)

    assert log_path == tmp_path / "from-settings" / "themesync.log"
    assert logging.getLogger().level == logging.ERROR


def test_debug_flag_beats_configured_level(tmp_path: Path, restore_root_logging: None) -> None:
    settings = EngineSettings(log_level="ERROR", log_dir=str(tmp_path))

    logging_utils.setup_logging_from_settings(settings, debug=True, console=False, force=True)
    assert logging.getLogger().level == logging.DEBUG

    logging_utils.setup_logging_from_settings(
        EngineSettings(log_dir=str(tmp_path), debug_logging=True), console=False, force=True
    )
    assert logging.getLogger().level == logging.DEBUG


def test_console_only_shows_engine_records_and_warnings(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], restore_root_logging: None
) -> None:
    logging_utils.setup_logging(logging.DEBUG, log_dir=tmp_path, console=True, force=True)

    logging.getLogger("themesync.engine").debug("engine detail")
    logging.getLogger("thirdparty").info("library chatter")
    logging.getLogger("thirdparty").warning("library warning")
    _flush()

    captured = capsys.readouterr()
    assert captured.out == ""
    assert "engine detail" in captured.err
    assert "library warning" in captured.err
    assert "library chatter" not in captured.err
    assert "library chatter" in (tmp_path / "themesync.log").read_text(encoding="utf-8")


def test_parse_level() -> None:
    assert logging_utils.parse_level("warning") == logging.WARNING
    assert logging_utils.parse_level(15) == 15
    with pytest.raises(ValueError):
        logging_utils.parse_level("loud")
