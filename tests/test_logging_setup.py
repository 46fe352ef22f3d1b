from __future__ import annotations

import logging
from collections.abc import Iterator
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

import gitclock.logging_setup as logging_setup
from gitclock.config import GeneralConfig


@pytest.fixture
def fresh_root(monkeypatch: pytest.MonkeyPatch) -> Iterator[logging.Logger]:
    root = logging.getLogger()
    before = list(root.handlers)
    level = root.level
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    yield root
    for handler in root.handlers[:]:
        if handler not in before:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


def _file_handlers(root: logging.Logger) -> list[RotatingFileHandler]:
    return [h for h in root.handlers if isinstance(h, RotatingFileHandler)]


def test_writes_to_rotating_file(fresh_root: logging.Logger, tmp_path: Path) -> None:
    log_path = tmp_path / "logs" / "gitclock.log"

    logging_setup.configure_logging(GeneralConfig(log_level="debug"), log_path=log_path)
    logging.getLogger("gitclock.test").info("tick finished")
    for handler in _file_handlers(fresh_root):
        handler.flush()

    assert fresh_root.level == logging.DEBUG
    assert "tick finished" in log_path.read_text(encoding="utf-8")


def test_second_call_adds_nothing(fresh_root: logging.Logger, tmp_path: Path) -> None:
    log_path = tmp_path / "gitclock.log"

    logging_setup.configure_logging(GeneralConfig(), log_path=log_path)
    count = len(fresh_root.handlers)
    logging_setup.configure_logging(GeneralConfig(), log_path=log_path)

    assert len(fresh_root.handlers) == count


def test_unknown_level_falls_back_to_info(fresh_root: logging.Logger, tmp_path: Path) -> None:
    logging_setup.configure_logging(GeneralConfig(log_level="chatty"), log_path=tmp_path / "x.log")

    assert fresh_root.level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING


def test_unwritable_log_path_disables_file_logging(
    fresh_root: logging.Logger, tmp_path: Path
) -> None:
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("", encoding="utf-8")

    logging_setup.configure_logging(GeneralConfig(), log_path=blocker / "gitclock.log")

    assert not any(
        h.baseFilename.startswith(str(blocker)) for h in _file_handlers(fresh_root)
    )
