"""Тесты настройки логирования."""

import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

from referral_ledger.utils.logging import LedgerFormatter, get_logger, setup_logging


def _record(name: str, level: int = logging.INFO) -> logging.LogRecord:
    return logging.LogRecord(
        name=name,
        level=level,
        pathname=__file__,
        lineno=1,
        msg="Реферал завершён: id=%d",
        args=(42,),
        exc_info=None,
    )


@pytest.fixture
def restore_root_logger() -> Generator[None, Any, None]:
    """Вернуть корневому логгеру обработчики и уровень после теста."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)


def test_package_prefix_is_removed() -> None:
    """Имя логгера сокращается, а сама запись не меняется."""
    formatter = LedgerFormatter()
    record = _record("referral_ledger.services.lifecycle_service")

    line = formatter.format(record)

    assert "| services.lifecycle_service |" in line
    assert line.endswith("Реферал завершён: id=42")
    assert record.name == "referral_ledger.services.lifecycle_service"


def test_level_is_colored() -> None:
    """Уровень подсвечивается ANSI-кодом."""
    formatter = LedgerFormatter(use_colors=True)

    line = formatter.format(_record("referral_ledger.api", logging.WARNING))

    assert "\033[33mWARNING\033[0m" in line


def test_no_colors_by_default() -> None:
    """Без use_colors строка без ANSI-кодов (для файла)."""
    line = LedgerFormatter().format(_record("referral_ledger.api", logging.ERROR))

    assert "\033[" not in line


def test_time_in_configured_timezone() -> None:
    """Время записи выводится в заданном часовом поясе."""
    formatter = LedgerFormatter(datefmt="%H:%M %z", timezone_name="Asia/Kolkata")

    line = formatter.format(_record("referral_ledger.api"))

    assert "+0530" in line


@pytest.mark.usefixtures("restore_root_logger")
def test_setup_logging_is_idempotent(tmp_path: Path) -> None:
    """Повторная настройка не дублирует обработчики и пишет в app.log."""
    setup_logging("DEBUG", logs_dir=tmp_path)
    count = len(logging.getLogger().handlers)

    setup_logging("WARNING", logs_dir=tmp_path)
    get_logger("referral_ledger.test").warning("Статистика недоступна")

    root = logging.getLogger()
    assert len(root.handlers) == count
    assert root.level == logging.WARNING
    for handler in root.handlers:
        handler.flush()
    assert "test | Статистика недоступна" in (tmp_path / "app.log").read_text(
        encoding="utf-8"
    )


def test_get_logger_returns_named_logger() -> None:
    """get_logger отдаёт стандартный логгер с этим именем."""
    assert get_logger("referral_ledger.test") is logging.getLogger("referral_ledger.test")
