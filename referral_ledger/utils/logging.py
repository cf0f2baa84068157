"""Настройка логирования.

Логи пишутся в консоль (stdout, с подсветкой уровня в терминале)
и в файл с ротацией data/logs/app.log. Формат компактный:
    26-10-17 21:55:46 | WARNING | services.referral_service | Самоприглашение: user_id=7

Время выводится в часовом поясе LOGGING__TIMEZONE, в БД всё хранится в UTC.
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path

from typing_extensions import override

from referral_ledger.config.constants import DATA_DIR
from referral_ledger.utils.timezone import get_timezone

LOGS_DIR = DATA_DIR / "logs"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DATE_FORMAT = "%y-%m-%d %H:%M:%S"

# referral_ledger.services.stats_service → services.stats_service
PACKAGE_PREFIX = "referral_ledger."

# ANSI-цвета уровней: отказы домена (WARNING) и сбои (ERROR) видны сразу
LEVEL_COLORS: dict[int, str] = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
RESET = "\033[0m"

# Маркер обработчиков, добавленных setup_logging (для повторного вызова)
_HANDLER_MARK = "_referral_ledger_handler"


class LedgerFormatter(logging.Formatter):
    """Форматтер с часовым поясом, коротким именем модуля и цветом уровня."""

    def __init__(
        self,
        fmt: str | None = LOG_FORMAT,
        datefmt: str | None = DATE_FORMAT,
        timezone_name: str = "UTC",
        use_colors: bool = False,
    ) -> None:
        """Инициализировать форматтер.

        Args:
            fmt: Формат строки лога.
            datefmt: Формат даты/времени.
            timezone_name: Часовой пояс IANA для отметки времени.
            use_colors: Подсвечивать ли уровень ANSI-кодом.
        """
        super().__init__(fmt, datefmt)
        self.timezone = get_timezone(timezone_name)
        self.use_colors = use_colors

    @override
    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        dt = datetime.fromtimestamp(record.created, tz=self.timezone)
        return dt.strftime(datefmt or self.default_time_format)

    @override
    def format(self, record: logging.LogRecord) -> str:
        # Запись общая для всех обработчиков: имя возвращаем как было
        original_name = record.name
        record.name = original_name.removeprefix(PACKAGE_PREFIX)
        try:
            formatted = super().format(record)
        finally:
            record.name = original_name

        color = LEVEL_COLORS.get(record.levelno) if self.use_colors else None
        if color:
            formatted = formatted.replace(
                f"| {record.levelname} |",
                f"| {color}{record.levelname}{RESET} |",
                1,
            )
        return formatted


def _should_use_colors() -> bool:
    """Цвета только в терминале и без NO_COLOR (https://no-color.org/)."""
    if os.environ.get("NO_COLOR"):
        return False
    return sys.stdout.isatty()


def setup_logging(
    level: str = "INFO",
    timezone_name: str = "UTC",
    logs_dir: Path = LOGS_DIR,
) -> None:
    """Настроить логирование приложения.

    Повторный вызов заменяет ранее добавленные обработчики, а не дублирует их.
    Логи uvicorn идут через те же обработчики и в том же формате.

    Args:
        level: Уровень логирования (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        timezone_name: Часовой пояс для отметки времени.
        logs_dir: Каталог файла app.log (5 МБ, 3 резервные копии).
    """
    logs_dir.mkdir(parents=True, exist_ok=True)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(
        LedgerFormatter(timezone_name=timezone_name, use_colors=_should_use_colors())
    )
    file_handler = RotatingFileHandler(
        logs_dir / "app.log",
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(LedgerFormatter(timezone_name=timezone_name))
    handlers: list[logging.Handler] = [console_handler, file_handler]
    for handler in handlers:
        setattr(handler, _HANDLER_MARK, True)

    root_logger = logging.getLogger()
    for old in [h for h in root_logger.handlers if getattr(h, _HANDLER_MARK, False)]:
        root_logger.removeHandler(old)
        old.close()
    root_logger.setLevel(level.upper())
    for handler in handlers:
        root_logger.addHandler(handler)

    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = [] if name == "uvicorn" else list(handlers)
        uvicorn_logger.propagate = False

    # SQL-запросы не нужны даже на DEBUG приложения
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Получить логгер модуля (обычно get_logger(__name__))."""
    return logging.getLogger(name)
