"""Настройки окружения (.env и переменные окружения).

Модуль загружает настройки при импорте. Тестам, которым нужны только
классы, достаточно referral_ledger.config.models.
"""

import sys

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from referral_ledger.config.constants import PROJECT_ROOT
from referral_ledger.config.models import (
    AppSettings,
    CORSSettings,
    DatabaseSettings,
    LoggingSettings,
    ServerSettings,
)

ENV_FILE = PROJECT_ROOT / ".env"

__all__ = ["Settings", "load_settings", "settings"]


class Settings(BaseSettings):
    """Настройки сервиса.

    Переменные окружения важнее .env. Вложенные поля через "__":
        DATABASE__POSTGRES_URL, SERVER__PORT, LOGGING__LEVEL, CORS__ALLOW_ORIGINS
    """

    model_config = SettingsConfigDict(
        env_file=ENV_FILE if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    app: AppSettings = AppSettings()
    server: ServerSettings = ServerSettings()
    database: DatabaseSettings = DatabaseSettings()
    logging: LoggingSettings = LoggingSettings()
    cors: CORSSettings = CORSSettings()


def format_validation_error(error: ValidationError) -> str:
    """Собрать сообщение вида "SERVER__PORT: <причина>" по каждой ошибке."""
    lines = ["Некорректные настройки окружения (.env или переменные окружения):"]
    for err in error.errors():
        env_name = "__".join(str(loc) for loc in err["loc"]).upper()
        lines.append(f"  {env_name}: {err['msg']}")
    return "\n".join(lines)


def load_settings() -> Settings:
    """Загрузить настройки; при ошибке напечатать причину и завершить процесс."""
    try:
        return Settings()
    except ValidationError as e:
        print(format_validation_error(e), file=sys.stderr)
        sys.exit(1)


settings = load_settings()
