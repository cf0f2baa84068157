"""Тесты для моделей настроек из referral_ledger/config/models.py.

Проверяет:
- Свойство CORSSettings.is_enabled при разных allow_origins
- Значения по умолчанию для БД, логирования и приложения
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from referral_ledger.config.models import (
    AppSettings,
    CORSSettings,
    DatabaseSettings,
    LoggingSettings,
    ServerSettings,
)


class TestCORSSettings:
    """Тесты для класса CORSSettings."""

    def test_disabled_by_default(self) -> None:
        """Проверить, что без доменов CORS выключен."""
        # Arrange
        settings = CORSSettings()

        # Act
        result = settings.is_enabled

        # Assert
        assert result is False

    def test_enabled_with_origin(self) -> None:
        """Проверить, что один домен включает CORS."""
        settings = CORSSettings(allow_origins=["https://admin.example.com"])

        assert settings.is_enabled is True


class TestDefaults:
    """Значения по умолчанию."""

    def test_database_defaults_to_sqlite(self) -> None:
        """Без postgres_url используется SQLite с ожиданием блокировки."""
        settings = DatabaseSettings()

        assert settings.postgres_url is None
        assert settings.sqlite_busy_timeout > 0

    def test_logging_defaults(self) -> None:
        """INFO в UTC."""
        settings = LoggingSettings()

        assert settings.level == "INFO"
        assert settings.timezone == "UTC"

    def test_app_defaults(self) -> None:
        """Заголовок есть, публичный адрес не задан."""
        settings = AppSettings()

        assert settings.title
        assert settings.public_base_url is None


class TestDatabaseSettings:
    """Выбор URL подключения."""

    def test_sqlite_url_in_data_dir(self, tmp_path: Path) -> None:
        """Без postgres_url - SQLite-файл referrals.db."""
        url = DatabaseSettings().url(tmp_path)

        assert url == f"sqlite+aiosqlite:///{tmp_path / 'referrals.db'}"

    def test_postgres_url_is_used_as_is(self, tmp_path: Path) -> None:
        """PostgreSQL URL с asyncpg берётся без изменений."""
        pg_url = "postgresql+asyncpg://user:pass@db:5432/referrals"

        assert DatabaseSettings(postgres_url=pg_url).url(tmp_path) == pg_url

    def test_empty_postgres_url_means_sqlite(self) -> None:
        """Пустая переменная окружения не включает PostgreSQL."""
        assert DatabaseSettings(postgres_url="").postgres_url is None

    def test_sync_driver_rejected(self) -> None:
        """Синхронный драйвер отклоняется при загрузке настроек."""
        with pytest.raises(ValidationError):
            DatabaseSettings(postgres_url="postgresql://user:pass@db/referrals")


class TestServerSettings:
    """Адрес uvicorn."""

    def test_defaults(self) -> None:
        """0.0.0.0:8000 по умолчанию."""
        settings = ServerSettings()

        assert (settings.host, settings.port) == ("0.0.0.0", 8000)

    def test_port_range(self) -> None:
        """Порт вне 1..65535 отклоняется."""
        with pytest.raises(ValidationError):
            ServerSettings(port=70000)
