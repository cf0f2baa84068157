"""Управление жизненным циклом приложения.

Класс ApplicationLifecycle инкапсулирует логику startup и shutdown:
- Проверка миграций БД (без уникальных ограничений атомарность не гарантируется)
- Логирование активной политики реферальной программы
- Закрытие пула соединений при остановке
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from referral_ledger.db.base import dispose_engine, get_engine
from referral_ledger.db.migrations import check_migrations
from referral_ledger.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import FastAPI

    from referral_ledger.config.settings import Settings
    from referral_ledger.config.yaml_config import YamlConfig

logger = get_logger(__name__)


class ApplicationLifecycle:
    """Управление жизненным циклом приложения.

    Attributes:
        settings: Настройки приложения из .env
        yaml_config: Конфигурация из config.yaml
    """

    def __init__(self, settings: Settings, yaml_config: YamlConfig) -> None:
        """Инициализировать lifecycle manager.

        Args:
            settings: Настройки приложения из .env
            yaml_config: Конфигурация из config.yaml
        """
        self.settings = settings
        self.yaml_config = yaml_config

    async def startup(self, app: FastAPI) -> None:
        """Выполнить startup приложения.

        Args:
            app: FastAPI приложение (результат проверки миграций
                сохраняется в app.state.migrations_ok)
        """
        logger.info("Запуск приложения...")

        app.state.migrations_ok = await check_migrations(get_engine())

        referral = self.yaml_config.referral
        if referral.enabled:
            logger.info(
                "Реферальная программа: бонус %s%%, округление %s, валюта %s",
                referral.bonus_percent,
                referral.bonus_rounding,
                referral.currency,
            )
        else:
            logger.warning(
                "Реферальная программа выключена (referral.enabled=false): "
                "регистрации не атрибутируются"
            )

        if self.settings.app.public_base_url:
            logger.info(
                "Ссылки приглашений: %s?ref=<code>",
                self.settings.app.public_base_url,
            )

        logger.info("Приложение запущено успешно")

    async def shutdown(self) -> None:
        """Выполнить shutdown приложения: закрыть соединения с БД."""
        logger.info("Остановка приложения...")
        await dispose_engine()
        logger.info("Приложение остановлено")
