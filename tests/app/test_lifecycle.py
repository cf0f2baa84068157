"""Тесты startup/shutdown приложения (ApplicationLifecycle)."""

import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi import FastAPI

from referral_ledger.app.lifecycle import ApplicationLifecycle
from referral_ledger.config.yaml_config import ReferralConfig, YamlConfig


@pytest.fixture
def settings() -> MagicMock:
    """Настройки приложения без публичного адреса."""
    settings = MagicMock()
    settings.app.public_base_url = None
    return settings


@pytest.mark.asyncio
async def test_startup_checks_migrations(settings: MagicMock) -> None:
    """Результат проверки миграций сохраняется в app.state."""
    app = FastAPI()
    lifecycle = ApplicationLifecycle(settings, YamlConfig())

    with (
        patch("referral_ledger.app.lifecycle.get_engine") as get_engine,
        patch(
            "referral_ledger.app.lifecycle.check_migrations",
            AsyncMock(return_value=True),
        ) as check,
    ):
        await lifecycle.startup(app)

    check.assert_awaited_once_with(get_engine.return_value)
    assert app.state.migrations_ok is True


@pytest.mark.asyncio
async def test_startup_warns_when_disabled(
    settings: MagicMock, caplog: pytest.LogCaptureFixture
) -> None:
    """Выключенная программа видна в логах при старте."""
    lifecycle = ApplicationLifecycle(
        settings, YamlConfig(referral=ReferralConfig(enabled=False))
    )

    with (
        patch("referral_ledger.app.lifecycle.get_engine"),
        patch(
            "referral_ledger.app.lifecycle.check_migrations",
            AsyncMock(return_value=False),
        ),
        caplog.at_level(logging.WARNING),
    ):
        await lifecycle.startup(FastAPI())

    assert "выключена" in caplog.text


@pytest.mark.asyncio
async def test_shutdown_disposes_engine(settings: MagicMock) -> None:
    """При остановке закрывается пул соединений."""
    lifecycle = ApplicationLifecycle(settings, YamlConfig())

    with patch(
        "referral_ledger.app.lifecycle.dispose_engine", AsyncMock()
    ) as dispose:
        await lifecycle.shutdown()

    dispose.assert_awaited_once()
