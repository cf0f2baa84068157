"""Тесты проверки миграций при старте приложения."""

import logging
from pathlib import Path

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from referral_ledger.db.migrations import (
    CONSTRAINTS_REVISION,
    check_migrations,
    get_current_revision,
    get_head_revision,
)


async def _stamp(engine: AsyncEngine, revision: str) -> None:
    """Записать ревизию в alembic_version, как это делает alembic stamp."""
    async with engine.begin() as conn:
        await conn.execute(
            text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
        )
        await conn.execute(
            text("INSERT INTO alembic_version (version_num) VALUES (:rev)"),
            {"rev": revision},
        )


def test_head_revision_of_project() -> None:
    """Head проекта - миграция с ограничениями уникальности."""
    assert get_head_revision() == CONSTRAINTS_REVISION


def test_head_revision_follows_chain(tmp_path: Path) -> None:
    """Head - последняя ревизия цепочки."""
    versions = tmp_path / "versions"
    versions.mkdir()
    (versions / "0001_a.py").write_text(
        'revision = "a1"\ndown_revision = None\n', encoding="utf-8"
    )
    (versions / "0002_b.py").write_text(
        'revision = "b2"\ndown_revision = "a1"\n', encoding="utf-8"
    )

    assert get_head_revision(tmp_path) == "b2"


def test_head_revision_without_migrations(tmp_path: Path) -> None:
    """Без файлов миграций head нет."""
    (tmp_path / "versions").mkdir()

    assert get_head_revision(tmp_path) is None


@pytest.mark.asyncio
async def test_not_applied(
    test_engine: AsyncEngine, caplog: pytest.LogCaptureFixture
) -> None:
    """Схема без alembic_version: предупреждение называет ревизию с ограничениями."""
    with caplog.at_level(logging.WARNING, logger="referral_ledger.db.migrations"):
        result = await check_migrations(test_engine)

    assert await get_current_revision(test_engine) is None
    assert result is False
    assert CONSTRAINTS_REVISION in caplog.text


@pytest.mark.asyncio
async def test_up_to_date(test_engine: AsyncEngine) -> None:
    """Ревизия БД совпадает с head."""
    await _stamp(test_engine, CONSTRAINTS_REVISION)

    assert await get_current_revision(test_engine) == CONSTRAINTS_REVISION
    assert await check_migrations(test_engine) is True


@pytest.mark.asyncio
async def test_outdated(test_engine: AsyncEngine) -> None:
    """Старая ревизия - миграции не актуальны."""
    await _stamp(test_engine, "0000_old")

    assert await check_migrations(test_engine) is False
