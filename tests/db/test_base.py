"""Тесты подключения к БД: выбор engine и откат сессий при ошибке."""

from pathlib import Path
from unittest.mock import patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from referral_ledger.config.models import DatabaseSettings
from referral_ledger.db import base
from referral_ledger.db.base import build_engine, get_session, open_session
from referral_ledger.db.models.user import User


@pytest.mark.asyncio
async def test_build_engine_sqlite_in_data_dir(tmp_path: Path) -> None:
    """Без PostgreSQL - SQLite-файл в DATA_DIR."""
    with patch.object(base, "DATA_DIR", tmp_path):
        engine = build_engine(DatabaseSettings(sqlite_busy_timeout=5))

    try:
        assert engine.url.drivername == "sqlite+aiosqlite"
        assert engine.url.database == str(tmp_path / "referrals.db")
    finally:
        await engine.dispose()


async def _count_users(factory: async_sessionmaker[AsyncSession]) -> int:
    async with factory() as session:
        result = await session.execute(select(func.count(User.id)))
        return result.scalar_one()


@pytest.fixture
def factory(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Фабрика сессий тестовой БД вместо фабрики процесса."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.mark.asyncio
async def test_get_session_rolls_back_on_error(
    factory: async_sessionmaker[AsyncSession],
) -> None:
    """Ошибка в обработчике откатывает незакоммиченные изменения."""
    with patch.object(base, "get_async_session_factory", return_value=factory):
        sessions = get_session()
        session = await anext(sessions)
        session.add(User(email="ghost@example.com"))
        await session.flush()

        with pytest.raises(RuntimeError):
            await sessions.athrow(RuntimeError("boom"))

    assert await _count_users(factory) == 0


@pytest.mark.asyncio
async def test_open_session_commits_and_rolls_back(
    factory: async_sessionmaker[AsyncSession],
) -> None:
    """open_session: коммит сохраняется, ошибка откатывает."""
    with patch.object(base, "get_async_session_factory", return_value=factory):
        async with open_session() as session:
            session.add(User(email="kept@example.com"))
            await session.commit()

        with pytest.raises(RuntimeError):
            async with open_session() as session:
                session.add(User(email="ghost@example.com"))
                await session.flush()
                raise RuntimeError("boom")

    assert await _count_users(factory) == 1
