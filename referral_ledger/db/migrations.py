"""Проверка статуса миграций базы данных.

Уникальные ограничения users.referral_code и referrals.referred_user_id
создаёт миграция CONSTRAINTS_REVISION. Без них выдача кодов и атрибуция
перестают быть атомарными: два конкурентных запроса могут записать
дубликаты. Поэтому при старте приложение сверяет ревизию БД с head
и громко предупреждает, если схема отстаёт.
"""

from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.ext.asyncio import AsyncEngine

from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

ALEMBIC_DIR = Path(__file__).parent.parent.parent / "alembic"

# Ревизия, в которой появились ограничения уникальности кодов и приглашённых
CONSTRAINTS_REVISION = "0001_initial"


def get_head_revision(script_location: Path = ALEMBIC_DIR) -> str | None:
    """Получить head-ревизию из каталога миграций Alembic.

    Args:
        script_location: Каталог alembic (env.py + versions/).

    Returns:
        ID head-ревизии или None, если миграций нет.
    """
    config = Config()
    config.set_main_option("script_location", str(script_location))
    return ScriptDirectory.from_config(config).get_current_head()


async def get_current_revision(engine: AsyncEngine) -> str | None:
    """Получить ревизию, применённую к БД (None - таблицы alembic_version нет)."""
    async with engine.connect() as conn:
        return await conn.run_sync(
            lambda sync_conn: MigrationContext.configure(sync_conn).get_current_revision()
        )


async def check_migrations(engine: AsyncEngine) -> bool:
    """Сверить ревизию БД с head и предупредить, если схема отстаёт.

    Args:
        engine: Асинхронный SQLAlchemy engine.

    Returns:
        True если ревизия БД совпадает с head.
    """
    head_revision = get_head_revision()
    current_revision = await get_current_revision(engine)

    if current_revision is None:
        logger.warning(
            "Миграции не применены: нет ограничений уникальности из ревизии %s, "
            "атрибуция и выдача кодов не защищены от дублей. "
            "Выполните: alembic upgrade head",
            CONSTRAINTS_REVISION,
        )
        return False

    if current_revision != head_revision:
        logger.warning(
            "Схема БД отстаёт: ревизия %s, head %s. Выполните: alembic upgrade head",
            current_revision,
            head_revision,
        )
        return False

    logger.debug("Миграции актуальны (ревизия: %s)", current_revision)
    return True
