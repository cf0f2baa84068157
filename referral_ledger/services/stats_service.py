"""Статистика реферальной программы.

Статистика - чистая функция от строк таблицы referrals:
    total     = число рефералов в выборке
    pending   = число со статусом pending
    completed = число со статусом completed
    cancelled = число со статусом cancelled
    total_bonus_paid = сумма bonus_amount по completed

Считается одним агрегирующим запросом, поэтому всегда согласована
с таблицей (никаких счётчиков, которые могут разойтись со строками).

Деградация: статистика не должна ронять дашборд. Если запрос упал,
возвращается последний успешно посчитанный снимок с stale=True,
а сам факт деградации пишется в лог (WARNING).
"""

import contextlib
from collections import OrderedDict
from dataclasses import dataclass, replace
from decimal import Decimal

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.repositories.referral_repo import ReferralRepository
from referral_ledger.utils.logging import get_logger

logger = get_logger(__name__)

# Сколько пользовательских снимков держать в памяти процесса
DEFAULT_SNAPSHOT_LIMIT = 1024


@dataclass(frozen=True)
class ReferralStats:
    """Статистика по рефералам пользователя или всей системы.

    Attributes:
        total_referrals: Всего рефералов.
        pending_referrals: Ожидают оплаты.
        completed_referrals: Завершены (бонус начислен).
        cancelled_referrals: Отменены.
        total_bonus_paid: Сумма начисленных бонусов.
        stale: True если это снимок из кэша (живой расчёт не удался).
    """

    total_referrals: int
    pending_referrals: int
    completed_referrals: int
    cancelled_referrals: int
    total_bonus_paid: Decimal
    stale: bool = False

    @classmethod
    def empty(cls, stale: bool = False) -> "ReferralStats":
        """Нулевая статистика."""
        return cls(
            total_referrals=0,
            pending_referrals=0,
            completed_referrals=0,
            cancelled_referrals=0,
            total_bonus_paid=Decimal("0.00"),
            stale=stale,
        )


class StatsSnapshotCache:
    """Последние успешно посчитанные снимки статистики.

    Ключ - ID пользователя, None - глобальная статистика.
    Хранится в памяти процесса; после рестарта снимков нет,
    и при сбое отдаётся нулевая статистика с stale=True.

    Пользовательских снимков не больше max_entries: при переполнении
    вытесняется тот, к которому дольше всего не обращались.
    Глобальный снимок не вытесняется и в лимит не входит.
    """

    def __init__(self, max_entries: int = DEFAULT_SNAPSHOT_LIMIT) -> None:
        """Инициализировать пустой кэш.

        Args:
            max_entries: Максимум снимков по отдельным пользователям.
        """
        if max_entries < 1:
            raise ValueError("max_entries должен быть не меньше 1")
        self._max_entries = max_entries
        self._global: ReferralStats | None = None
        self._snapshots: OrderedDict[int, ReferralStats] = OrderedDict()

    def __len__(self) -> int:
        """Число пользовательских снимков."""
        return len(self._snapshots)

    def get(self, user_id: int | None) -> ReferralStats | None:
        """Получить снимок для области (None - глобальная)."""
        if user_id is None:
            return self._global
        snapshot = self._snapshots.get(user_id)
        if snapshot is not None:
            self._snapshots.move_to_end(user_id)
        return snapshot

    def put(self, user_id: int | None, stats: ReferralStats) -> None:
        """Сохранить снимок, вытеснив самый старый при переполнении."""
        if user_id is None:
            self._global = stats
            return
        self._snapshots[user_id] = stats
        self._snapshots.move_to_end(user_id)
        while len(self._snapshots) > self._max_entries:
            self._snapshots.popitem(last=False)

    def clear(self) -> None:
        """Очистить все снимки."""
        self._global = None
        self._snapshots.clear()


# Общий для процесса кэш снимков
snapshot_cache = StatsSnapshotCache()


class ReferralStatsService:
    """Сервис расчёта статистики.

    Attributes:
        _session: Асинхронная сессия SQLAlchemy.
        _referral_repo: Репозиторий рефералов.
        _cache: Кэш снимков для деградации.
    """

    def __init__(
        self,
        session: AsyncSession,
        cache: StatsSnapshotCache | None = None,
    ) -> None:
        """Инициализировать сервис.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            cache: Кэш снимков (по умолчанию общий для процесса).
        """
        self._session = session
        self._referral_repo = ReferralRepository(session)
        self._cache = cache if cache is not None else snapshot_cache

    async def stats_for(self, user_id: int | None = None) -> ReferralStats:
        """Посчитать статистику пользователя или всей системы.

        Никогда не падает из-за ошибок БД: при сбое возвращает
        последний снимок с stale=True.

        Args:
            user_id: ID пригласившего (None - глобальная статистика).

        Returns:
            ReferralStats.
        """
        try:
            counts = await self._referral_repo.aggregate(user_id)
        except SQLAlchemyError:
            logger.warning(
                "Статистика недоступна, отдаём последний снимок: user_id=%s",
                user_id,
                exc_info=True,
            )
            # Сессия после ошибки требует отката, иначе следующие запросы
            # в этом же запросе API тоже упадут
            with contextlib.suppress(SQLAlchemyError):
                await self._session.rollback()

            snapshot = self._cache.get(user_id)
            if snapshot is None:
                return ReferralStats.empty(stale=True)
            return replace(snapshot, stale=True)

        stats = ReferralStats(
            total_referrals=counts.total,
            pending_referrals=counts.pending,
            completed_referrals=counts.completed,
            cancelled_referrals=counts.cancelled,
            total_bonus_paid=counts.bonus_paid,
        )
        self._cache.put(user_id, stats)
        return stats


def create_stats_service(session: AsyncSession) -> ReferralStatsService:
    """Создать экземпляр ReferralStatsService с общим кэшем снимков."""
    return ReferralStatsService(session=session)
