"""Read-side реферальной программы для дашбордов и админки.

Собирает данные из таблицы рефералов, статистики и профилей пользователей:
- Сводка пользователя: код, счётчики, последние рефералы
- Полный список для админки с поиском по подстроке

Ничего не меняет в БД, кроме ленивой выдачи кода в сводке пользователя.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.config.yaml_config import ReferralConfig, YamlConfig
from referral_ledger.db.models.referral import Referral
from referral_ledger.db.models.user import UNKNOWN_IDENTITY
from referral_ledger.db.repositories.referral_repo import ReferralRepository
from referral_ledger.db.repositories.user_repo import UserRepository
from referral_ledger.services.code_service import ReferralCodeService
from referral_ledger.services.stats_service import ReferralStatsService
from referral_ledger.utils.timezone import ensure_utc_aware


@dataclass
class RecentReferral:
    """Реферал в сводке пользователя (кого пригласил он сам)."""

    id: int
    referred_identity: str
    status: str
    bonus_amount: Decimal | None
    created_at: datetime
    order_id: str | None


@dataclass
class UserReferralSummary:
    """Сводка реферальной программы для одного пользователя.

    Attributes:
        referral_code: Код пользователя (выдаётся при первом запросе).
        total_referrals: Всего приглашённых.
        pending_referrals: Ожидают оплаты.
        completed_referrals: Завершены.
        cancelled_referrals: Отменены.
        total_bonus: Сумма начисленных бонусов.
        stats_stale: Счётчики взяты из последнего снимка (БД недоступна).
        recent_referrals: Последние рефералы, новые первыми.
    """

    referral_code: str
    total_referrals: int
    pending_referrals: int
    completed_referrals: int
    cancelled_referrals: int
    total_bonus: Decimal
    stats_stale: bool = False
    recent_referrals: list[RecentReferral] = field(default_factory=list)


@dataclass
class ReferralListItem:
    """Строка глобального списка рефералов."""

    id: int
    referrer_identity: str
    referred_identity: str
    status: str
    bonus_amount: Decimal | None
    created_at: datetime
    order_id: str | None


def filter_referrals(
    items: Sequence[ReferralListItem],
    search: str | None,
) -> list[ReferralListItem]:
    """Отфильтровать список по подстроке.

    Совпадение без учёта регистра хотя бы в одном из полей:
    идентичность пригласившего, идентичность приглашённого, статус.
    Пустой поиск (или только пробелы) возвращает список без изменений.

    Args:
        items: Список рефералов (порядок сохраняется).
        search: Строка поиска.

    Returns:
        Отфильтрованный список.
    """
    term = (search or "").strip().casefold()
    if not term:
        return list(items)

    return [
        item
        for item in items
        if term in item.referrer_identity.casefold()
        or term in item.referred_identity.casefold()
        or term in item.status.casefold()
    ]


class ReferralQueryService:
    """Сервис чтения для дашбордов.

    Attributes:
        _config: Конфигурация (сколько последних рефералов показывать).
        _referral_repo: Репозиторий рефералов.
        _user_repo: Репозиторий пользователей (отображаемые имена).
        _code_service: Ленивая выдача кода.
        _stats_service: Статистика.
    """

    def __init__(
        self,
        session: AsyncSession,
        config: ReferralConfig,
        code_service: ReferralCodeService | None = None,
        stats_service: ReferralStatsService | None = None,
    ) -> None:
        """Инициализировать сервис.

        Args:
            session: Асинхронная сессия SQLAlchemy.
            config: Конфигурация реферальной программы.
            code_service: Сервис кодов (по умолчанию создаётся на этой сессии).
            stats_service: Сервис статистики (по умолчанию - с общим кэшем).
        """
        self._config = config
        self._referral_repo = ReferralRepository(session)
        self._user_repo = UserRepository(session)
        self._code_service = code_service or ReferralCodeService(session, config)
        self._stats_service = stats_service or ReferralStatsService(session)

    async def get_user_summary(self, user_id: int) -> UserReferralSummary:
        """Собрать сводку реферальной программы пользователя.

        Args:
            user_id: ID пользователя.

        Returns:
            UserReferralSummary.

        Raises:
            UserNotFoundError: Пользователь не существует.
            GenerationExhaustedError: Не удалось выдать код (повторите позже).
        """
        code = await self._code_service.ensure_code(user_id)
        stats = await self._stats_service.stats_for(user_id)

        recent = await self._referral_repo.list_by_referrer(
            user_id, limit=self._config.recent_referrals_limit
        )
        identities = await self._user_repo.get_display_identities(
            r.referred_user_id for r in recent
        )

        return UserReferralSummary(
            referral_code=code,
            total_referrals=stats.total_referrals,
            pending_referrals=stats.pending_referrals,
            completed_referrals=stats.completed_referrals,
            cancelled_referrals=stats.cancelled_referrals,
            total_bonus=stats.total_bonus_paid,
            stats_stale=stats.stale,
            recent_referrals=[
                RecentReferral(
                    id=r.id,
                    referred_identity=identities.get(
                        r.referred_user_id, UNKNOWN_IDENTITY
                    ),
                    status=r.status,
                    bonus_amount=r.bonus_amount,
                    created_at=ensure_utc_aware(r.created_at),
                    order_id=r.order_id,
                )
                for r in recent
            ],
        )

    async def list_referrals(self, search: str | None = None) -> list[ReferralListItem]:
        """Глобальный список рефералов для админки (новые первыми).

        Args:
            search: Подстрока для фильтра (см. filter_referrals).

        Returns:
            Список строк с отображаемыми именами участников.
        """
        referrals = await self._referral_repo.list_all()
        items = await self._to_list_items(referrals)
        return filter_referrals(items, search)

    async def _to_list_items(
        self, referrals: Sequence[Referral]
    ) -> list[ReferralListItem]:
        """Подставить отображаемые имена (один запрос на весь список)."""
        user_ids = {r.referrer_id for r in referrals} | {
            r.referred_user_id for r in referrals
        }
        identities = await self._user_repo.get_display_identities(user_ids)

        return [
            ReferralListItem(
                id=r.id,
                referrer_identity=identities.get(r.referrer_id, UNKNOWN_IDENTITY),
                referred_identity=identities.get(r.referred_user_id, UNKNOWN_IDENTITY),
                status=r.status,
                bonus_amount=r.bonus_amount,
                created_at=ensure_utc_aware(r.created_at),
                order_id=r.order_id,
            )
            for r in referrals
        ]


def create_query_service(
    session: AsyncSession,
    yaml_config: YamlConfig | None = None,
) -> ReferralQueryService:
    """Создать экземпляр ReferralQueryService (factory function).

    Args:
        session: Асинхронная сессия SQLAlchemy.
        yaml_config: YAML-конфигурация (опционально, берётся из глобальной).

    Returns:
        Настроенный экземпляр ReferralQueryService.
    """
    if yaml_config is None:
        from referral_ledger.config.yaml_config import (
            yaml_config as global_yaml_config,
        )

        yaml_config = global_yaml_config

    return ReferralQueryService(session=session, config=yaml_config.referral)
