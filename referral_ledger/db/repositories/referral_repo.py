"""Репозиторий для работы с рефералами.

Содержит все операции с таблицей referrals:
- Создание реферальной связи
- Поиск по ID / приглашённому, списки (новые первыми)
- Условные переходы статуса (только из pending)
- Агрегированная статистика одним запросом
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import ColumnElement, case, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from referral_ledger.db.models.referral import Referral, ReferralStatus
from referral_ledger.utils.timezone import utc_now

# Точность колонки bonus_amount (Numeric(12, 2))
MONEY_QUANT = Decimal("0.01")


@dataclass(frozen=True)
class ReferralCounts:
    """Сырые агрегаты по таблице referrals.

    Attributes:
        total: Всего рефералов в выборке.
        pending: Рефералов в статусе pending.
        completed: Рефералов в статусе completed.
        cancelled: Рефералов в статусе cancelled.
        bonus_paid: Сумма bonus_amount по completed.
    """

    total: int
    pending: int
    completed: int
    cancelled: int
    bonus_paid: Decimal


class ReferralRepository:
    """Репозиторий для работы с рефералами.

    Переходы статуса выполняются одним условным UPDATE
    (WHERE status = 'pending'), поэтому два одинаковых события об оплате
    не могут оба перевести реферал. Методы переходов возвращают bool:
    False значит, что условие не выполнилось, и вызывающий код
    сам решает, почему (терминальный статус, другой заказ, нет записи).

    Пример использования:
        async with open_session() as session:
            repo = ReferralRepository(session)
            referrals = await repo.list_by_referrer(user.id, limit=5)
    """

    def __init__(self, session: AsyncSession) -> None:
        """Инициализировать репозиторий.

        Args:
            session: Асинхронная сессия SQLAlchemy.
        """
        self._session = session

    async def create(
        self,
        referrer_id: int,
        referred_user_id: int,
        referral_code: str,
    ) -> Referral:
        """Создать реферальную связь в статусе pending.

        Args:
            referrer_id: ID пригласившего.
            referred_user_id: ID приглашённого.
            referral_code: Код, по которому пришёл приглашённый.

        Returns:
            Созданный объект Referral.

        Raises:
            IntegrityError: Если referred_user_id уже приглашён
                (в том числе конкурентным запросом).
        """
        referral = Referral(
            referrer_id=referrer_id,
            referred_user_id=referred_user_id,
            referral_code=referral_code,
            status=ReferralStatus.PENDING,
            bonus_amount=None,
        )
        self._session.add(referral)
        await self._session.commit()
        await self._session.refresh(referral)
        return referral

    async def get_by_id(self, referral_id: int) -> Referral | None:
        """Найти реферала по ID.

        populate_existing - перечитать строку, даже если объект уже
        в identity map (после условного UPDATE он мог устареть).

        Args:
            referral_id: ID реферала.

        Returns:
            Referral если найден, None если нет.
        """
        stmt = (
            select(Referral)
            .where(Referral.id == referral_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_referred_user_id(self, referred_user_id: int) -> Referral | None:
        """Найти реферала по ID приглашённого.

        Используется для проверки, был ли пользователь уже приглашён.

        Args:
            referred_user_id: ID приглашённого пользователя.

        Returns:
            Referral если найден, None если пользователь не был приглашён.
        """
        stmt = (
            select(Referral)
            .where(Referral.referred_user_id == referred_user_id)
            .execution_options(populate_existing=True)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_by_referrer(
        self,
        referrer_id: int,
        limit: int | None = None,
    ) -> list[Referral]:
        """Получить рефералов пользователя (новые первыми).

        Args:
            referrer_id: ID пригласившего.
            limit: Максимум записей (None - все).

        Returns:
            Список рефералов по убыванию created_at.
        """
        stmt = (
            select(Referral)
            .where(Referral.referrer_id == referrer_id)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def list_all(self, limit: int | None = None) -> list[Referral]:
        """Получить всех рефералов (новые первыми).

        Args:
            limit: Максимум записей (None - все).

        Returns:
            Список рефералов по убыванию created_at.
        """
        stmt = (
            select(Referral)
            .order_by(Referral.created_at.desc(), Referral.id.desc())
            .execution_options(populate_existing=True)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    @staticmethod
    def _order_matches(order_id: str) -> ColumnElement[bool]:
        """Заказ ещё не привязан или привязан именно этот."""
        return or_(Referral.order_id.is_(None), Referral.order_id == order_id)

    async def _apply_transition(
        self,
        referral_id: int,
        order_id: str | None,
        values: dict[str, object],
    ) -> bool:
        """Выполнить условный UPDATE из статуса pending.

        Args:
            referral_id: ID реферала.
            order_id: Заказ из события (None - без проверки заказа).
            values: Новые значения колонок.

        Returns:
            True если строка обновлена.
        """
        conditions = [
            Referral.id == referral_id,
            Referral.status == ReferralStatus.PENDING,
        ]
        if order_id is not None:
            conditions.append(self._order_matches(order_id))

        stmt = (
            update(Referral)
            .where(*conditions)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        await self._session.commit()

        # rowcount существует для UPDATE, но mypy не видит это
        return (getattr(result, "rowcount", 0) or 0) == 1

    async def attach_order(self, referral_id: int, order_id: str) -> bool:
        """Привязать заказ к pending-рефералу.

        Повторная привязка того же заказа проходит (идемпотентно).

        Args:
            referral_id: ID реферала.
            order_id: ID заказа.

        Returns:
            True если заказ привязан.
        """
        return await self._apply_transition(
            referral_id, order_id, {"order_id": order_id}
        )

    async def mark_completed(
        self,
        referral_id: int,
        order_id: str,
        bonus_amount: Decimal,
        completed_at: datetime | None = None,
    ) -> bool:
        """Перевести реферал pending → completed.

        Статус, бонус, заказ и время завершения пишутся одним UPDATE -
        конкурентный читатель не увидит completed без бонуса.

        Args:
            referral_id: ID реферала.
            order_id: Оплаченный заказ.
            bonus_amount: Рассчитанный бонус.
            completed_at: Время завершения (по умолчанию сейчас).

        Returns:
            True если переход выполнен этим вызовом.
        """
        return await self._apply_transition(
            referral_id,
            order_id,
            {
                "status": ReferralStatus.COMPLETED,
                "bonus_amount": bonus_amount,
                "order_id": order_id,
                "completed_at": completed_at or utc_now(),
            },
        )

    async def mark_cancelled(
        self,
        referral_id: int,
        reason: str,
        order_id: str | None = None,
        cancelled_at: datetime | None = None,
    ) -> bool:
        """Перевести реферал pending → cancelled. Бонус остаётся пустым.

        Args:
            referral_id: ID реферала.
            reason: Причина отмены.
            order_id: Заказ, который не был оплачен (None - отмена оператором).
            cancelled_at: Время отмены (по умолчанию сейчас).

        Returns:
            True если переход выполнен этим вызовом.
        """
        values: dict[str, object] = {
            "status": ReferralStatus.CANCELLED,
            "cancel_reason": reason,
            "cancelled_at": cancelled_at or utc_now(),
        }
        if order_id is not None:
            values["order_id"] = order_id
        return await self._apply_transition(referral_id, order_id, values)

    async def aggregate(self, referrer_id: int | None = None) -> ReferralCounts:
        """Посчитать статистику одним агрегирующим запросом.

        Считается по строкам таблицы, поэтому всегда согласована с ней:
        total = pending + completed + cancelled.

        Args:
            referrer_id: ID пригласившего (None - по всей системе).

        Returns:
            Агрегаты по выбранным рефералам.
        """
        stmt = select(
            func.count(Referral.id).label("total"),
            func.count(case((Referral.status == ReferralStatus.PENDING, 1))).label(
                "pending"
            ),
            func.count(case((Referral.status == ReferralStatus.COMPLETED, 1))).label(
                "completed"
            ),
            func.count(case((Referral.status == ReferralStatus.CANCELLED, 1))).label(
                "cancelled"
            ),
            func.coalesce(
                func.sum(
                    case(
                        (
                            Referral.status == ReferralStatus.COMPLETED,
                            Referral.bonus_amount,
                        )
                    )
                ),
                0,
            ).label("bonus_paid"),
        )
        if referrer_id is not None:
            stmt = stmt.where(Referral.referrer_id == referrer_id)

        result = await self._session.execute(stmt)
        row = result.one()
        return ReferralCounts(
            total=row.total,
            pending=row.pending,
            completed=row.completed,
            cancelled=row.cancelled,
            bonus_paid=Decimal(str(row.bonus_paid)).quantize(MONEY_QUANT),
        )
