"""Модель реферала.

Хранит связь между пригласившим (referrer) и приглашённым (referred).
Это единственный источник правды реферальной программы:
вся статистика считается по этой таблице.

Жизненный цикл:
1. PENDING - друг зарегистрировался по коду, заказ ещё не оплачен
2. COMPLETED - заказ оплачен, бонус рассчитан и заморожен
3. CANCELLED - заказ не оплачен/возвращён или реферал аннулирован оператором

COMPLETED и CANCELLED - терминальные статусы, из них переходов нет.
"""

from datetime import datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from referral_ledger.db.models_base import Base
from referral_ledger.utils.timezone import utc_now


class ReferralStatus(StrEnum):
    """Статус реферала.

    Значения:
        PENDING: Ожидает оплаты заказа. Бонус не назначен.
        COMPLETED: Заказ оплачен, бонус начислен. Терминальный.
        CANCELLED: Заказ не оплачен или реферал аннулирован. Терминальный.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        """Из статуса нет переходов."""
        return self is not ReferralStatus.PENDING


class Referral(Base):
    """Реферал - запись о приглашении пользователя.

    Один пользователь может быть приглашён только один раз
    (referred_user_id уникален) - first attribution wins.

    Attributes:
        id: Уникальный ID записи (автоинкремент).
        referrer_id: ID пригласившего пользователя (FK → users.id).
        referred_user_id: ID приглашённого пользователя (FK → users.id).
            Уникальный - повторная атрибуция невозможна на уровне БД.
        referral_code: Код, по которому пришёл приглашённый (для аудита).
        status: Текущий статус (pending/completed/cancelled).
        order_id: Заказ, оплата которого завершает реферал.
            None = заказа ещё нет.
        bonus_amount: Бонус пригласившему. None пока статус не completed.
            Рассчитывается один раз при завершении и больше не меняется.
        created_at: Когда зарегистрировался приглашённый (UTC).
        completed_at: Когда заказ был оплачен.
        cancelled_at: Когда реферал был отменён.
        cancel_reason: Причина отмены (order_failed, текст оператора).

    Пример:
        referral = Referral(
            referrer_id=1,
            referred_user_id=2,
            referral_code="ABCD2345",
        )
    """

    __tablename__ = "referrals"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    # ondelete="CASCADE" - при удалении пользователя удаляются его рефералы
    referrer_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )

    # unique=True - first attribution wins.
    # Два одновременных события регистрации не смогут оба создать запись.
    referred_user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    referral_code: Mapped[str] = mapped_column(String(32), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        default=ReferralStatus.PENDING,
        nullable=False,
    )

    order_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Numeric(12, 2) - деньги храним точно, без float
    bonus_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    cancel_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "referrer_id <> referred_user_id",
            name="ck_referrals_not_self",
        ),
        CheckConstraint(
            "bonus_amount IS NULL OR bonus_amount >= 0",
            name="ck_referrals_bonus_non_negative",
        ),
        # Список рефералов пользователя (новые первыми) и статистика по нему
        Index("ix_referrals_referrer_created", "referrer_id", "created_at"),
        # Глобальные счётчики по статусам
        Index("ix_referrals_status", "status"),
    )

    @property
    def is_terminal(self) -> bool:
        """Реферал в терминальном статусе (completed/cancelled)."""
        return ReferralStatus(self.status).is_terminal

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<Referral(id={self.id}, referrer_id={self.referrer_id}, "
            f"referred_user_id={self.referred_user_id}, status={self.status})>"
        )
