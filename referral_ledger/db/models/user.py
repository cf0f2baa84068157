"""Модель пользователя.

Профиль пользователя принадлежит внешнему сервису аккаунтов.
Здесь хранится только то подмножество, которое нужно реферальной программе:
- Отображаемая идентичность (email, имя) для админских списков
- Персональный реферальный код
"""

from datetime import datetime

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column
from typing_extensions import override

from referral_ledger.db.models_base import Base
from referral_ledger.utils.timezone import utc_now

# Что показываем, если у пользователя нет ни email, ни имени
UNKNOWN_IDENTITY = "Unknown"


class User(Base):
    """Пользователь продукта.

    Создаётся внешним сервисом аккаунтов при регистрации.
    Реферальный код появляется лениво - при первом запросе
    (см. ReferralCodeService.ensure_code) и больше никогда не меняется.

    Attributes:
        id: Внутренний ID пользователя (автоинкремент).
        email: Email пользователя. Может быть None.
        full_name: Имя для отображения. Может быть None.
        referral_code: Персональный реферальный код.
            None = код ещё не выдан. Уникален среди всех пользователей.
        created_at: Дата регистрации (UTC).
    """

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    full_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # unique=True - два пользователя не могут получить один код.
    # Именно это ограничение ловит коллизии при генерации.
    # NULL не участвует в проверке уникальности - пользователей без кода много.
    referral_code: Mapped[str | None] = mapped_column(
        String(32),
        unique=True,
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    @property
    def display_identity(self) -> str:
        """Идентичность для отображения: email, иначе имя, иначе "Unknown"."""
        return self.email or self.full_name or UNKNOWN_IDENTITY

    @override
    def __repr__(self) -> str:
        """Строковое представление для отладки."""
        return (
            f"<User(id={self.id}, email={self.email}, "
            f"referral_code={self.referral_code})>"
        )
