"""Модели базы данных (таблицы).

Каждая модель - это класс Python, который соответствует таблице в БД.
SQLAlchemy автоматически преобразует объекты в SQL-запросы.

Все модели должны наследоваться от Base (из db.models_base).
"""

from referral_ledger.db.models.referral import Referral, ReferralStatus
from referral_ledger.db.models.user import UNKNOWN_IDENTITY, User

__all__ = [
    "UNKNOWN_IDENTITY",
    "Referral",
    "ReferralStatus",
    "User",
]
