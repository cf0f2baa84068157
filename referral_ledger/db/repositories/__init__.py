"""Репозитории для работы с данными.

Репозиторий - это паттерн, который инкапсулирует логику доступа к данным.
Вместо прямых SQL-запросов в сервисах используем методы репозитория.

Преимущества:
- Вся логика работы с БД в одном месте
- Легко тестировать (можно подменить репозиторий на mock)
- Сервисы не зависят от деталей реализации БД
"""

from referral_ledger.db.repositories.referral_repo import (
    ReferralCounts,
    ReferralRepository,
)
from referral_ledger.db.repositories.user_repo import UserRepository

__all__ = [
    "ReferralCounts",
    "ReferralRepository",
    "UserRepository",
]
