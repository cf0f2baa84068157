"""API эндпоинты.

Этот модуль содержит FastAPI роутеры для:
- Health check (/health)
- Входящих событий (регистрация, заказ, оплата)
- Сводки пользователя и выдачи кода
- Административных операций (список, статистика, аннулирование)
"""

from referral_ledger.api.admin import router as admin_router
from referral_ledger.api.events import router as events_router
from referral_ledger.api.health import router as health_router
from referral_ledger.api.referrals import router as referrals_router

__all__ = ["admin_router", "events_router", "health_router", "referrals_router"]
