"""Модуль приложения.

Содержит factory для создания FastAPI app и lifecycle management.
"""

from referral_ledger.app.factory import create_app
from referral_ledger.app.lifecycle import ApplicationLifecycle

__all__ = [
    "ApplicationLifecycle",
    "create_app",
]
