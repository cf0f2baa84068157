"""Модуль базы данных.

Содержит:
- base.py - подключение к БД (engine, session, Base)
- models_base.py - базовый класс для моделей (без загрузки settings)
- models/ - модели SQLAlchemy (таблицы users и referrals)
- repositories/ - репозитории для работы с данными
- migrations.py - проверка статуса миграций Alembic при старте

Для изоляции тестов используйте:
    from referral_ledger.db.models_base import Base  # Без загрузки settings

Для runtime-использования с реальной БД:
    from referral_ledger.db.base import get_session, open_session
"""

# Не импортируем из base.py здесь, чтобы тесты могли импортировать
# Base из models_base.py без загрузки settings.
