"""Модуль конфигурации.

Для доступа к настройкам окружения используйте:
    from referral_ledger.config.settings import settings

Для политики реферальной программы (config.yaml):
    from referral_ledger.config.yaml_config import yaml_config

Для использования только классов настроек (без загрузки .env):
    from referral_ledger.config.models import DatabaseSettings
"""

# Не импортируем settings здесь, чтобы тесты могли импортировать
# другие модули из referral_ledger.config без загрузки .env файла.
# Для доступа к settings используйте прямой импорт:
#   from referral_ledger.config.settings import settings
