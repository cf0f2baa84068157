"""Константы приложения."""

import os
from pathlib import Path

# ==============================================================================
# ПУТИ К ФАЙЛАМ И ДИРЕКТОРИЯМ
# ==============================================================================

# Корень проекта (где лежит pyproject.toml)
PROJECT_ROOT = Path(__file__).parent.parent.parent


# Папка для данных (база SQLite, логи)
#
# В контейнере: /data - персистентный volume (абсолютный путь обязателен!)
# Локально: ./data - папка в корне проекта
#
# Переменная REFERRAL_LEDGER_DATA_DIR позволяет переопределить путь
# (например, во временную папку в CI)
_CONTAINER_DATA = Path("/data")


def _resolve_data_dir() -> Path:
    override = os.environ.get("REFERRAL_LEDGER_DATA_DIR")
    if override:
        return Path(override)
    return _CONTAINER_DATA if _CONTAINER_DATA.exists() else PROJECT_ROOT / "data"


DATA_DIR = _resolve_data_dir()

# Создаём директорию если не существует (важно для первого запуска)
DATA_DIR.mkdir(parents=True, exist_ok=True)

# Путь к YAML-конфигурации политики реферальной программы
CONFIG_YAML_PATH = PROJECT_ROOT / "config.yaml"
