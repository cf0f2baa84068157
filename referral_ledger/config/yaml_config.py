"""Загрузчик YAML-конфигурации.

Этот модуль загружает и валидирует config.yaml - файл с настройками,
которые можно менять без изменения кода.

Содержимое config.yaml:
- Политика реферальной программы (процент бонуса, округление, валюта)
- Формат реферальных кодов (длина, алфавит, число попыток генерации)
"""

import decimal
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator

from referral_ledger.config.constants import CONFIG_YAML_PATH

# Алфавит без похожих символов: нет 0/O, 1/I/L
DEFAULT_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"

# Имена режимов округления из модуля decimal
ROUNDING_MODES = frozenset(
    {
        decimal.ROUND_CEILING,
        decimal.ROUND_DOWN,
        decimal.ROUND_FLOOR,
        decimal.ROUND_HALF_DOWN,
        decimal.ROUND_HALF_EVEN,
        decimal.ROUND_HALF_UP,
        decimal.ROUND_UP,
        decimal.ROUND_05UP,
    }
)


class ReferralConfig(BaseModel):
    """Настройки реферальной программы.

    Как работает:
    1. Пользователь получает персональный код (генерируется при первом запросе)
    2. Фронтенд строит ссылку вида https://site/?ref=CODE
    3. Друг регистрируется по ссылке - создаётся реферал в статусе pending
    4. Когда заказ друга оплачен - реферал переходит в completed,
       пригласившему начисляется bonus_percent % от суммы заказа

    Процент и режим округления - политика продукта, а не константа:
    их можно поменять без изменения кода.

    Attributes:
        enabled: Включена ли реферальная программа.
            Если False - события регистрации подтверждаются,
            но рефералы не создаются.
        code_length: Длина реферального кода.
        code_alphabet: Символы, из которых собирается код.
        max_code_attempts: Сколько кандидатов перебрать при коллизиях,
            прежде чем сдаться с GenerationExhaustedError.
        bonus_percent: Процент от суммы заказа, который получает пригласивший.
        bonus_rounding: Режим округления бонуса (имя константы decimal).
        currency: Код валюты бонусов (ISO 4217).
        minor_unit_digits: Число знаков после запятой у валюты.
        recent_referrals_limit: Сколько последних рефералов показывать в сводке.
    """

    enabled: bool = Field(
        default=True,
        description="Включить реферальную программу",
    )
    code_length: int = Field(
        default=8,
        ge=4,
        le=32,
        description="Длина реферального кода",
    )
    code_alphabet: str = Field(
        default=DEFAULT_CODE_ALPHABET,
        description="Символы реферального кода (без похожих 0/O, 1/I/L)",
    )
    max_code_attempts: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Максимум попыток генерации уникального кода",
    )
    bonus_percent: Decimal = Field(
        default=Decimal(10),
        ge=0,
        le=100,
        description="Процент от суммы заказа, начисляемый пригласившему",
    )
    bonus_rounding: str = Field(
        default=decimal.ROUND_HALF_DOWN,
        description="Режим округления бонуса до минимальной единицы валюты",
    )
    currency: str = Field(
        default="INR",
        min_length=3,
        max_length=3,
        description="Валюта бонусов (ISO 4217)",
    )
    minor_unit_digits: int = Field(
        default=2,
        ge=0,
        le=4,
        description="Число знаков после запятой у валюты",
    )
    recent_referrals_limit: int = Field(
        default=5,
        ge=1,
        le=100,
        description="Сколько последних рефералов показывать в сводке пользователя",
    )

    @field_validator("code_alphabet")
    @classmethod
    def validate_alphabet(cls, v: str) -> str:
        """Проверить алфавит кода.

        Коды нормализуются к верхнему регистру, поэтому алфавит тоже
        должен быть в верхнем регистре и без повторов.
        """
        v = v.strip()
        if len(v) < 10:
            raise ValueError("Алфавит кода должен содержать минимум 10 символов")
        if not v.isalnum() or v != v.upper():
            raise ValueError("Алфавит кода: только заглавные буквы и цифры")
        if len(set(v)) != len(v):
            raise ValueError("Алфавит кода содержит повторяющиеся символы")
        return v

    @field_validator("bonus_rounding")
    @classmethod
    def validate_rounding(cls, v: str) -> str:
        """Проверить, что режим округления есть в модуле decimal."""
        v = v.strip().upper()
        if v not in ROUNDING_MODES:
            raise ValueError(
                f"Неизвестный режим округления: {v}. "
                f"Допустимые: {', '.join(sorted(ROUNDING_MODES))}"
            )
        return v

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v: str) -> str:
        """Привести код валюты к верхнему регистру."""
        return v.upper()

    @property
    def minor_unit(self) -> Decimal:
        """Минимальная единица валюты (0.01 для двух знаков)."""
        return Decimal(1).scaleb(-self.minor_unit_digits)


class YamlConfig(BaseModel):
    """Главная YAML-конфигурация.

    Загружается из config.yaml при старте приложения.
    """

    referral: ReferralConfig = ReferralConfig()

    @field_validator("referral", mode="before")
    @classmethod
    def parse_referral(cls, v: dict[str, Any] | None) -> dict[str, Any]:
        """Пустая секция referral: в YAML превращается в настройки по умолчанию."""
        if v is None:
            return {}
        return v


def load_yaml_config(path: Path | str = CONFIG_YAML_PATH) -> YamlConfig:
    """Загрузить и валидировать YAML-конфигурацию.

    Args:
        path: Путь к файлу конфигурации.

    Returns:
        Валидированный объект конфигурации.
        Если файла нет - конфигурация по умолчанию.

    Raises:
        yaml.YAMLError: Некорректный YAML.
        pydantic.ValidationError: Некорректная конфигурация.
    """
    config_path = Path(path)

    if not config_path.exists():
        return YamlConfig()

    with config_path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    return YamlConfig.model_validate(data)


yaml_config = load_yaml_config()
