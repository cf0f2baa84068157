"""Тесты для загрузки и валидации YAML-конфигурации."""

from decimal import ROUND_HALF_DOWN, ROUND_HALF_UP, Decimal
from pathlib import Path

import pytest
from pydantic import ValidationError

from referral_ledger.config.yaml_config import (
    CONFIG_YAML_PATH,
    DEFAULT_CODE_ALPHABET,
    ReferralConfig,
    YamlConfig,
    load_yaml_config,
)


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


def test_referral_section_is_loaded(tmp_path: Path) -> None:
    """Тест загрузки секции referral."""
    path = _write(
        tmp_path,
        """
referral:
  enabled: false
  bonus_percent: 7.5
  bonus_rounding: round_half_up
  currency: usd
  recent_referrals_limit: 3
""",
    )

    config = load_yaml_config(path)

    assert config.referral.enabled is False
    assert config.referral.bonus_percent == Decimal("7.5")
    assert config.referral.bonus_rounding == ROUND_HALF_UP
    assert config.referral.currency == "USD"
    assert config.referral.recent_referrals_limit == 3


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    """Без файла - конфигурация по умолчанию."""
    config = load_yaml_config(tmp_path / "absent.yaml")

    assert config == YamlConfig()


@pytest.mark.parametrize("content", ["", "referral:\n"])
def test_empty_config_gives_defaults(tmp_path: Path, content: str) -> None:
    """Пустой файл или пустая секция - настройки по умолчанию."""
    config = load_yaml_config(_write(tmp_path, content))

    assert config.referral == ReferralConfig()


def test_project_config_matches_defaults() -> None:
    """config.yaml проекта совпадает с настройками по умолчанию."""
    config = load_yaml_config(CONFIG_YAML_PATH)

    assert config.referral == ReferralConfig()


class TestReferralConfigDefaults:
    """Значения по умолчанию."""

    def test_defaults(self) -> None:
        """10%, округление половины вниз, 8 символов безопасного алфавита."""
        config = ReferralConfig()

        assert config.enabled is True
        assert config.code_length == 8
        assert config.code_alphabet == DEFAULT_CODE_ALPHABET
        assert config.bonus_percent == Decimal(10)
        assert config.bonus_rounding == ROUND_HALF_DOWN
        assert config.minor_unit == Decimal("0.01")

    def test_minor_unit_follows_digits(self) -> None:
        """minor_unit зависит от числа знаков валюты."""
        assert ReferralConfig(minor_unit_digits=0).minor_unit == Decimal(1)
        assert ReferralConfig(minor_unit_digits=3).minor_unit == Decimal("0.001")


class TestReferralConfigValidation:
    """Валидация некорректных значений."""

    @pytest.mark.parametrize(
        "alphabet",
        [
            "ABCDE",
            "abcdefghjk",
            "ABCDEFGHJ-",
            "AABCDEFGHJ",
        ],
    )
    def test_bad_alphabet(self, alphabet: str) -> None:
        """Короткий, строчный, с разделителями или с повторами алфавит отклоняется."""
        with pytest.raises(ValidationError):
            ReferralConfig(code_alphabet=alphabet)

    def test_unknown_rounding_mode(self) -> None:
        """Неизвестный режим округления отклоняется."""
        with pytest.raises(ValidationError):
            ReferralConfig(bonus_rounding="ROUND_RANDOM")

    @pytest.mark.parametrize("percent", ["-1", "101"])
    def test_percent_out_of_range(self, percent: str) -> None:
        """Процент бонуса в пределах 0..100."""
        with pytest.raises(ValidationError):
            ReferralConfig(bonus_percent=Decimal(percent))

    def test_zero_attempts_rejected(self) -> None:
        """Хотя бы одна попытка генерации кода."""
        with pytest.raises(ValidationError):
            ReferralConfig(max_code_attempts=0)
