"""Settings tests — defaults, env overrides, caching."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from cartcore.config import Settings, get_settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in (
        "CARTCORE_SURCHARGE_RATE",
        "CARTCORE_SURCHARGE_LABEL",
        "CARTCORE_SURCHARGE_GATEWAYS",
        "CARTCORE_PRICING_EXTENSION_ACTIVE",
        "CARTCORE_VERBOSE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = Settings()
    assert settings.surcharge_rate == Decimal("3")
    assert settings.surcharge_label == "Credit Card Surcharge (3%)"
    assert settings.surcharge_gateways == ("intuit_payments_credit_card",)
    assert settings.surcharge_taxable
    assert settings.discount_labels == ("VIP Discount", "Bulk Discount")
    assert settings.money_places == 2
    assert settings.pricing_extension_active
    assert not settings.verbose


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("CARTCORE_SURCHARGE_RATE", "2.5")
    monkeypatch.setenv("CARTCORE_SURCHARGE_GATEWAYS", '["card", "wallet"]')
    monkeypatch.setenv("CARTCORE_PRICING_EXTENSION_ACTIVE", "false")

    settings = Settings()

    assert settings.surcharge_rate == Decimal("2.5")
    assert settings.surcharge_gateways == ("card", "wallet")
    assert not settings.pricing_extension_active


def test_dotenv_file(tmp_path):
    (tmp_path / ".env").write_text("CARTCORE_SURCHARGE_LABEL=Card fee\n")
    assert Settings().surcharge_label == "Card fee"


def test_init_kwargs_beat_env(monkeypatch):
    monkeypatch.setenv("CARTCORE_SURCHARGE_RATE", "2.5")
    assert Settings(surcharge_rate=Decimal("4")).surcharge_rate == Decimal("4")


def test_get_settings_is_cached(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("CARTCORE_SURCHARGE_RATE", "9")
    assert get_settings() is first

    get_settings.cache_clear()
    assert get_settings().surcharge_rate == Decimal("9")


@pytest.mark.parametrize(
    "kwargs",
    [
        {"surcharge_label": "   "},
        {"surcharge_rate": Decimal("-1")},
        {"money_places": 9},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValidationError):
        Settings(**kwargs)


def test_settings_are_frozen():
    with pytest.raises(ValidationError):
        Settings().surcharge_rate = Decimal("1")
