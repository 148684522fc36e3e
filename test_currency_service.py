from decimal import Decimal

import pytest

from app.core.exceptions import RateUnavailable
from app.services.currency_service import DEFAULT_FALLBACK_RATES, StaticRateSource, normalize

RATES = {"ILS": Decimal("1"), "USD": Decimal("3.7"), "EUR": Decimal("3.9")}


def test_base_currency_is_unchanged():
    assert normalize(Decimal("123.45"), "ILS", RATES) == Decimal("123.45")
    assert normalize(Decimal("10"), "ILS", {}) == Decimal("10.00")


def test_converts_with_rate():
    assert normalize(Decimal("100"), "USD", RATES) == Decimal("370.00")
    assert normalize(Decimal("100"), "eur", RATES) == Decimal("390.00")


def test_rounds_half_up_to_cents():
    assert normalize(Decimal("0.005"), "USD", {"USD": Decimal("1")}) == Decimal("0.01")
    assert normalize(Decimal("1.333"), "USD", {"USD": Decimal("1")}) == Decimal("1.33")


def test_falls_back_when_rate_missing():
    assert normalize(Decimal("10"), "GBP", RATES, fallback_rates={"GBP": Decimal("4.6")}) == Decimal("46.00")


def test_primary_rate_wins_over_fallback():
    result = normalize(Decimal("10"), "USD", RATES, fallback_rates={"USD": Decimal("99")})
    assert result == Decimal("37.00")


def test_missing_everywhere_raises():
    with pytest.raises(RateUnavailable) as exc_info:
        normalize(Decimal("10"), "XYZ", RATES, fallback_rates=DEFAULT_FALLBACK_RATES)
    assert exc_info.value.currency == "XYZ"


def test_explicit_base_currency():
    assert normalize(Decimal("50"), "USD", {}, base_currency="USD") == Decimal("50.00")


def test_static_rate_source_defaults_to_fallback_table():
    rates = StaticRateSource().get_rates("ILS")
    assert rates["USD"] == DEFAULT_FALLBACK_RATES["USD"]
    assert StaticRateSource({"USD": Decimal("3")}).get_rates("ILS") == {"USD": Decimal("3")}
