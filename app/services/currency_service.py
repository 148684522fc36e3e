"""Currency normalization into the organization's base currency."""
import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Mapping, Optional, Protocol

from app.core.config import settings
from app.core.exceptions import RateUnavailable

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Best-effort rates (units of ILS per unit of currency) used when the live
# rate source is down or does not publish a currency.
DEFAULT_FALLBACK_RATES: Dict[str, Decimal] = {
    code: Decimal(rate) for code, rate in {
        "ILS": "1.0",
        "USD": "3.7",
        "EUR": "3.9",
        "GBP": "4.6",
        "CHF": "4.1",
        "CAD": "2.7",
        "JPY": "0.025",
        "PLN": "0.88",
        "BGN": "2.0",
        "CZK": "0.16",
        "HUF": "0.01",
        "RON": "0.79",
        "SEK": "0.35",
        "NOK": "0.34",
        "DKK": "0.52",
        "ISK": "0.026",
        "HRK": "0.52",
        "RSD": "0.033",
        "UAH": "0.09",
        "TRY": "0.11",
        "MXN": "0.18",
        "BRL": "0.63",
        "ARS": "0.0035",
        "CLP": "0.0037",
        "COP": "0.00083",
        "PEN": "0.95",
        "UYU": "0.08",
        "CNY": "0.51",
        "KRW": "0.0026",
        "HKD": "0.47",
        "SGD": "2.76",
        "THB": "0.11",
        "MYR": "0.83",
        "IDR": "0.00023",
        "PHP": "0.063",
        "VND": "0.00015",
        "TWD": "0.11",
        "INR": "0.043",
        "ZAR": "0.20",
        "EGP": "0.069",
        "MAD": "0.37",
        "TND": "1.18",
        "KES": "0.028",
        "NGN": "0.0023",
        "GHS": "0.24",
        "AUD": "2.39",
        "NZD": "2.18",
        "AED": "1.01",
        "SAR": "0.99",
        "QAR": "1.02",
        "KWD": "12.10",
        "JOD": "5.24",
    }.items()
}


class RateSource(Protocol):
    def get_rates(self, base_currency: str) -> Mapping[str, Decimal]:
        ...


class StaticRateSource:
    """Rate source backed by a fixed table, e.g. the fallback rates."""

    def __init__(self, rates: Optional[Mapping[str, Decimal]] = None):
        self.rates = dict(rates if rates is not None else DEFAULT_FALLBACK_RATES)

    def get_rates(self, base_currency: str) -> Mapping[str, Decimal]:
        return self.rates


def normalize(
    amount,
    from_currency: str,
    rates: Mapping[str, Decimal],
    fallback_rates: Optional[Mapping[str, Decimal]] = None,
    base_currency: Optional[str] = None,
) -> Decimal:
    """Convert ``amount`` in ``from_currency`` to the base currency.

    The base currency always converts 1:1. A currency missing from ``rates``
    is looked up in ``fallback_rates``; ``RateUnavailable`` is raised when
    neither table has it.
    """
    base = (base_currency or settings.BASE_CURRENCY).upper()
    code = from_currency.upper()
    value = Decimal(str(amount))

    if code == base:
        return value.quantize(CENT, rounding=ROUND_HALF_UP)

    rate = rates.get(code)
    if rate is None and fallback_rates is not None:
        rate = fallback_rates.get(code)
        if rate is not None:
            logger.warning(f"Using fallback rate {rate} for {code}")
    if rate is None:
        raise RateUnavailable(code)

    return (value * Decimal(str(rate))).quantize(CENT, rounding=ROUND_HALF_UP)
