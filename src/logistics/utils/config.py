"""Runtime settings read from the environment.

Values are read on every call so tests can override them with
``monkeypatch.setenv``.
"""

import os
from decimal import Decimal


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, default))


def carrier_adapter() -> str:
    return os.environ.get("CARRIER_ADAPTER", "fake")


def lock_timeout_seconds() -> float:
    return _float("LOGISTICS_LOCK_TIMEOUT_SECONDS", 5.0)


def carrier_timeout_seconds() -> float:
    return _float("LOGISTICS_CARRIER_TIMEOUT_SECONDS", 10.0)


def ledger_page_size() -> int:
    return int(os.environ.get("LOGISTICS_LEDGER_PAGE_SIZE", 20))


def list_page_size() -> int:
    return int(os.environ.get("LOGISTICS_LIST_PAGE_SIZE", 50))


def default_markup_percent() -> Decimal:
    return Decimal(os.environ.get("LOGISTICS_DEFAULT_MARKUP_PERCENT", "15"))


def price_tolerance_percent() -> Decimal:
    return Decimal(os.environ.get("LOGISTICS_PRICE_TOLERANCE_PERCENT", "0.5"))
