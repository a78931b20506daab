# config.py
# Role: Environment-driven configuration for the event finance ledger.
#       Reads .env (python-dotenv) and exposes typed defaults used at startup:
#       database URL, log level, and the initial values of the settings record.

"""
Process configuration.

Only bootstrap values live here. The ledger's run-time configuration
(exchange rate, reporting currency, account list) is stored in the
event_finance_settings table and edited through the settings surface.
"""

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from dotenv import load_dotenv

load_dotenv()

# Base directory of the project (where this module lives)
BASE_DIR = os.path.dirname(os.path.abspath(__file__))

# Precision of the stored exchange rate (Numeric(14, 6) column).
RATE_QUANTUM = Decimal("0.000001")
RATE_MAX = Decimal("99999999.999999")


def _env_str(name: str, default: str) -> str:
    value = (os.getenv(name) or "").strip()
    return value or default


def _env_decimal(name: str, default: str) -> Decimal:
    raw = _env_str(name, default)
    try:
        number = Decimal(raw)
    except InvalidOperation:
        raise RuntimeError(f"{name} must be a decimal number, got {raw!r}")
    if not number.is_finite():
        raise RuntimeError(f"{name} must be a decimal number, got {raw!r}")
    return number


def quantize_rate(rate: Decimal) -> Decimal:
    """Round a rate to what the settings table can store."""
    return Decimal(rate).quantize(RATE_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class Config:
    database_url: str
    log_level: str
    event_name_default: str
    reporting_currency_default: str
    exchange_rate_default: Decimal

    @staticmethod
    def load() -> "Config":
        db_path = os.path.join(BASE_DIR, "database", "event_finance.db")
        reporting_currency = _env_str("REPORTING_CURRENCY_DEFAULT", "EUR").upper()
        exchange_rate = _env_decimal("EXCHANGE_RATE_DEFAULT", "400")

        if reporting_currency not in ("EUR", "HUF"):
            raise RuntimeError("REPORTING_CURRENCY_DEFAULT must be EUR or HUF")
        if exchange_rate <= 0:
            raise RuntimeError("EXCHANGE_RATE_DEFAULT must be greater than zero")
        if exchange_rate > RATE_MAX:
            raise RuntimeError(f"EXCHANGE_RATE_DEFAULT must not exceed {RATE_MAX}")
        exchange_rate = quantize_rate(exchange_rate)
        if exchange_rate <= 0:
            raise RuntimeError(
                f"EXCHANGE_RATE_DEFAULT must be at least {RATE_QUANTUM} (6 decimal places)"
            )

        return Config(
            database_url=_env_str("FINANCE_DATABASE_URL", f"sqlite:///{db_path}"),
            log_level=_env_str("LOG_LEVEL", "INFO").upper(),
            event_name_default=_env_str("EVENT_NAME_DEFAULT", "Event"),
            reporting_currency_default=reporting_currency,
            exchange_rate_default=exchange_rate,
        )


config = Config.load()
