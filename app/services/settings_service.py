# app/services/settings_service.py
"""
Configuration surface: the single mutable settings record.

Holds the event name, reporting currency, exchange rate (secondary units
per one reporting unit) and the list of account labels offered to
transactions and sponsorships.
"""

from decimal import Decimal
from typing import Optional

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from config import RATE_MAX, RATE_QUANTUM, config, quantize_rate
from models import Currency, EventFinanceSettings
from app.services.ledger_errors import LedgerStorageError, LedgerValidationError
from app.services.ledger_helpers import (
    normalize_choice,
    normalize_text,
    parse_accounts,
    parse_decimal,
)
from app.services.persistence import atomic_write

logger = structlog.get_logger(__name__)

SETTINGS_ID = 1


def get_settings(db: Session) -> EventFinanceSettings:
    """Return the settings row, creating it from config defaults on first use."""
    settings = db.get(EventFinanceSettings, SETTINGS_ID)
    if settings is not None:
        return settings

    settings = EventFinanceSettings(
        id=SETTINGS_ID,
        event_name=config.event_name_default,
        reporting_currency=config.reporting_currency_default,
        exchange_rate=config.exchange_rate_default,
        accounts=[],
    )
    try:
        with atomic_write(db, "settings_init"):
            db.add(settings)
    except LedgerStorageError as exc:
        # A concurrent request inserted the row first; use theirs.
        if not isinstance(exc.__cause__, IntegrityError):
            raise
        logger.info("settings_init_race_lost")
    else:
        logger.info("settings_initialized", event_name=settings.event_name)
    return db.get(EventFinanceSettings, SETTINGS_ID)


def update_settings(db: Session, data: dict, actor_id: Optional[str] = None) -> EventFinanceSettings:
    """
    Replace all settings fields. exchange_rate must be strictly positive;
    event_name must not be blank.
    """
    settings = get_settings(db)

    event_name = normalize_text(data.get("event_name"))
    if not event_name:
        raise LedgerValidationError("event_name is required")

    reporting_currency = normalize_choice(
        data.get("reporting_currency"),
        Currency,
        "reporting_currency",
        default=Currency(settings.reporting_currency),
    )

    rate: Optional[Decimal] = parse_decimal(data.get("exchange_rate"))
    if rate is None:
        raise LedgerValidationError("exchange_rate must be a number")
    if rate <= 0:
        raise LedgerValidationError("exchange_rate must be greater than zero")
    if rate > RATE_MAX:
        raise LedgerValidationError(f"exchange_rate must not exceed {RATE_MAX}")
    rate = quantize_rate(rate)
    if rate <= 0:
        raise LedgerValidationError(f"exchange_rate must be at least {RATE_QUANTUM}")

    accounts = parse_accounts(data.get("accounts"))

    with atomic_write(db, "settings_update"):
        settings.event_name = event_name
        settings.reporting_currency = reporting_currency
        settings.exchange_rate = rate
        settings.accounts = accounts
        settings.notes = normalize_text(data.get("notes"))
        settings.updated_by = actor_id

    logger.info(
        "settings_updated",
        reporting_currency=reporting_currency,
        exchange_rate=str(rate),
        accounts=len(accounts),
        actor_id=actor_id,
    )
    db.refresh(settings)
    return settings


def warn_unknown_account(settings: EventFinanceSettings, account: Optional[str], **context) -> None:
    """Accounts outside the configured list are accepted, but flagged."""
    if account and account not in (settings.accounts or []):
        logger.warning("account_not_configured", account=account, **context)
