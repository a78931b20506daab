from __future__ import annotations

import os

# Point the process-wide engine at a throwaway in-memory DB before config loads.
os.environ.setdefault("FINANCE_DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal
from typing import Callable, Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401  (registers tables on Base.metadata)
from db import Base, enable_sqlite_foreign_keys
from app.services.budget_items import create_budget_item


@pytest.fixture
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory: sessionmaker) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    """API client whose requests all run against the in-memory test DB."""
    from main import app
    from app.deps import get_db

    def _override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def make_item(db: Session) -> Callable[..., models.BudgetItem]:
    def _make(name: str = "Venue", **overrides) -> models.BudgetItem:
        data = {
            "category_name": name,
            "macro_category": "Logistics",
            "unit_cost_original": "1000",
            "currency": "EUR",
            "quantity": "1",
        }
        data.update(overrides)
        return create_budget_item(db, data)

    return _make


def tx_payload(**overrides) -> dict:
    data = {
        "transaction_type": "EXPENSE",
        "transaction_date": "2026-05-01",
        "description": "Venue deposit",
        "amount_original": "150.00",
        "currency": "EUR",
        "payment_method": "bank transfer",
    }
    data.update(overrides)
    return data


def sponsorship_payload(**overrides) -> dict:
    data = {
        "sponsor_name": "ACME",
        "pledged_amount_original": "500",
        "paid_amount_original": "0",
        "currency": "EUR",
        "status": "pledged",
    }
    data.update(overrides)
    return data


def alloc(item, amount) -> dict:
    return {"budget_item_id": item.id, "amount_original": str(Decimal(str(amount)))}
