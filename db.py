# db.py
# Role: Database bootstrap for the event finance ledger.
#       Defines the SQLAlchemy engine, session factory, and declarative Base.
#       For SQLite it also creates the on-disk directory and turns on
#       foreign-key enforcement so allocation cascades hold.

"""
Database setup for the event finance ledger.

- URL comes from config (FINANCE_DATABASE_URL), default:
  <project_root>/database/event_finance.db
- SQLite connections run with PRAGMA foreign_keys=ON.
"""

import os

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base

from config import config

DATABASE_URL = config.database_url


def _ensure_sqlite_dir(url: str) -> None:
    # sqlite:///relative/or/absolute/path.db -> make sure the folder exists
    prefix = "sqlite:///"
    if not url.startswith(prefix) or url.endswith(":memory:"):
        return
    folder = os.path.dirname(url[len(prefix):])
    if folder:
        os.makedirs(folder, exist_ok=True)


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """
    SQLite ignores ON DELETE CASCADE unless foreign keys are switched on
    per connection.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


_ensure_sqlite_dir(DATABASE_URL)

# For SQLite, we need check_same_thread=False for FastAPI (threaded request handling)
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
enable_sqlite_foreign_keys(engine)

# Standard session factory used via dependency injection (see app/deps.py:get_db)
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Declarative base class for ORM models
Base = declarative_base()
