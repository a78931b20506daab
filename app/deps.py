# app/deps.py
# Role: Shared application-level dependencies.
#       Provides the standard SQLAlchemy database session dependency and the
#       id of the acting user, which the (external) auth layer forwards as a header.

"""
Shared dependencies for the event finance API.
"""

from typing import Generator, Optional

from fastapi import Header
from sqlalchemy.orm import Session

from db import SessionLocal

# -------------------------------------------------------------------
# Database dependency
# -------------------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    """
    One session per request. Services commit through atomic_write;
    this only guarantees the session is closed afterwards.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# -------------------------------------------------------------------
# Acting user
# -------------------------------------------------------------------

def get_actor_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """
    Id of the user performing a mutation (stored as created_by / updated_by).
    Authentication happens upstream; this only reads what it forwards.
    """
    if x_user_id is None:
        return None
    return x_user_id.strip() or None
