# routes_root.py
"""
Root / basic endpoints (landing, health).
"""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from app.deps import get_db

router = APIRouter()


@router.get("/")
def read_root():
    """
    Landing endpoint: the rollups are what operators look at first.
    """
    return RedirectResponse(url="/event-finance/report", status_code=302)


@router.get("/health")
def health(db: Session = Depends(get_db)):
    """
    Liveness + database reachability.
    """
    db.execute(text("SELECT 1"))
    return {"status": "ok"}
