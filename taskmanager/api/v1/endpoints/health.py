import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from taskmanager.core.errors import Unavailable
from taskmanager.db.session import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=dict[str, Any])
def health_check(db: Session = Depends(get_db)) -> Any:
    """
    Health check endpoint. Reports ok once the database answers.
    """
    try:
        db.exec(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check failed: database unreachable")
        raise Unavailable("Database service unavailable")
    return {"status": "ok"}
