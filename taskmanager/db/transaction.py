"""
Transaction Boundary

Multi-row writes (registration, profile update, account deletion) either commit
as a whole or roll back as a whole. Side effects outside the database, such as
an uploaded photo, register cleanup callbacks that run only on the matching
outcome.
"""
import logging
from contextlib import contextmanager
from typing import Callable, Iterator, List

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from taskmanager.core.email import EmailDeliveryError
from taskmanager.core.errors import Conflict, Unavailable

logger = logging.getLogger(__name__)


class Transaction:
    def __init__(self, db: Session):
        self.db = db
        self._on_commit: List[Callable[[], None]] = []
        self._on_rollback: List[Callable[[], None]] = []

    def on_commit(self, callback: Callable[[], None]) -> None:
        self._on_commit.append(callback)

    def on_rollback(self, callback: Callable[[], None]) -> None:
        self._on_rollback.append(callback)

    def _run(self, callbacks: List[Callable[[], None]]) -> None:
        for callback in callbacks:
            try:
                callback()
            except OSError as e:
                logger.warning(f"Cleanup after transaction failed: {e}")

    def rollback(self) -> None:
        self.db.rollback()
        self._run(self._on_rollback)


@contextmanager
def atomic(db: Session, conflict_message: str = "Resource already exists") -> Iterator[Transaction]:
    """
    Commit once at the end of the block; on any error roll back and run the
    rollback callbacks. Persistence and delivery failures are surfaced as
    generic errors so internals never leak to the client.
    """
    tx = Transaction(db)
    try:
        yield tx
        db.commit()
    except IntegrityError:
        tx.rollback()
        raise Conflict(conflict_message)
    except SQLAlchemyError:
        tx.rollback()
        logger.exception("Database error, transaction rolled back")
        raise Unavailable("Database service unavailable")
    except EmailDeliveryError:
        tx.rollback()
        raise Unavailable("Failed to send email, please try again later")
    except Exception:
        tx.rollback()
        raise
    tx._run(tx._on_commit)
