"""
Transaction boundaries for service operations.

Every mutating operation runs as one unit of work: the work function is
executed against the session, then committed. Any exception rolls the whole
unit back, so nothing is left half-applied.

A dropped connection (``DBAPIError.connection_invalidated``) is handled by
disposing the connection pool and re-running the unit of work. After
``settings.DB_DISCONNECT_RETRIES`` re-runs the failure is surfaced as
TransientInfrastructureError.
"""
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session

from stockflow.core.config import settings
from stockflow.exceptions import TransientInfrastructureError
from stockflow.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _reset_connection_pool(db: Session) -> None:
    bind = db.get_bind()
    engine = getattr(bind, "engine", bind)
    engine.dispose()


def run_in_transaction(
    db: Session,
    work: Callable[[Session], T],
    *,
    retries: Optional[int] = None,
    operation: str = "transaction",
) -> T:
    """
    Run ``work(db)`` and commit, rolling back on any failure.

    Args:
        db: Database session
        work: Callable doing the reads and writes; must not commit itself
        retries: Re-runs allowed after a connection drop (defaults to settings)
        operation: Name used in log records

    Returns:
        Whatever ``work`` returned

    Raises:
        TransientInfrastructureError: connection dropped on every attempt
        Exception: anything raised by ``work`` (after rollback)
    """
    max_retries = settings.DB_DISCONNECT_RETRIES if retries is None else retries
    attempt = 0
    while True:
        attempt += 1
        try:
            result = work(db)
            db.commit()
            return result
        except DBAPIError as exc:
            db.rollback()
            if not exc.connection_invalidated:
                raise
            if attempt > max_retries:
                logger.error(
                    "Database connection lost, giving up",
                    extra={"operation": operation, "attempts": attempt},
                )
                raise TransientInfrastructureError(attempts=attempt) from exc
            logger.warning(
                "Database connection lost, resetting pool and retrying",
                extra={"operation": operation, "attempt": attempt},
            )
            _reset_connection_pool(db)
        except Exception:
            db.rollback()
            raise
