"""
Bounded retry for transient store errors.

Transient: connection resets, pool / statement timeouts, dropped
connections (OperationalError, DisconnectionError, sqlalchemy TimeoutError).
Everything else (IntegrityError, ProgrammingError, DataError, ...) is raised
on the first attempt.

Backoff: base_delay * 2**attempt  (0.1s, 0.2s, 0.4s with the defaults).
"""
from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from sqlalchemy.exc import DisconnectionError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS = (OperationalError, DisconnectionError, PoolTimeoutError)


def is_transient(exc: BaseException) -> bool:
    return isinstance(exc, TRANSIENT_ERRORS)


def run_with_retry(
    db: Session,
    operation: Callable[[], T],
    attempts: int = 3,
    base_delay: float = 0.1,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run `operation` (which works on `db`) up to `attempts` times.

    The session is rolled back before each retry, so `operation` must be
    a complete unit of work that can be replayed from scratch.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    for attempt in range(attempts):
        try:
            return operation()
        except TRANSIENT_ERRORS as exc:
            db.rollback()
            if attempt == attempts - 1:
                logger.error("Store error after %d attempts: %s", attempts, exc)
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(
                "Transient store error on attempt %d, retrying in %.2fs: %s",
                attempt + 1, delay, exc,
            )
            sleep(delay)

    raise RuntimeError("unreachable")  # pragma: no cover
