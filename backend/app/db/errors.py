from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import InterfaceError, OperationalError, TimeoutError as PoolTimeoutError

from app.core.errors import DependencyUnavailable

logger = logging.getLogger(__name__)


@contextmanager
def translate_store_errors(operation: str) -> Iterator[None]:
    """
    Re-raise connectivity failures from the database as DependencyUnavailable.
    Data, constraint and SQL errors (DataError, IntegrityError, ProgrammingError)
    are not transient and pass through untouched.
    """
    try:
        yield
    except (OperationalError, InterfaceError, PoolTimeoutError, OSError) as exc:
        logger.warning("store unavailable during %s: %s", operation, exc)
        raise DependencyUnavailable(f"Backing store unavailable during {operation}") from exc
