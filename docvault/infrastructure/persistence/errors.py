"""Translation of backing-datastore failures into domain errors."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from docvault.domain.exceptions import StorageUnavailable

logger = logging.getLogger(__name__)


def is_transient(error: BaseException) -> bool:
    """Connection loss, pool exhaustion and timeouts; never integrity violations"""
    if isinstance(error, (OperationalError, PoolTimeoutError, TimeoutError, ConnectionError)):
        return True
    return isinstance(error, DBAPIError) and bool(error.connection_invalidated)


@asynccontextmanager
async def translate_db_errors(operation: str) -> AsyncIterator[None]:
    """
    Re-raise transient datastore failures as StorageUnavailable.

    Everything else propagates unchanged.
    """
    try:
        yield
    except Exception as e:
        if not is_transient(e):
            raise
        logger.warning("Datastore unavailable during %s: %s", operation, e)
        raise StorageUnavailable(operation, type(e).__name__) from e
