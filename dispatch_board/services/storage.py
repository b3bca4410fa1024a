"""
Storage boundary: blocking SQLAlchemy work runs in a worker thread under a deadline.
"""
import functools
from typing import Any, Callable, TypeVar

import anyio
import structlog
from sqlalchemy.exc import SQLAlchemyError

from ..errors import StorageError, StorageTimeoutError

logger = structlog.get_logger(__name__)

T = TypeVar("T")


async def run_storage(func: Callable[..., T], *args: Any, timeout: float, op: str = "") -> T:
    """
    Run a blocking datastore call off the event loop.

    Raises StorageTimeoutError when the call exceeds ``timeout`` seconds and
    StorageError for any SQLAlchemy failure. Never retries.
    """
    try:
        with anyio.fail_after(timeout):
            return await anyio.to_thread.run_sync(functools.partial(func, *args), abandon_on_cancel=True)
    except TimeoutError:
        logger.error("storage_timeout", op=op, timeout_s=timeout)
        raise StorageTimeoutError(f"Datastore did not respond within {timeout:g}s")
    except SQLAlchemyError as e:
        logger.error("storage_failed", op=op, error=str(e))
        raise StorageError(str(e))
