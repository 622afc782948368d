"""
Retry support for store calls that fail for transient reasons.

Only ``StoreError`` instances flagged ``transient`` (dropped connections,
pool exhaustion, server restarts) are retried. Validation, conflict,
authorization and not-found errors are client-caused and are raised
immediately.
"""

import functools
import logging
import time
from typing import Optional

from shared.core.config import settings
from shared.utils.errors import StoreError

logger = logging.getLogger(__name__)


def with_store_retry(max_retries: Optional[int] = None, backoff_ms: Optional[int] = None):
    """
    Decorator that retries a crud function on transient store errors.

    Args:
        max_retries: Retry attempts after the first call (default: DB_MAX_RETRIES)
        backoff_ms: Base delay, doubled on every attempt (default: DB_RETRY_BACKOFF_MS)

    Usage:
        @with_store_retry()
        def list_flats(db, building_id):
            ...
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            retries = settings.DB_MAX_RETRIES if max_retries is None else max_retries
            base_delay = settings.DB_RETRY_BACKOFF_MS if backoff_ms is None else backoff_ms

            for attempt in range(retries + 1):
                try:
                    return func(*args, **kwargs)
                except StoreError as exc:
                    if not exc.transient or attempt >= retries:
                        if exc.transient:
                            logger.error(
                                "Store operation failed after %d attempts in %s: %s",
                                attempt + 1, func.__name__, exc.cause)
                        raise

                    delay = base_delay * (2 ** attempt) / 1000.0
                    logger.warning(
                        "Transient store error in %s (attempt %d/%d), retrying in %.2fs: %s",
                        func.__name__, attempt + 1, retries + 1, delay, exc.cause)
                    if delay > 0:
                        time.sleep(delay)

            raise RuntimeError("Unexpected retry loop exit")

        return wrapper
    return decorator
