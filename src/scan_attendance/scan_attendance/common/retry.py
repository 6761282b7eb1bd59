from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

from ..core.exceptions import StoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def retry_on_store_error(
    fn: Callable[[], T],
    *,
    attempts: int = 3,
    backoff_seconds: float = 0.2,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``fn`` and retry it on StoreError with exponential backoff.

    Every core operation is idempotent or conditional, so replaying it after a
    store failure cannot double-apply. Domain errors propagate immediately.
    """

    attempts = max(1, int(attempts))
    for attempt in range(1, attempts):
        try:
            return fn()
        except StoreError as exc:
            delay = backoff_seconds * (2 ** (attempt - 1))
            logger.warning("Store call failed (attempt %d/%d): %s; retrying in %.2fs", attempt, attempts, exc, delay)
            sleep(delay)
    return fn()
