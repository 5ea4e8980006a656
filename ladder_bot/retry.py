from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from .exceptions import RetryExhausted

T = TypeVar("T")

DEFAULT_ATTEMPTS = 5


def _not_none(result: object) -> bool:
    return result is not None


def has_id(result: object) -> bool:
    return isinstance(result, dict) and bool(result.get("id"))


def with_retry(
    operation: Callable[[], T],
    description: str,
    attempts: int = DEFAULT_ATTEMPTS,
    is_valid: Callable[[T], bool] = _not_none,
    logger: Optional[logging.Logger] = None,
) -> T:
    """Run ``operation`` until it returns a valid result, at most ``attempts`` times.

    Attempts are sequential with no pause in between; pacing requests is up to
    the exchange client.
    """
    log = logger or logging.getLogger("ladder_bot")
    for attempt in range(1, attempts + 1):
        try:
            result = operation()
        except Exception as exc:  # noqa: BLE001
            log.warning("%s: attempt %s/%s failed: %s", description, attempt, attempts, exc)
            continue
        if is_valid(result):
            return result
        log.warning(
            "%s: attempt %s/%s returned an unusable response: %r",
            description,
            attempt,
            attempts,
            result,
        )
    raise RetryExhausted(description, attempts)
