import logging
import time
from datetime import timedelta
from typing import Callable, Optional, TypeVar, Union

from tenacity import Retrying, stop_after_attempt, wait_incrementing

from ..domain.errors import InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def run_with_retry(
    operation: Callable[[], T],
    base_delay: Union[float, timedelta] = 5.0,
    max_attempts: int = 5,
    sleep: Callable[[float], None] = time.sleep,
    on_failure: Optional[Callable[[BaseException], None]] = None,
) -> T:
    """
    run operation until it succeeds, with a linear back-off between attempts.

    after failed attempt k (0-indexed) the caller's thread sleeps k * base_delay,
    so the first retry is immediate. the last failure is re-raised once
    max_attempts attempts have been made.

    args:
        operation: callable with no arguments
        base_delay: seconds (or a timedelta) added to the delay on every retry
        max_attempts: total number of attempts, at least 1
        sleep: blocking sleep function, replaceable in tests
        on_failure: called with every exception raised by operation
    """
    if max_attempts < 1:
        raise InvalidArgumentError(f"max_attempts must be at least 1, got {max_attempts}")
    if isinstance(base_delay, timedelta):
        base_delay = base_delay.total_seconds()

    def _after(retry_state):
        error = retry_state.outcome.exception()
        logger.warning(
            f"attempt {retry_state.attempt_number} of {max_attempts} failed: {error}"
        )
        if on_failure is not None:
            on_failure(error)

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_incrementing(start=0, increment=base_delay),
        sleep=sleep,
        after=_after,
        reraise=True,
    )
    return retrying(operation)
