"""
Retry helper for flaky outbound calls (SMTP, Stripe sync)
"""
import logging
import time

logger = logging.getLogger(__name__)


def retry_call(fn, attempts=3, base_delay=0.5, backoff=2.0, exceptions=(Exception,), sleep=time.sleep):
    """
    Calls ``fn()`` until it succeeds or ``attempts`` run out.

    The delay before retry n is ``base_delay * backoff ** (n - 1)``. The last
    exception is re-raised unchanged.
    """
    if attempts < 1:
        raise ValueError("attempts must be >= 1")

    delay = base_delay
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except exceptions as exc:
            if attempt == attempts:
                raise
            logger.warning("⚠️ Attempt %s/%s failed: %s; retrying in %.2fs", attempt, attempts, exc, delay)
            sleep(delay)
            delay *= backoff
