"""Blocking convergence polling.

The cloud exposes no push channel for EIP state, so convergence is observed
by re-reading the resource until it reports the expected status.
"""

import time
from typing import Callable, Optional

from eipctl.core.exceptions import ConvergenceTimeoutError, InvalidStatusError
from eipctl.utils.logger import get_logger

logger = get_logger(__name__)


def wait_status(
    refresh: Callable[[], object],
    get_status: Callable[[], str],
    expect: str,
    *,
    delay: float = 0.0,
    interval: float = 10.0,
    timeout: float = 180.0,
    is_failure: Optional[Callable[[str], bool]] = None,
    description: str = "resource",
) -> None:
    """Block until ``get_status()`` returns ``expect``.

    Sleeps ``delay`` seconds, then alternates ``refresh()`` and a status check
    with ``interval`` seconds between reads. Errors raised by ``refresh`` are
    not retried.

    Args:
        refresh: Re-reads the resource from its source of truth.
        get_status: Returns the current status after a refresh.
        expect: Status that ends the wait successfully.
        delay: Seconds to wait before the first read.
        interval: Seconds between reads.
        timeout: Seconds allowed for the whole wait, excluding ``delay``.
        is_failure: Returns True for statuses that can never converge.
        description: Used in log records and error messages.

    Raises:
        InvalidStatusError: If a failure status is observed.
        ConvergenceTimeoutError: If ``expect`` is not observed within ``timeout``.
    """
    if delay > 0:
        time.sleep(delay)

    start = time.monotonic()
    attempts = 0

    while True:
        refresh()
        attempts += 1
        status = get_status()

        logger.info(
            "Polled status",
            extra={
                "resource": description,
                "status": status,
                "expect": expect,
                "attempt": attempts,
            },
        )

        if status == expect:
            return

        if is_failure is not None and is_failure(status):
            raise InvalidStatusError(
                f"{description} reached failure status {status} while waiting for {expect}",
                status=status,
                expect=expect,
            )

        elapsed = time.monotonic() - start
        if elapsed >= timeout:
            raise ConvergenceTimeoutError(
                f"Timeout waiting for {description} to become {expect} "
                f"after {timeout:.1f}s (last status {status})",
                status=status,
                expect=expect,
                timeout=timeout,
            )

        time.sleep(interval)
