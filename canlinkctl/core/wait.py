"""Deadline-bounded polling used by the device waiter."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from canlinkctl.core.errors import WaitCancelledError, WaitTimeoutError

T = TypeVar("T")
LOGGER = logging.getLogger(__name__)

DEFAULT_INTERVAL_S = 5.0


def poll_until(
    probe: Callable[[], T | None],
    *,
    timeout_s: float,
    interval_s: float = DEFAULT_INTERVAL_S,
    cancel: threading.Event | None = None,
    on_retry: Callable[[float], None] | None = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] | None = None,
) -> T:
    """Call ``probe`` until it returns a value other than ``None``.

    ``probe`` runs once immediately and then every ``interval_s`` seconds
    until ``timeout_s`` seconds have passed since the call started. The last
    sleep is shortened to end at the deadline, so the call returns or raises
    within ``timeout_s + interval_s``.

    ``on_retry`` receives the seconds remaining before each sleep. Setting
    ``cancel`` interrupts a pending sleep and raises :class:`WaitCancelledError`.
    """
    if timeout_s < 0:
        raise ValueError("timeout_s must not be negative")
    if interval_s <= 0:
        raise ValueError("interval_s must be positive")

    cancel = cancel or threading.Event()
    if sleep is None:
        sleep = cancel.wait

    deadline = clock() + timeout_s
    while True:
        if cancel.is_set():
            raise WaitCancelledError("Wait cancelled")

        result = probe()
        if result is not None:
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            raise WaitTimeoutError(f"Nothing found within {timeout_s:g} seconds")

        if on_retry is not None:
            on_retry(remaining)
        LOGGER.debug("Probe found nothing, retrying in %.1fs (%.1fs left)", min(interval_s, remaining), remaining)
        sleep(min(interval_s, remaining))
