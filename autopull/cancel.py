"""
autopull/cancel.py - Cooperative cancellation.

One token per process. The cancel hotkey flips it, every suspension point
checks it. Waiting is done on a threading.Event so a sleep wakes up the
moment the flag is set instead of spinning.
"""

import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from typing import Callable, Optional, TypeVar

from .errors import Cancelled

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 0.05


class CancellationToken:
    # Set once, never reset

    def __init__(self, poll_interval: float = DEFAULT_POLL_INTERVAL) -> None:
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.poll_interval = poll_interval
        self._event = threading.Event()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._executor_lock = threading.Lock()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Cancelled()

    def sleep(self, seconds: float) -> None:
        """Sleep for `seconds`, raising Cancelled as soon as the flag is set."""
        self.raise_if_cancelled()
        if seconds <= 0:
            return
        if self._event.wait(seconds):
            raise Cancelled()

    def run(self, fn: Callable[..., T], *args, **kwargs) -> T:
        """
        Run fn on the worker thread and race it against the flag.

        The flag is polled every `poll_interval` seconds. On cancellation the
        caller gets Cancelled right away; the worker finishes in the
        background and its result is dropped.
        """
        self.raise_if_cancelled()
        future = self._worker().submit(fn, *args, **kwargs)
        while True:
            try:
                return future.result(timeout=self.poll_interval)
            except FutureTimeout:
                if self._event.is_set():
                    future.cancel()
                    raise Cancelled()

    def close(self) -> None:
        with self._executor_lock:
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = None

    def _worker(self) -> ThreadPoolExecutor:
        # Single worker so capture handles stay on one thread
        with self._executor_lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="autopull")
            return self._executor
