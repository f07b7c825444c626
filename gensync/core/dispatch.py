"""
Background work with completion delivered on the foreground thread
"""
import queue
import threading
import time
from typing import Callable, Optional

from ..utils.logging import warn


class ForegroundLoop:
    """
    Single consumer of completion messages.

    Workers call post(); the thread that owns the loop calls run_pending()
    or run_until_idle() and is the only one that executes the callbacks.
    """

    def __init__(self):
        self._queue: "queue.Queue[Callable[[], None]]" = queue.Queue()
        self._busy = 0
        self._busy_lock = threading.Lock()

    def post(self, fn: Callable[[], None]):
        self._queue.put(fn)

    def submit(self, work: Callable[[], object],
               on_done: Optional[Callable[[object], None]] = None,
               name: str = "gensync-worker") -> threading.Thread:
        """
        Run *work* on a worker thread and post ``on_done(result)`` back here.
        An exception from *work* is reported and on_done is not called.
        """
        with self._busy_lock:
            self._busy += 1

        def runner():
            try:
                result = work()
            except Exception as exc:
                warn(f"{name} failed: {exc}")
            else:
                if on_done is not None:
                    self.post(lambda: on_done(result))
            finally:
                with self._busy_lock:
                    self._busy -= 1
                self.post(lambda: None)  # wake up run_until_idle

        t = threading.Thread(target=runner, name=name, daemon=True)
        t.start()
        return t

    @property
    def busy(self) -> bool:
        with self._busy_lock:
            return self._busy > 0

    def run_pending(self) -> int:
        """Run every callback already queued; returns how many ran."""
        count = 0
        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return count
            fn()
            count += 1

    def run_until_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Process callbacks until no worker is running and the queue is empty.
        Returns False if *timeout* elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.run_pending()
            if not self.busy and self._queue.empty():
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            try:
                fn = self._queue.get(timeout=0.1 if remaining is None else min(remaining, 0.1))
            except queue.Empty:
                continue
            fn()
