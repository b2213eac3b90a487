from __future__ import annotations

# Cooperative shutdown for the producer and consumer loops.
#
# A loop runs on its own thread and checks a `CancellationToken` at every
# iteration boundary. The main thread waits for it and, on Ctrl+C or SIGTERM,
# cancels the token and then gives the loop a bounded grace period to notice
# and close its client. The loop thread is never killed; if it is still busy
# when the grace period runs out (e.g. blocked reading stdin) the process
# exits anyway since the thread is a daemon.

import logging
import signal
import threading
from typing import Callable

from .errors import Interrupted

log = logging.getLogger(__name__)

DEFAULT_GRACE_SECONDS = 2.0


class CancellationToken:
    """Shared interruption flag, set once by the shutdown side."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise Interrupted()

    def sleep(self, seconds: float) -> None:
        """Sleep, but wake up and raise `Interrupted` as soon as the token is cancelled."""
        if self._event.wait(timeout=max(0.0, seconds)):
            raise Interrupted()

    def wait(self, timeout: float | None = None) -> bool:
        return self._event.wait(timeout=timeout)


def run_until_shutdown(
    loop: Callable[[CancellationToken], None],
    *,
    token: CancellationToken | None = None,
    grace_seconds: float = DEFAULT_GRACE_SECONDS,
    name: str = "loop",
) -> bool:
    """Run `loop(token)` on a dedicated thread until it returns or we are told to stop.

    Returns True if the loop thread finished, False if the grace period elapsed
    first.
    """
    token = token or CancellationToken()
    worker = threading.Thread(target=loop, args=(token,), name=name, daemon=True)

    previous = None
    on_main = threading.current_thread() is threading.main_thread()
    if on_main:
        previous = signal.signal(signal.SIGTERM, lambda signum, frame: token.cancel())

    worker.start()
    try:
        # Join in slices so Ctrl+C is delivered to this thread promptly.
        while worker.is_alive() and not token.cancelled:
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        log.info("Interrupted, stopping %s ..", name)
    finally:
        token.cancel()
        worker.join(timeout=grace_seconds)
        if on_main and previous is not None:
            signal.signal(signal.SIGTERM, previous)

    if worker.is_alive():
        log.warning("%s did not stop within %.1fs, exiting anyway", name, grace_seconds)
        return False
    return True
