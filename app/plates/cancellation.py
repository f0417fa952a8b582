"""Operator interrupt handling for the sequential lookup loop."""
from __future__ import annotations

import signal
import threading
from typing import Any, Callable, Optional

from .utils import log_line


class CancellationToken:
    """Flag set by the interrupt handler and polled by the main loop.

    ``wait`` doubles as the loop's sleep so a cancellation wakes any pending
    delay immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to ``seconds``; return ``True`` if cancelled meanwhile."""

        if seconds is None or seconds <= 0:
            return self.cancelled
        return self._event.wait(seconds)


def install_interrupt_handler(token: CancellationToken) -> Callable[[], None]:
    """Route SIGINT to ``token``; a second SIGINT aborts immediately.

    Returns a callable restoring the previous handler.
    """

    previous: Any = signal.getsignal(signal.SIGINT)

    def _handle(signum: int, frame: Optional[Any]) -> None:
        if token.cancelled:
            raise KeyboardInterrupt
        log_line("[RUN] Graceful shutdown requested; finishing the current plate...")
        token.cancel()

    signal.signal(signal.SIGINT, _handle)

    def _restore() -> None:
        signal.signal(signal.SIGINT, previous)

    return _restore


__all__ = ["CancellationToken", "install_interrupt_handler"]
