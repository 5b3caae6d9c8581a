from __future__ import annotations

import time


class Timer:
    """One-shot deadline timer bounding a blocking receive.

    ``start`` returns the timer itself as the handle. The receive loop asks
    for ``remaining()`` and uses it as the socket timeout, so a ``recvfrom``
    that is waiting when the deadline passes is interrupted by the socket
    layer rather than by a signal.

    Calling ``start`` again without ``stop`` is a caller bug: the old
    deadline is silently replaced.
    """

    __slots__ = ("_deadline",)

    def __init__(self) -> None:
        self._deadline: float | None = None

    @property
    def armed(self) -> bool:
        return self._deadline is not None

    def start(self, duration_ms: int) -> "Timer":
        self._deadline = time.monotonic() + duration_ms / 1000.0
        return self

    def stop(self) -> None:
        self._deadline = None

    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float:
        """Seconds until the deadline; 0.0 when expired or not armed."""
        if self._deadline is None:
            return 0.0
        return max(0.0, self._deadline - time.monotonic())
