"""
Fixed-window rate limiting keyed by client identifier.

State lives in process memory only; separate processes keep separate counts.
"""

import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass

UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitWindow:
    count: int
    reset_at: float


class RateLimiter:
    """
    Allows at most ``max_requests`` per client in each fixed window.

    Expired windows are swept at most once per window length, so the table
    holds only clients seen recently.
    """

    def __init__(
        self,
        max_requests: int = 10,
        window: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_requests = max_requests
        self.window = window
        self._clock = clock
        self._windows: dict[str, RateLimitWindow] = {}
        self._next_sweep = clock() + window

    @property
    def tracked_clients(self) -> int:
        return len(self._windows)

    def allow(self, client_id: str) -> bool:
        """Record a request from ``client_id`` and report whether it may proceed."""
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        current = self._windows.get(client_id)

        if current is None or now > current.reset_at:
            self._windows[client_id] = RateLimitWindow(count=1, reset_at=now + self.window)
            return True

        if current.count >= self.max_requests:
            return False

        current.count += 1
        return True

    def _sweep(self, now: float) -> None:
        expired = [key for key, entry in self._windows.items() if now > entry.reset_at]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window


def client_id_from_headers(headers: Mapping[str, str]) -> str:
    """
    Derive a client identifier from proxy headers.

    Clients without forwarding headers all share the ``"unknown"`` bucket.
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip.strip()

    return UNKNOWN_CLIENT
