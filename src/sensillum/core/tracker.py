"""Connection concurrency tracking.

``ConnectionTracker`` holds the only mutable state shared between
connections: the number of currently open connections and the highest value
seen since the last report. All updates happen on the event loop thread in
single, non-awaiting steps, so no lock is involved.
"""

import asyncio
import logging
from typing import Any

logger = logging.getLogger(__name__)


class ConnectionLease:
    """One counted connection. Releasing it more than once has no effect."""

    def __init__(self, tracker: "ConnectionTracker"):
        self._tracker = tracker
        self._released = False

    @property
    def released(self) -> bool:
        return self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._tracker._close()


class ConnectionTracker:
    """Active and peak connection counters."""

    def __init__(self) -> None:
        self._active = 0
        self._peak = 0
        self._handoffs: dict[Any, ConnectionLease] = {}

    @property
    def active(self) -> int:
        return self._active

    @property
    def peak(self) -> int:
        return self._peak

    def acquire(self) -> ConnectionLease:
        """Count a newly opened connection."""
        self._active += 1
        self._peak = max(self._peak, self._active)
        return ConnectionLease(self)

    def _close(self) -> None:
        self._active = max(self._active - 1, 0)

    def take_peak(self) -> int:
        """Return the peak since the previous call and reset it to zero."""
        peak, self._peak = self._peak, 0
        return peak

    def hand_off(self, transport: Any, lease: ConnectionLease) -> None:
        """Park a lease for the next protocol instance serving ``transport``.

        Used when a connection switches protocols (HTTP/1.1 to WebSocket) so
        that it keeps being counted once.
        """
        self._handoffs[transport] = lease

    def claim(self, transport: Any) -> ConnectionLease:
        """Take over a parked lease for ``transport`` or count a new connection."""
        lease = self._handoffs.pop(transport, None)
        if lease is not None and not lease.released:
            return lease
        return self.acquire()


async def report_peak_connections(
    tracker: ConnectionTracker, interval: float = 60.0
) -> None:
    """Log the peak connection count once per ``interval`` seconds, forever."""
    while True:
        await asyncio.sleep(interval)
        peak = tracker.take_peak()
        logger.info(
            f"Peak connections in the last {interval:g}s: {peak} "
            f"(currently active: {tracker.active})"
        )
