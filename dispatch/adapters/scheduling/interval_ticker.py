"""IntervalTicker — fixed-cadence ticks on the asyncio event loop. Implements Ticker."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator

from dispatch.application.ports.ticker import Ticker


class IntervalTicker(Ticker):
    """Yields immediately, then once every ``interval_seconds`` until stopped.

    ``max_ticks`` bounds the number of ticks (None means unbounded).
    """

    def __init__(self, interval_seconds: float, max_ticks: int | None = None):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._interval = interval_seconds
        self._max_ticks = max_ticks
        self._stopped = asyncio.Event()

    async def ticks(self) -> AsyncIterator[int]:
        tick = 0
        while not self._stopped.is_set():
            if self._max_ticks is not None and tick >= self._max_ticks:
                return
            tick += 1
            yield tick
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        self._stopped.set()
