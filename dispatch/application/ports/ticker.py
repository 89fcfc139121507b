"""Port interface for the periodic trigger that drives the SLA sweep."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class Ticker(ABC):
    @abstractmethod
    def ticks(self) -> AsyncIterator[int]:
        """Yield a tick number each period until stopped."""
        ...

    @abstractmethod
    def stop(self) -> None:
        ...
