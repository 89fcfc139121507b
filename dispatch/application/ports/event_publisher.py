"""Port interface for the transition event channel."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dispatch.domain.entities.transition_event import TransitionEvent


class EventPublisher(ABC):
    @abstractmethod
    def publish(self, event: TransitionEvent) -> None:
        """Hand off *event* without blocking. Must not raise."""
        ...
