"""Port interface for outbound mail."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dispatch.domain.entities.notification import MailDelivery


class MailTransport(ABC):
    @abstractmethod
    async def send(self, to: str, subject: str, html_body: str, text_body: str) -> MailDelivery:
        """Send one message. May raise on transport faults; callers catch."""
        ...
