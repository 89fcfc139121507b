"""Port interface for read-only operational configuration."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ConfigurationPort(ABC):
    @abstractmethod
    async def get_sla_timeout_minutes(self, partner_id: int | None = None) -> int:
        """SLA window in minutes: partner scope, then global scope, then the default."""
        ...

    @abstractmethod
    async def get_sla_notification_recipients(self) -> list[str]:
        """Deduplicated admin + operational team addresses."""
        ...
