"""SqlConfigurationProvider — SLA settings from the configurations table, env as fallback."""

from __future__ import annotations

import logging
import time

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dispatch.adapters.persistence.models import ConfigurationModel
from dispatch.application.ports.configuration import ConfigurationPort
from dispatch.config import Settings, split_emails
from dispatch.domain.policies.sla_deadline import parse_timeout_minutes
from dispatch.domain.value_objects.enums import ConfigScope

logger = logging.getLogger(__name__)

SLA_TIMEOUT_KEY = "sla_timeout_minutes"
ADMIN_EMAILS_KEY = "admin_notification_emails"
OPERATIONAL_EMAILS_KEY = "operational_team_emails"


class SqlConfigurationProvider(ConfigurationPort):
    """Reads active configuration rows, caching each lookup for ``ttl_seconds``.

    Values are looked up partner scope first, then global scope; anything
    missing or invalid falls back to the environment settings.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
        ttl_seconds: float = 60.0,
    ):
        self._session_factory = session_factory
        self._settings = settings
        self._ttl = ttl_seconds
        self._cache: dict[tuple[str, int | None], tuple[float, str | None]] = {}

    async def get_sla_timeout_minutes(self, partner_id: int | None = None) -> int:
        maximum = self._settings.max_sla_timeout_minutes
        if partner_id is not None:
            value = parse_timeout_minutes(
                await self._get_value(SLA_TIMEOUT_KEY, partner_id), maximum
            )
            if value is not None:
                return value
        value = parse_timeout_minutes(await self._get_value(SLA_TIMEOUT_KEY), maximum)
        if value is not None:
            return value
        return self._settings.default_sla_timeout_minutes

    async def get_sla_notification_recipients(self) -> list[str]:
        admins = await self._get_value(ADMIN_EMAILS_KEY)
        operational = await self._get_value(OPERATIONAL_EMAILS_KEY)
        if admins is None:
            admins = self._settings.admin_email
        if operational is None:
            operational = self._settings.operational_team_emails

        recipients: list[str] = []
        seen: set[str] = set()
        for address in split_emails(admins) + split_emails(operational):
            if address.lower() not in seen:
                seen.add(address.lower())
                recipients.append(address)
        return recipients

    def invalidate(self) -> None:
        self._cache.clear()

    async def _get_value(self, key: str, partner_id: int | None = None) -> str | None:
        cache_key = (key, partner_id)
        cached = self._cache.get(cache_key)
        if cached and time.monotonic() - cached[0] < self._ttl:
            return cached[1]

        stmt = select(ConfigurationModel.value).where(
            ConfigurationModel.key == key,
            ConfigurationModel.is_active.is_(True),
        )
        if partner_id is None:
            stmt = stmt.where(ConfigurationModel.scope == ConfigScope.GLOBAL.value)
        else:
            stmt = stmt.where(
                ConfigurationModel.scope == ConfigScope.PARTNER.value,
                ConfigurationModel.partner_id == partner_id,
            )
        async with self._session_factory() as session:
            result = await session.execute(stmt.limit(1))
            value = result.scalar_one_or_none()

        logger.debug("Config %s (partner=%s) = %r", key, partner_id, value)
        self._cache[cache_key] = (time.monotonic(), value)
        return value
