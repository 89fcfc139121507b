"""SlaMonitorUseCase — periodic sweep that revokes assignments past their SLA deadline."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from dispatch.application.ports.ticker import Ticker
from dispatch.application.ports.unit_of_work import UnitOfWork
from dispatch.application.use_cases.notify_transition import TransitionNotifier
from dispatch.application.use_cases.state_machine import RequestStateMachine, utcnow
from dispatch.domain.entities.transition_event import TransitionEvent
from dispatch.domain.errors import ConflictError, RequestNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Summary of one sweep cycle."""

    candidates: int = 0
    expired: int = 0
    skipped: int = 0
    failed: int = 0
    notifications_failed: int = 0
    expired_request_numbers: list[str] = field(default_factory=list)


class SlaMonitorUseCase:
    """Finds expired assignments and forces each through ``timeout_expire``.

    Every candidate is its own unit of work. A candidate that another actor
    resolved first is skipped silently; any other failure is logged and the
    sweep moves on. Timeout notifications are sent here, after the commit,
    so the state machine passed in should not publish events of its own.
    """

    def __init__(
        self,
        state_machine: RequestStateMachine,
        uow_factory: Callable[[], UnitOfWork],
        notifier: TransitionNotifier | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self._machine = state_machine
        self._uow_factory = uow_factory
        self._notifier = notifier
        self._clock = clock

    async def execute(self) -> SweepReport:
        now = self._clock()
        async with self._uow_factory() as uow:
            candidates = await uow.requests.find_expired(now)
        report = SweepReport(candidates=len(candidates))

        for request in candidates:
            try:
                result = await self._machine.timeout_expire(
                    request.id, observed_deadline=request.sla_deadline
                )
            except (ConflictError, RequestNotFoundError):
                report.skipped += 1
                logger.info("Request %s no longer expired, skipping", request.request_number)
                continue
            except Exception:
                report.failed += 1
                logger.exception("Failed to expire request %s", request.request_number)
                continue

            report.expired += 1
            report.expired_request_numbers.append(request.request_number)
            if not await self._notify(result.event):
                report.notifications_failed += 1

        if report.candidates:
            logger.info(
                "SLA sweep: %d candidates, %d expired, %d skipped, %d failed",
                report.candidates, report.expired, report.skipped, report.failed,
            )
        return report

    async def sweep(self, timeout_seconds: float | None = None) -> SweepReport:
        """Run one cycle, abandoning it after *timeout_seconds*.

        Requests already expired stay expired; the rest are picked up next cycle.
        """
        if timeout_seconds is None:
            return await self.execute()
        return await asyncio.wait_for(self.execute(), timeout=timeout_seconds)

    async def run(self, ticker: Ticker, timeout_seconds: float | None = None) -> None:
        """Sweep on every tick until the ticker stops."""
        async for tick in ticker.ticks():
            try:
                await self.sweep(timeout_seconds)
            except asyncio.TimeoutError:
                logger.warning("SLA sweep #%d timed out after %ss", tick, timeout_seconds)
            except Exception:
                logger.exception("SLA sweep #%d failed", tick)

    async def _notify(self, event: TransitionEvent | None) -> bool:
        if self._notifier is None or event is None:
            return True
        try:
            reports = await self._notifier.notify(event)
        except Exception:
            logger.exception("Failed to send SLA timeout notification for %s", event.request_number)
            return False
        return all(r.success for r in reports)
