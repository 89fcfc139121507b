"""Tests for SlaMonitorUseCase — the periodic SLA sweep."""

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from dispatch.adapters.scheduling.interval_ticker import IntervalTicker
from dispatch.application.use_cases.dispatch_notification import NotificationDispatcher
from dispatch.application.use_cases.notify_transition import TransitionNotifier
from dispatch.application.use_cases.sla_monitor import SlaMonitorUseCase
from dispatch.domain.value_objects.enums import (
    AssignmentResponse,
    NotificationTemplate,
    RequestStatus,
)
from fakes import (
    OPS_EMAILS,
    PARTNER_ID,
    PARTNER_USER_ID,
    FakeConfiguration,
    FakeDirectory,
    FakeMailTransport,
    RecordingRenderer,
    assigned,
    entries_with,
    make_machine,
    uow_factory,
)


def _monitor(machine, store, clock, transport=None, configuration=None, directory=None):
    notifier = TransitionNotifier(
        directory or FakeDirectory(),
        configuration or FakeConfiguration(),
        NotificationDispatcher(RecordingRenderer(), transport or FakeMailTransport()),
    )
    return SlaMonitorUseCase(machine, uow_factory(store), notifier, clock=clock)


@pytest.fixture
def quiet_machine(store, clock, configuration, directory):
    return make_machine(store, clock, configuration, directory, events=None)


@pytest.mark.asyncio
async def test_sweep_expires_overdue_assignment(quiet_machine, store, clock):
    transport = FakeMailTransport()
    request_id = await assigned(quiet_machine)
    log_size = len(store.log)
    clock.advance(minutes=25)

    report = await _monitor(quiet_machine, store, clock, transport).execute()

    request = store.requests[request_id]
    assert request.status == RequestStatus.UNASSIGNED
    assert (request.partner_id, request.branch_id, request.sla_deadline) == (None, None, None)
    assert len(entries_with(store, request_id, AssignmentResponse.TIMEOUT)) == 1
    assert len(store.log) == log_size + 1
    assert sorted(to for to, _ in transport.sent) == sorted(OPS_EMAILS)
    assert report.expired == 1
    assert report.expired_request_numbers == [request.request_number]
    assert report.notifications_failed == 0


@pytest.mark.asyncio
async def test_second_sweep_expires_nothing(quiet_machine, store, clock):
    await assigned(quiet_machine)
    await assigned(quiet_machine)
    clock.advance(minutes=16)
    monitor = _monitor(quiet_machine, store, clock)

    first = await monitor.execute()
    second = await monitor.execute()

    assert first.expired == 2
    assert second.candidates == 0
    assert second.expired == 0
    assert len([e for e in store.ledger if e.response == AssignmentResponse.TIMEOUT]) == 2


@pytest.mark.asyncio
async def test_sweep_leaves_fresh_assignments(quiet_machine, store, clock):
    request_id = await assigned(quiet_machine)
    clock.advance(minutes=10)
    report = await _monitor(quiet_machine, store, clock).execute()
    assert report.candidates == 0
    assert store.requests[request_id].status == RequestStatus.ASSIGNED


class _PartnerAnswersFirst:
    """Accepts the request between the sweep's read and its timeout attempt."""

    def __init__(self, machine):
        self._machine = machine

    async def timeout_expire(self, request_id, observed_deadline=None):
        await self._machine.accept(request_id, PARTNER_ID, PARTNER_USER_ID)
        return await self._machine.timeout_expire(request_id, observed_deadline)


@pytest.mark.asyncio
async def test_candidate_resolved_concurrently_is_skipped(quiet_machine, store, clock):
    request_id = await assigned(quiet_machine)
    clock.advance(minutes=20)
    monitor = SlaMonitorUseCase(_PartnerAnswersFirst(quiet_machine), uow_factory(store), clock=clock)

    report = await monitor.execute()

    assert (report.candidates, report.expired, report.skipped, report.failed) == (1, 0, 1, 0)
    assert store.requests[request_id].status == RequestStatus.CONFIRMED


class _Flaky:
    def __init__(self, machine, broken_id):
        self._machine = machine
        self._broken_id = broken_id

    async def timeout_expire(self, request_id, observed_deadline=None):
        if request_id == self._broken_id:
            raise RuntimeError("connection reset")
        return await self._machine.timeout_expire(request_id, observed_deadline)


@pytest.mark.asyncio
async def test_one_failure_does_not_stop_the_sweep(quiet_machine, store, clock):
    broken = await assigned(quiet_machine)
    healthy = await assigned(quiet_machine)
    clock.advance(minutes=20)
    monitor = SlaMonitorUseCase(_Flaky(quiet_machine, broken), uow_factory(store), clock=clock)

    report = await monitor.execute()

    assert report.failed == 1
    assert report.expired == 1
    assert store.requests[healthy].status == RequestStatus.UNASSIGNED
    assert store.requests[broken].status == RequestStatus.ASSIGNED


@pytest.mark.asyncio
async def test_notification_failure_keeps_the_timeout(quiet_machine, store, clock):
    transport = FakeMailTransport(undeliverable={OPS_EMAILS[1]})
    request_id = await assigned(quiet_machine)
    clock.advance(minutes=20)

    report = await _monitor(quiet_machine, store, clock, transport).execute()

    assert report.expired == 1
    assert report.notifications_failed == 1
    assert [to for to, _ in transport.sent] == [OPS_EMAILS[0]]
    assert store.requests[request_id].status == RequestStatus.UNASSIGNED


@pytest.mark.asyncio
async def test_timeout_notification_uses_sla_template(quiet_machine, store, clock):
    renderer = RecordingRenderer()
    notifier = TransitionNotifier(
        FakeDirectory(), FakeConfiguration(),
        NotificationDispatcher(renderer, FakeMailTransport()),
    )
    await assigned(quiet_machine)
    clock.advance(minutes=20)
    await SlaMonitorUseCase(quiet_machine, uow_factory(store), notifier, clock=clock).execute()

    assert renderer.calls == [(NotificationTemplate.SLA_TIMEOUT, None)]


class _Slow:
    async def timeout_expire(self, request_id, observed_deadline=None):
        await asyncio.sleep(5)


@pytest.mark.asyncio
async def test_sweep_timeout_abandons_cycle(quiet_machine, store, clock):
    await assigned(quiet_machine)
    clock.advance(minutes=20)
    monitor = SlaMonitorUseCase(_Slow(), uow_factory(store), clock=clock)

    with pytest.raises(asyncio.TimeoutError):
        await monitor.sweep(timeout_seconds=0.05)


@pytest.mark.asyncio
async def test_run_sweeps_on_every_tick(quiet_machine, store, clock):
    first = await assigned(quiet_machine)
    clock.advance(minutes=20)
    monitor = _monitor(quiet_machine, store, clock)

    await monitor.run(IntervalTicker(0.01, max_ticks=2), timeout_seconds=1)

    assert store.requests[first].status == RequestStatus.UNASSIGNED
    assert len(entries_with(store, first, AssignmentResponse.TIMEOUT)) == 1


@pytest.mark.asyncio
async def test_run_survives_timed_out_cycle(quiet_machine, store, clock):
    await assigned(quiet_machine)
    clock.advance(minutes=20)
    monitor = SlaMonitorUseCase(_Slow(), uow_factory(store), clock=clock)

    await monitor.run(IntervalTicker(0.01, max_ticks=2), timeout_seconds=0.02)


@pytest.mark.asyncio
async def test_observed_deadline_is_passed_through(quiet_machine, store, clock):
    request_id = await assigned(quiet_machine)
    deadline = store.requests[request_id].sla_deadline
    seen = []

    class _Spy:
        async def timeout_expire(self, rid, observed_deadline=None):
            seen.append((rid, observed_deadline))
            return await quiet_machine.timeout_expire(rid, observed_deadline)

    clock.advance(minutes=16)
    await SlaMonitorUseCase(_Spy(), uow_factory(store), clock=clock).execute()
    assert seen == [(request_id, deadline)]
    assert deadline == clock.now - timedelta(minutes=1)
