"""Concurrent and randomized transition sequences against the in-memory store."""

from __future__ import annotations

import asyncio
import random

import pytest

from dispatch.domain.errors import ConflictError
from dispatch.domain.value_objects.enums import AssignmentResponse, RequestStatus
from fakes import (
    ADMIN_ID,
    BRANCH_ID,
    OTHER_BRANCH_ID,
    OTHER_PARTNER_ID,
    PARTNER_ID,
    PARTNER_USER_ID,
    assigned,
    open_entries,
    submitted,
)

PARTNERS = [(PARTNER_ID, BRANCH_ID), (OTHER_PARTNER_ID, OTHER_BRANCH_ID)]


def _attempts(machine, request_id, n):
    ops = [
        lambda: machine.accept(request_id, PARTNER_ID, PARTNER_USER_ID),
        lambda: machine.reject(request_id, PARTNER_ID, "Out of capacity", PARTNER_USER_ID),
        lambda: machine.timeout_expire(request_id),
    ]
    return [ops[i % len(ops)]() for i in range(n)]


@pytest.mark.asyncio
@pytest.mark.parametrize("n", [2, 3, 9])
async def test_one_resolution_per_assignment_episode(machine, store, clock, n):
    request_id = await assigned(machine)
    clock.advance(minutes=25)
    log_size = len(store.log)

    results = await asyncio.gather(*_attempts(machine, request_id, n), return_exceptions=True)

    successes = [r for r in results if not isinstance(r, BaseException)]
    conflicts = [r for r in results if isinstance(r, ConflictError)]
    assert len(successes) == 1
    assert len(conflicts) == n - 1
    assert len(store.log) == log_size + 1
    assert open_entries(store, request_id) == []
    assert len([e for e in store.ledger if e.request_id == request_id]) == 1
    assert store.requests[request_id].invariant_violations() == []


@pytest.mark.asyncio
async def test_concurrent_assigns_only_one_wins(machine, store):
    request_id = await submitted(machine)

    results = await asyncio.gather(
        machine.assign(request_id, PARTNER_ID, BRANCH_ID, ADMIN_ID),
        machine.assign(request_id, OTHER_PARTNER_ID, OTHER_BRANCH_ID, ADMIN_ID + 1),
        return_exceptions=True,
    )

    assert sum(isinstance(r, ConflictError) for r in results) == 1
    assert len(open_entries(store, request_id)) == 1
    assert store.requests[request_id].partner_id == open_entries(store, request_id)[0].partner_id


@pytest.mark.asyncio
async def test_wrong_partner_reject_changes_nothing(machine, store):
    request_id = await assigned(machine)
    before = (dict(vars(store.requests[request_id])), list(store.ledger), list(store.log))

    with pytest.raises(ConflictError):
        await machine.reject(request_id, OTHER_PARTNER_ID, "Not ours", PARTNER_USER_ID)

    assert (dict(vars(store.requests[request_id])), list(store.ledger), list(store.log)) == before


async def _random_step(machine, clock, rng, request_id, status) -> bool:
    """Apply one valid transition; return True when it left ``assigned``."""
    if status in (RequestStatus.SUBMITTED, RequestStatus.REJECTED, RequestStatus.UNASSIGNED):
        await machine.assign(request_id, *rng.choice(PARTNERS), ADMIN_ID)
        return False
    if status == RequestStatus.ASSIGNED:
        request = await machine.get(request_id)
        choice = rng.choice(["accept", "reject", "timeout"])
        if choice == "accept":
            await machine.accept(request_id, request.partner_id, PARTNER_USER_ID)
        elif choice == "reject":
            await machine.reject(request_id, request.partner_id, "No capacity", PARTNER_USER_ID)
        else:
            clock.advance(minutes=61)
            await machine.timeout_expire(request_id)
        return True
    nxt = {
        RequestStatus.CONFIRMED: "in_progress",
        RequestStatus.IN_PROGRESS: "completed",
        RequestStatus.COMPLETED: "closed",
    }[status]
    await machine.advance(request_id, nxt, ADMIN_ID)
    return False


@pytest.mark.asyncio
@pytest.mark.parametrize("seed", [1, 7, 42, 2026])
async def test_random_sequences_keep_invariants(machine, store, clock, seed):
    rng = random.Random(seed)
    ids = [await submitted(machine) for _ in range(4)]
    left_assigned = {request_id: 0 for request_id in ids}

    for _ in range(60):
        request_id = rng.choice(ids)
        status = store.requests[request_id].status
        if status == RequestStatus.CLOSED:
            with pytest.raises(ConflictError):
                await machine.assign(request_id, PARTNER_ID, BRANCH_ID, ADMIN_ID)
            continue
        if await _random_step(machine, clock, rng, request_id, status):
            left_assigned[request_id] += 1
        clock.advance(seconds=rng.randint(1, 90))

        for rid in ids:
            request = store.requests[rid]
            assert request.invariant_violations() == []
            assert (request.sla_deadline is not None) == (request.status == RequestStatus.ASSIGNED)
            resolved = [
                e for e in store.ledger
                if e.request_id == rid and e.response != AssignmentResponse.PENDING
            ]
            assert len(resolved) == left_assigned[rid]
            assert len(open_entries(store, rid)) <= 1
