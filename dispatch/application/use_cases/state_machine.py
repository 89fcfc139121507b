"""RequestStateMachine — every status change of a service request goes through here.

Each transition runs in one unit of work:
1. Pre-read the request (unknown id -> RequestNotFoundError)
2. Check the precondition against what was read (fails fast with ConflictError)
3. Guarded update: the same precondition is re-evaluated by the store in a
   single conditional write, so a concurrent transition that slipped in
   between step 1 and step 3 makes this one match zero rows -> ConflictError
4. Resolve or open the assignment ledger entry, append the status log row
5. Commit, then publish a TransitionEvent for the notification side
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone

from dispatch.application.ports.configuration import ConfigurationPort
from dispatch.application.ports.directory import DirectoryPort
from dispatch.application.ports.event_publisher import EventPublisher
from dispatch.application.ports.request_repo import RequestNumberTaken
from dispatch.application.ports.unit_of_work import UnitOfWork
from dispatch.domain.entities.assignment import Assignment
from dispatch.domain.entities.service_request import EPISODE_FIELDS, ServiceRequest
from dispatch.domain.entities.status_log import StatusLogEntry
from dispatch.domain.entities.transition_event import TransitionEvent
from dispatch.domain.errors import ConflictError, RequestNotFoundError, ValidationError
from dispatch.domain.policies.sla_deadline import (
    compute_deadline,
    episode_minutes,
    timeout_log_note,
    timeout_reason,
)
from dispatch.domain.policies.transitions import (
    ADVANCE_PREDECESSOR,
    ADVANCE_TIMESTAMP_FIELD,
    ASSIGNABLE_FROM,
    parse_advance_target,
)
from dispatch.domain.value_objects.enums import (
    AssignmentResponse,
    RequestStatus,
    TransitionKind,
)
from dispatch.domain.value_objects.request_guard import RequestGuard

logger = logging.getLogger(__name__)

SYSTEM_ACTOR_ID = 1
REQUEST_NUMBER_ATTEMPTS = 5
NOT_AVAILABLE = "This request is no longer available to you"

_ADVANCE_KIND = {
    RequestStatus.IN_PROGRESS: TransitionKind.IN_PROGRESS,
    RequestStatus.COMPLETED: TransitionKind.COMPLETED,
    RequestStatus.CLOSED: TransitionKind.CLOSED,
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _cleared_episode() -> dict:
    changes = {name: None for name in EPISODE_FIELDS}
    changes["sla_deadline"] = None
    return changes


@dataclass
class TransitionResult:
    """The request as committed, plus the event describing what happened."""

    request: ServiceRequest
    event: TransitionEvent | None = None


class RequestStateMachine:
    """Validates and applies request transitions atomically."""

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork],
        configuration: ConfigurationPort,
        directory: DirectoryPort,
        events: EventPublisher | None = None,
        clock: Callable[[], datetime] = utcnow,
        system_actor_id: int = SYSTEM_ACTOR_ID,
    ):
        self._uow_factory = uow_factory
        self._config = configuration
        self._directory = directory
        self._events = events
        self._clock = clock
        self._system_actor_id = system_actor_id

    @property
    def system_actor_id(self) -> int:
        return self._system_actor_id

    # ─── Transitions ─────────────────────────────────────────────────

    async def submit(
        self,
        customer_id: int,
        category_id: int,
        pickup_option_id: int,
        service_id: int | None = None,
        notes: str | None = None,
    ) -> TransitionResult:
        if await self._directory.get_customer(customer_id) is None:
            raise ValidationError(f"Customer {customer_id} does not exist")
        if await self._directory.get_category(category_id) is None:
            raise ValidationError(f"Category {category_id} does not exist")
        if service_id is not None:
            service = await self._directory.get_service(service_id)
            if service is None or service.category_id != category_id:
                raise ValidationError(
                    f"Service {service_id} does not belong to category {category_id}"
                )

        now = self._clock()
        draft = ServiceRequest(
            id=None,
            request_number="",
            customer_id=customer_id,
            category_id=category_id,
            pickup_option_id=pickup_option_id,
            service_id=service_id,
            status=RequestStatus.SUBMITTED,
            submitted_at=now,
            notes=notes,
            updated_at=now,
            updated_by_id=customer_id,
        )
        for attempt in range(1, REQUEST_NUMBER_ATTEMPTS + 1):
            try:
                request = await self._insert_submitted(replace(draft))
                break
            except RequestNumberTaken as exc:
                logger.info("Request number %s already taken (attempt %d)", exc, attempt)
        else:
            raise ConflictError("Could not allocate a request number, please try again")

        logger.info("Request %s submitted by customer %s", request.request_number, customer_id)
        event = TransitionEvent.from_request(TransitionKind.SUBMITTED, request, customer_id, now)
        self._publish(event)
        return TransitionResult(request, event)

    async def assign(
        self,
        request_id: int,
        partner_id: int,
        branch_id: int,
        assigner_id: int,
    ) -> TransitionResult:
        partner = await self._directory.get_partner(partner_id)
        if partner is None:
            raise ValidationError(f"Partner {partner_id} does not exist")
        branch = await self._directory.get_branch(branch_id)
        if branch is None or branch.partner_id != partner_id:
            raise ValidationError(f"Branch {branch_id} does not belong to partner {partner_id}")

        timeout_minutes = await self._config.get_sla_timeout_minutes(partner_id)
        now = self._clock()
        deadline = compute_deadline(now, timeout_minutes)

        async with self._uow_factory() as uow:
            current = await self._load(uow, request_id)
            if current.status not in ASSIGNABLE_FROM:
                raise ConflictError(
                    f"Request cannot be assigned while {current.status.value}",
                    request_id,
                    current.status.value,
                )

            applied = await uow.requests.apply_guarded(
                request_id,
                RequestGuard(statuses=ASSIGNABLE_FROM),
                {
                    "status": RequestStatus.ASSIGNED,
                    "partner_id": partner_id,
                    "branch_id": branch_id,
                    "assigned_by_user_id": assigner_id,
                    "assigned_at": now,
                    "sla_deadline": deadline,
                    "updated_at": now,
                    "updated_by_id": assigner_id,
                },
            )
            if not applied:
                raise self._moved_on(request_id, "Request was assigned by someone else")

            await uow.ledger.open_entry(
                Assignment(
                    id=None,
                    request_id=request_id,
                    partner_id=partner_id,
                    branch_id=branch_id,
                    assigned_by_user_id=assigner_id,
                    assigned_at=now,
                )
            )
            verb = "Assigned" if current.status == RequestStatus.SUBMITTED else "Reassigned"
            await self._log(
                uow, request_id, RequestStatus.ASSIGNED, assigner_id, now,
                f"{verb} to {partner.name} - {branch.name}",
            )
            updated = await uow.requests.get_by_id(request_id)

        logger.info(
            "Request %s assigned to partner %s branch %s, SLA %d min (deadline %s)",
            updated.request_number, partner_id, branch_id, timeout_minutes, deadline.isoformat(),
        )
        event = TransitionEvent.from_request(
            TransitionKind.ASSIGNED, updated, assigner_id, now, timeout_minutes=timeout_minutes
        )
        self._publish(event)
        return TransitionResult(updated, event)

    async def accept(
        self,
        request_id: int,
        partner_id: int,
        actor_id: int,
    ) -> TransitionResult:
        """Partner confirms the request it was assigned.

        ``actor_id`` is the acting partner user and is written to the
        status log.
        """
        now = self._clock()

        async with self._uow_factory() as uow:
            current = await self._load(uow, request_id)
            self._require_assigned_to(current, partner_id)

            applied = await uow.requests.apply_guarded(
                request_id,
                RequestGuard.status_in(
                    RequestStatus.ASSIGNED,
                    partner_id=partner_id,
                    sla_deadline=current.sla_deadline,
                ),
                {
                    "status": RequestStatus.CONFIRMED,
                    "confirmed_at": now,
                    "sla_deadline": None,
                    "updated_at": now,
                    "updated_by_id": actor_id,
                },
            )
            if not applied:
                raise self._moved_on(request_id)
            closed = await uow.ledger.close_open(
                request_id, AssignmentResponse.CONFIRMED, now, partner_id=partner_id
            )
            if not closed:
                raise self._moved_on(request_id)

            await self._log(
                uow, request_id, RequestStatus.CONFIRMED, actor_id, now, "Accepted by partner"
            )
            updated = await uow.requests.get_by_id(request_id)

        logger.info("Request %s accepted by partner %s", updated.request_number, partner_id)
        event = TransitionEvent.from_request(
            TransitionKind.ACCEPTED, updated, actor_id, now, sla_deadline=current.sla_deadline
        )
        self._publish(event)
        return TransitionResult(updated, event)

    async def reject(
        self,
        request_id: int,
        partner_id: int,
        reason: str,
        actor_id: int,
    ) -> TransitionResult:
        reason = (reason or "").strip()
        if not reason:
            raise ValidationError("A rejection reason is required")
        now = self._clock()

        async with self._uow_factory() as uow:
            current = await self._load(uow, request_id)
            self._require_assigned_to(current, partner_id)

            changes = _cleared_episode()
            changes.update(
                status=RequestStatus.REJECTED,
                rejected_at=now,
                updated_at=now,
                updated_by_id=actor_id,
            )
            applied = await uow.requests.apply_guarded(
                request_id,
                RequestGuard.status_in(
                    RequestStatus.ASSIGNED,
                    partner_id=partner_id,
                    sla_deadline=current.sla_deadline,
                ),
                changes,
            )
            if not applied:
                raise self._moved_on(request_id)
            closed = await uow.ledger.close_open(
                request_id, AssignmentResponse.REJECTED, now, reason, partner_id=partner_id
            )
            if not closed:
                raise self._moved_on(request_id)

            await self._log(
                uow, request_id, RequestStatus.REJECTED, actor_id, now, f"Rejected by partner: {reason}"
            )
            updated = await uow.requests.get_by_id(request_id)

        logger.info("Request %s rejected by partner %s", updated.request_number, partner_id)
        event = TransitionEvent.from_request(
            TransitionKind.REJECTED, updated, actor_id, now,
            partner_id=current.partner_id,
            branch_id=current.branch_id,
            assigned_at=current.assigned_at,
            sla_deadline=current.sla_deadline,
            reason=reason,
        )
        self._publish(event)
        return TransitionResult(updated, event)

    async def advance(
        self,
        request_id: int,
        new_status: RequestStatus | str,
        actor_id: int,
        notes: str | None = None,
    ) -> TransitionResult:
        """Move a confirmed request forward: in_progress, completed, closed."""
        try:
            target = parse_advance_target(new_status)
        except ValueError as exc:
            raise ValidationError(str(exc)) from None
        predecessor = ADVANCE_PREDECESSOR[target]
        now = self._clock()

        async with self._uow_factory() as uow:
            current = await self._load(uow, request_id)
            if current.status != predecessor:
                raise ConflictError(
                    f"Cannot move request from {current.status.value} to {target.value}",
                    request_id,
                    current.status.value,
                )

            changes = {
                "status": target,
                ADVANCE_TIMESTAMP_FIELD[target]: now,
                "updated_at": now,
                "updated_by_id": actor_id,
            }
            if target == RequestStatus.CLOSED:
                changes["closed_by_user_id"] = actor_id
            applied = await uow.requests.apply_guarded(
                request_id, RequestGuard.status_in(predecessor), changes
            )
            if not applied:
                raise self._moved_on(request_id, "Request status changed, please refresh")

            await self._log(uow, request_id, target, actor_id, now, notes)
            updated = await uow.requests.get_by_id(request_id)

        logger.info("Request %s moved to %s by %s", updated.request_number, target.value, actor_id)
        event = TransitionEvent.from_request(_ADVANCE_KIND[target], updated, actor_id, now, notes=notes)
        self._publish(event)
        return TransitionResult(updated, event)

    async def close(
        self,
        request_id: int,
        actor_id: int,
        notes: str | None = None,
    ) -> TransitionResult:
        return await self.advance(
            request_id,
            RequestStatus.CLOSED,
            actor_id,
            notes or "Request closed after customer verification",
        )

    async def timeout_expire(
        self,
        request_id: int,
        observed_deadline: datetime | None = None,
    ) -> TransitionResult:
        """Revoke an assignment whose SLA deadline has passed.

        When *observed_deadline* is given the request must still carry that
        exact deadline, so a request re-assigned after it was observed is
        left alone.
        """
        now = self._clock()

        async with self._uow_factory() as uow:
            current = await self._load(uow, request_id)
            if not current.is_sla_expired(now) or (
                observed_deadline is not None and current.sla_deadline != observed_deadline
            ):
                raise ConflictError(
                    "Request is not awaiting an expired partner response",
                    request_id,
                    current.status.value,
                )

            minutes = episode_minutes(current.assigned_at, current.sla_deadline)
            reason = timeout_reason(minutes)
            changes = _cleared_episode()
            changes.update(
                status=RequestStatus.UNASSIGNED,
                updated_at=now,
                updated_by_id=self._system_actor_id,
            )
            applied = await uow.requests.apply_guarded(
                request_id,
                RequestGuard.status_in(
                    RequestStatus.ASSIGNED,
                    sla_deadline=current.sla_deadline,
                    deadline_before=now,
                ),
                changes,
            )
            if not applied:
                raise self._moved_on(request_id, "Request was resolved before it timed out")
            closed = await uow.ledger.close_open(
                request_id, AssignmentResponse.TIMEOUT, now, reason, partner_id=current.partner_id
            )
            if not closed:
                raise self._moved_on(request_id, "Assignment was resolved before it timed out")

            await self._log(
                uow, request_id, RequestStatus.UNASSIGNED, self._system_actor_id, now,
                timeout_log_note(minutes),
            )
            updated = await uow.requests.get_by_id(request_id)

        logger.info(
            "Request %s unassigned from partner %s after SLA timeout",
            updated.request_number, current.partner_id,
        )
        event = TransitionEvent.from_request(
            TransitionKind.TIMED_OUT, updated, self._system_actor_id, now,
            partner_id=current.partner_id,
            branch_id=current.branch_id,
            assigned_at=current.assigned_at,
            sla_deadline=current.sla_deadline,
            timeout_minutes=minutes,
            reason=reason,
        )
        self._publish(event)
        return TransitionResult(updated, event)

    async def rate(
        self,
        request_id: int,
        customer_id: int,
        rating: int,
        feedback: str | None = None,
    ) -> TransitionResult:
        """Record customer feedback on a completed request. Not a status change."""
        if isinstance(rating, bool) or not isinstance(rating, int) or not 1 <= rating <= 5:
            raise ValidationError("Rating must be an integer between 1 and 5")
        now = self._clock()

        async with self._uow_factory() as uow:
            current = await self._load(uow, request_id)
            if current.customer_id != customer_id:
                raise ValidationError("Only the requesting customer can rate this request")
            if current.status != RequestStatus.COMPLETED:
                raise ConflictError(
                    "Only completed requests can be rated", request_id, current.status.value
                )
            applied = await uow.requests.apply_guarded(
                request_id,
                RequestGuard.status_in(RequestStatus.COMPLETED, customer_id=customer_id),
                {
                    "rating": rating,
                    "feedback": feedback,
                    "rated_at": now,
                    "updated_at": now,
                    "updated_by_id": customer_id,
                },
            )
            if not applied:
                raise self._moved_on(request_id, "Request status changed, please refresh")
            updated = await uow.requests.get_by_id(request_id)

        logger.info("Request %s rated %d by customer %s", updated.request_number, rating, customer_id)
        return TransitionResult(updated)

    # ─── Reads ───────────────────────────────────────────────────────

    async def get(self, request_id: int) -> ServiceRequest:
        async with self._uow_factory() as uow:
            return await self._load(uow, request_id)

    async def list(
        self,
        status: RequestStatus | None = None,
        partner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ServiceRequest]:
        async with self._uow_factory() as uow:
            return await uow.requests.list(status, partner_id, limit, offset)

    async def unassigned_queue(self, limit: int = 100) -> list[ServiceRequest]:
        return await self.list(status=RequestStatus.UNASSIGNED, limit=limit)

    async def timeline(self, request_id: int) -> list[StatusLogEntry]:
        async with self._uow_factory() as uow:
            await self._load(uow, request_id)
            return await uow.status_log.list_for_request(request_id)

    async def assignment_history(self, request_id: int) -> list[Assignment]:
        async with self._uow_factory() as uow:
            await self._load(uow, request_id)
            return await uow.ledger.list_for_request(request_id)

    # ─── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    async def _load(uow: UnitOfWork, request_id: int) -> ServiceRequest:
        request = await uow.requests.get_by_id(request_id)
        if request is None or request.is_deleted:
            raise RequestNotFoundError(request_id)
        return request

    @staticmethod
    def _require_assigned_to(request: ServiceRequest, partner_id: int) -> None:
        if not request.is_assigned_to(partner_id):
            raise ConflictError(NOT_AVAILABLE, request.id, request.status.value)

    @staticmethod
    def _moved_on(request_id: int, message: str = NOT_AVAILABLE) -> ConflictError:
        logger.info("Guarded update on request %s matched nothing: %s", request_id, message)
        return ConflictError(message, request_id)

    async def _insert_submitted(self, request: ServiceRequest) -> ServiceRequest:
        async with self._uow_factory() as uow:
            request.request_number = await uow.requests.next_request_number(
                request.submitted_at.date()
            )
            request = await uow.requests.create(request)
            await self._log(
                uow, request.id, RequestStatus.SUBMITTED, request.customer_id,
                request.submitted_at, "Request submitted",
            )
        return request

    @staticmethod
    async def _log(
        uow: UnitOfWork,
        request_id: int,
        status: RequestStatus,
        actor_id: int,
        at: datetime,
        notes: str | None,
    ) -> None:
        await uow.status_log.append(
            StatusLogEntry(
                id=None,
                request_id=request_id,
                status=status,
                changed_by_id=actor_id,
                timestamp=at,
                notes=notes,
            )
        )

    def _publish(self, event: TransitionEvent) -> None:
        if self._events is None:
            return
        try:
            self._events.publish(event)
        except Exception:
            logger.exception(
                "Failed to publish %s event for request %s", event.kind.value, event.request_number
            )
