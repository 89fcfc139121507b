"""SQLAlchemy repository implementations."""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from sqlalchemy import Integer, cast, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from dispatch.adapters.persistence.models import (
    RequestAssignmentModel,
    RequestModel,
    RequestStatusLogModel,
)
from dispatch.application.ports.assignment_ledger import AssignmentLedger
from dispatch.application.ports.request_repo import RequestNumberTaken, RequestRepository
from dispatch.application.ports.status_log import StatusLogWriter
from dispatch.domain.entities.assignment import Assignment
from dispatch.domain.entities.service_request import ServiceRequest
from dispatch.domain.entities.status_log import StatusLogEntry
from dispatch.domain.value_objects.enums import AssignmentResponse, RequestStatus
from dispatch.domain.value_objects.request_guard import RequestGuard

# ─── Mappers ─────────────────────────────────────────────────────────


def _request_to_domain(m: RequestModel) -> ServiceRequest:
    return ServiceRequest(
        id=m.id,
        request_number=m.request_number,
        customer_id=m.customer_id,
        category_id=m.category_id,
        pickup_option_id=m.pickup_option_id,
        service_id=m.service_id,
        status=RequestStatus(m.status),
        partner_id=m.partner_id,
        branch_id=m.branch_id,
        assigned_by_user_id=m.assigned_by_user_id,
        assigned_at=m.assigned_at,
        sla_deadline=m.sla_deadline,
        submitted_at=m.submitted_at,
        confirmed_at=m.confirmed_at,
        rejected_at=m.rejected_at,
        in_progress_at=m.in_progress_at,
        completed_at=m.completed_at,
        closed_at=m.closed_at,
        closed_by_user_id=m.closed_by_user_id,
        rating=m.rating,
        feedback=m.feedback,
        rated_at=m.rated_at,
        notes=m.notes,
        updated_at=m.updated_at,
        updated_by_id=m.updated_by_id,
        is_deleted=m.is_deleted,
    )


def _assignment_to_domain(m: RequestAssignmentModel) -> Assignment:
    return Assignment(
        id=m.id,
        request_id=m.request_id,
        partner_id=m.partner_id,
        branch_id=m.branch_id,
        assigned_by_user_id=m.assigned_by_user_id,
        assigned_at=m.assigned_at,
        response=AssignmentResponse(m.response),
        responded_at=m.responded_at,
        rejection_reason=m.rejection_reason,
    )


def _log_to_domain(m: RequestStatusLogModel) -> StatusLogEntry:
    return StatusLogEntry(
        id=m.id,
        request_id=m.request_id,
        status=RequestStatus(m.status),
        changed_by_id=m.changed_by_id,
        timestamp=m.timestamp,
        notes=m.notes,
    )


def _column_values(changes: dict) -> dict:
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in changes.items()}


# ─── Repositories ────────────────────────────────────────────────────


class SqlRequestRepository(RequestRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def create(self, request: ServiceRequest) -> ServiceRequest:
        m = RequestModel(
            request_number=request.request_number,
            customer_id=request.customer_id,
            category_id=request.category_id,
            pickup_option_id=request.pickup_option_id,
            service_id=request.service_id,
            status=request.status.value,
            submitted_at=request.submitted_at,
            notes=request.notes,
            updated_at=request.updated_at,
            updated_by_id=request.updated_by_id,
        )
        self._s.add(m)
        try:
            await self._s.flush()
        except IntegrityError as exc:
            if "request_number" in str(exc.orig):
                raise RequestNumberTaken(request.request_number) from exc
            raise
        request.id = m.id
        return request

    async def get_by_id(self, request_id: int) -> ServiceRequest | None:
        # Guarded updates bypass the identity map, so always reload the row.
        m = await self._s.get(RequestModel, request_id, populate_existing=True)
        return _request_to_domain(m) if m else None

    async def list(
        self,
        status: RequestStatus | None = None,
        partner_id: int | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[ServiceRequest]:
        stmt = select(RequestModel).where(RequestModel.is_deleted.is_(False))
        if status is not None:
            stmt = stmt.where(RequestModel.status == status.value)
        if partner_id is not None:
            stmt = stmt.where(RequestModel.partner_id == partner_id)
        stmt = stmt.order_by(RequestModel.id.desc()).limit(limit).offset(offset)
        result = await self._s.execute(stmt)
        return [_request_to_domain(m) for m in result.scalars()]

    async def find_expired(self, now: datetime) -> list[ServiceRequest]:
        result = await self._s.execute(
            select(RequestModel)
            .where(
                RequestModel.status == RequestStatus.ASSIGNED.value,
                RequestModel.sla_deadline < now,
                RequestModel.is_deleted.is_(False),
            )
            .order_by(RequestModel.sla_deadline)
        )
        return [_request_to_domain(m) for m in result.scalars()]

    async def apply_guarded(self, request_id: int, guard: RequestGuard, changes: dict) -> bool:
        stmt = update(RequestModel).where(
            RequestModel.id == request_id,
            RequestModel.is_deleted.is_(False),
            RequestModel.status.in_(sorted(s.value for s in guard.statuses)),
        )
        if guard.partner_id is not None:
            stmt = stmt.where(RequestModel.partner_id == guard.partner_id)
        if guard.customer_id is not None:
            stmt = stmt.where(RequestModel.customer_id == guard.customer_id)
        if guard.sla_deadline is not None:
            stmt = stmt.where(RequestModel.sla_deadline == guard.sla_deadline)
        if guard.deadline_before is not None:
            stmt = stmt.where(RequestModel.sla_deadline < guard.deadline_before)

        result = await self._s.execute(
            stmt.values(**_column_values(changes)).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def next_request_number(self, day: date) -> str:
        prefix = f"REQ-{day:%Y%m%d}-"
        # Numeric max: "...-10000" sorts below "...-9999" as text.
        sequence = cast(func.substr(RequestModel.request_number, len(prefix) + 1), Integer)
        result = await self._s.execute(
            select(func.max(sequence)).where(RequestModel.request_number.like(f"{prefix}%"))
        )
        last = result.scalar_one_or_none() or 0
        return f"{prefix}{last + 1:04d}"


class SqlAssignmentLedger(AssignmentLedger):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def open_entry(self, entry: Assignment) -> Assignment:
        m = RequestAssignmentModel(
            request_id=entry.request_id,
            partner_id=entry.partner_id,
            branch_id=entry.branch_id,
            assigned_by_user_id=entry.assigned_by_user_id,
            assigned_at=entry.assigned_at,
            response=AssignmentResponse.PENDING.value,
        )
        self._s.add(m)
        await self._s.flush()
        entry.id = m.id
        return entry

    async def close_open(
        self,
        request_id: int,
        response: AssignmentResponse,
        responded_at: datetime,
        reason: str | None = None,
        partner_id: int | None = None,
    ) -> bool:
        stmt = update(RequestAssignmentModel).where(
            RequestAssignmentModel.request_id == request_id,
            RequestAssignmentModel.response == AssignmentResponse.PENDING.value,
        )
        if partner_id is not None:
            stmt = stmt.where(RequestAssignmentModel.partner_id == partner_id)
        result = await self._s.execute(
            stmt.values(
                response=response.value,
                responded_at=responded_at,
                rejection_reason=reason,
            ).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def list_for_request(self, request_id: int) -> list[Assignment]:
        result = await self._s.execute(
            select(RequestAssignmentModel)
            .where(RequestAssignmentModel.request_id == request_id)
            .order_by(RequestAssignmentModel.id)
            .execution_options(populate_existing=True)
        )
        return [_assignment_to_domain(m) for m in result.scalars()]


class SqlStatusLogWriter(StatusLogWriter):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def append(self, entry: StatusLogEntry) -> StatusLogEntry:
        m = RequestStatusLogModel(
            request_id=entry.request_id,
            status=entry.status.value,
            changed_by_id=entry.changed_by_id,
            notes=entry.notes,
            timestamp=entry.timestamp,
        )
        self._s.add(m)
        await self._s.flush()
        entry.id = m.id
        return entry

    async def list_for_request(self, request_id: int) -> list[StatusLogEntry]:
        result = await self._s.execute(
            select(RequestStatusLogModel)
            .where(RequestStatusLogModel.request_id == request_id)
            .order_by(RequestStatusLogModel.id)
        )
        return [_log_to_domain(m) for m in result.scalars()]
