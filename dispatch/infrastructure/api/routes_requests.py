"""Request endpoints — submission, assignment, partner responses and progress."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from dispatch.application.use_cases.state_machine import RequestStateMachine
from dispatch.domain.entities.assignment import Assignment
from dispatch.domain.entities.service_request import ServiceRequest
from dispatch.domain.entities.status_log import StatusLogEntry
from dispatch.domain.value_objects.enums import RequestStatus
from dispatch.infrastructure.api.dependencies import get_state_machine

router = APIRouter(prefix="/requests", tags=["requests"])


class SubmitBody(BaseModel):
    customer_id: int
    category_id: int
    pickup_option_id: int
    service_id: int | None = None
    notes: str | None = None


class AssignBody(BaseModel):
    partner_id: int
    branch_id: int
    assigner_id: int


class AcceptBody(BaseModel):
    partner_id: int
    actor_id: int


class RejectBody(BaseModel):
    partner_id: int
    reason: str
    actor_id: int


class AdvanceBody(BaseModel):
    status: str
    actor_id: int
    notes: str | None = None


class CloseBody(BaseModel):
    actor_id: int
    notes: str | None = None


class RatingBody(BaseModel):
    customer_id: int
    rating: int = Field(ge=1, le=5)
    feedback: str | None = None


@router.post("", status_code=201)
async def submit_request(
    body: SubmitBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.submit(
        body.customer_id, body.category_id, body.pickup_option_id, body.service_id, body.notes
    )
    return _serialize_request(result.request)


@router.get("")
async def list_requests(
    status: RequestStatus | None = None,
    partner_id: int | None = None,
    limit: int = Query(default=50, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
    machine: RequestStateMachine = Depends(get_state_machine),
):
    """One page of requests. ``count`` is the size of this page."""
    requests = await machine.list(status, partner_id, limit, offset)
    return {
        "count": len(requests),
        "limit": limit,
        "offset": offset,
        "requests": [_serialize_request(r) for r in requests],
    }


@router.get("/unassigned")
async def unassigned_queue(machine: RequestStateMachine = Depends(get_state_machine)):
    """Requests returned to the queue by an SLA timeout."""
    requests = await machine.unassigned_queue()
    return {"total": len(requests), "requests": [_serialize_request(r) for r in requests]}


@router.get("/{request_id}")
async def get_request(request_id: int, machine: RequestStateMachine = Depends(get_state_machine)):
    return _serialize_request(await machine.get(request_id))


@router.get("/{request_id}/timeline")
async def get_timeline(request_id: int, machine: RequestStateMachine = Depends(get_state_machine)):
    entries = await machine.timeline(request_id)
    return {"request_id": request_id, "entries": [_serialize_log(e) for e in entries]}


@router.get("/{request_id}/assignments")
async def get_assignments(
    request_id: int, machine: RequestStateMachine = Depends(get_state_machine)
):
    entries = await machine.assignment_history(request_id)
    return {"request_id": request_id, "assignments": [_serialize_assignment(a) for a in entries]}


@router.post("/{request_id}/assign")
async def assign_request(
    request_id: int, body: AssignBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.assign(request_id, body.partner_id, body.branch_id, body.assigner_id)
    return _serialize_request(result.request)


@router.post("/{request_id}/accept")
async def accept_request(
    request_id: int, body: AcceptBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.accept(request_id, body.partner_id, body.actor_id)
    return _serialize_request(result.request)


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: int, body: RejectBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.reject(request_id, body.partner_id, body.reason, body.actor_id)
    return _serialize_request(result.request)


@router.post("/{request_id}/status")
async def advance_request(
    request_id: int, body: AdvanceBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.advance(request_id, body.status, body.actor_id, body.notes)
    return _serialize_request(result.request)


@router.post("/{request_id}/close")
async def close_request(
    request_id: int, body: CloseBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.close(request_id, body.actor_id, body.notes)
    return _serialize_request(result.request)


@router.post("/{request_id}/rating")
async def rate_request(
    request_id: int, body: RatingBody, machine: RequestStateMachine = Depends(get_state_machine)
):
    result = await machine.rate(request_id, body.customer_id, body.rating, body.feedback)
    return _serialize_request(result.request)


def _iso(value) -> str | None:
    return value.isoformat() if value else None


def _serialize_request(r: ServiceRequest) -> dict:
    return {
        "id": r.id,
        "request_number": r.request_number,
        "status": r.status.value,
        "customer_id": r.customer_id,
        "category_id": r.category_id,
        "service_id": r.service_id,
        "pickup_option_id": r.pickup_option_id,
        "partner_id": r.partner_id,
        "branch_id": r.branch_id,
        "assigned_by_user_id": r.assigned_by_user_id,
        "assigned_at": _iso(r.assigned_at),
        "sla_deadline": _iso(r.sla_deadline),
        "submitted_at": _iso(r.submitted_at),
        "confirmed_at": _iso(r.confirmed_at),
        "rejected_at": _iso(r.rejected_at),
        "in_progress_at": _iso(r.in_progress_at),
        "completed_at": _iso(r.completed_at),
        "closed_at": _iso(r.closed_at),
        "closed_by_user_id": r.closed_by_user_id,
        "rating": r.rating,
        "feedback": r.feedback,
        "rated_at": _iso(r.rated_at),
        "notes": r.notes,
        "updated_at": _iso(r.updated_at),
    }


def _serialize_log(e: StatusLogEntry) -> dict:
    return {
        "id": e.id,
        "status": e.status.value,
        "changed_by_id": e.changed_by_id,
        "notes": e.notes,
        "timestamp": _iso(e.timestamp),
    }


def _serialize_assignment(a: Assignment) -> dict:
    return {
        "id": a.id,
        "partner_id": a.partner_id,
        "branch_id": a.branch_id,
        "assigned_by_user_id": a.assigned_by_user_id,
        "assigned_at": _iso(a.assigned_at),
        "response": a.response.value,
        "responded_at": _iso(a.responded_at),
        "rejection_reason": a.rejection_reason,
    }
