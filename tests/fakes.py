"""In-memory fakes for the application ports, shared by the unit and API tests."""

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from dispatch.application.ports.assignment_ledger import AssignmentLedger
from dispatch.application.ports.configuration import ConfigurationPort
from dispatch.application.ports.directory import DirectoryPort
from dispatch.application.ports.event_publisher import EventPublisher
from dispatch.application.ports.mail_transport import MailTransport
from dispatch.application.ports.request_repo import RequestNumberTaken, RequestRepository
from dispatch.application.ports.status_log import StatusLogWriter
from dispatch.application.ports.template_renderer import TemplateRenderer
from dispatch.application.ports.unit_of_work import UnitOfWork
from dispatch.application.use_cases.state_machine import RequestStateMachine
from dispatch.domain.entities.assignment import Assignment
from dispatch.domain.entities.directory import Branch, Category, Customer, Partner, Service
from dispatch.domain.entities.notification import MailDelivery, RenderedMessage
from dispatch.domain.value_objects.enums import AssignmentResponse, Locale

START = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

PARTNER_ID = 10
BRANCH_ID = 100
OTHER_PARTNER_ID = 20
OTHER_BRANCH_ID = 200
CUSTOMER_ID = 5
PLACEHOLDER_CUSTOMER_ID = 6
CATEGORY_ID = 1
SERVICE_ID = 11
ADMIN_ID = 900
PARTNER_USER_ID = 310
OPS_EMAILS = ["admin@dispatch.test", "ops@dispatch.test"]


class DuplicatePendingEntry(Exception):
    """Stands in for the partial unique index on pending ledger rows."""


# ─── Clock ──────────────────────────────────────────────────────────


class FakeClock:
    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, minutes: float = 0, seconds: float = 0) -> None:
        self.now += timedelta(minutes=minutes, seconds=seconds)


# ─── Store + unit of work ───────────────────────────────────────────


class InMemoryStore:
    """Shared state behind every FakeUnitOfWork.

    Reads yield to the event loop once, so concurrent transitions all
    pre-read before any of them writes. Guarded writes never yield, which
    makes each one a single indivisible step.
    """

    def __init__(self):
        self.requests = {}
        self.ledger: list[Assignment] = []
        self.log = []
        self.commits = 0
        self.rollbacks = 0
        self._next_id = 0

    def next_id(self) -> int:
        self._next_id += 1
        return self._next_id


class FakeRequestRepo(RequestRepository):
    def __init__(self, store: InMemoryStore, undo: list):
        self._store = store
        self._undo = undo

    async def create(self, request):
        if any(r.request_number == request.request_number for r in self._store.requests.values()):
            raise RequestNumberTaken(request.request_number)
        request.id = self._store.next_id()
        self._store.requests[request.id] = replace(request)
        self._undo.append(lambda: self._store.requests.pop(request.id))
        return request

    async def get_by_id(self, request_id):
        await asyncio.sleep(0)
        r = self._store.requests.get(request_id)
        return replace(r) if r else None

    async def list(self, status=None, partner_id=None, limit=50, offset=0):
        rows = [
            r for r in sorted(self._store.requests.values(), key=lambda r: -r.id)
            if not r.is_deleted
            and (status is None or r.status == status)
            and (partner_id is None or r.partner_id == partner_id)
        ]
        return [replace(r) for r in rows[offset:offset + limit]]

    async def find_expired(self, now):
        await asyncio.sleep(0)
        return [replace(r) for r in self._store.requests.values() if r.is_sla_expired(now)]

    async def apply_guarded(self, request_id, guard, changes):
        current = self._store.requests.get(request_id)
        if current is None or current.is_deleted or not guard.matches(current):
            return False
        updated = replace(current, **changes)
        self._store.requests[request_id] = updated
        self._undo.append(lambda: self._store.requests.__setitem__(request_id, current))
        return True

    async def next_request_number(self, day):
        prefix = f"REQ-{day:%Y%m%d}-"
        taken = [r for r in self._store.requests.values() if r.request_number.startswith(prefix)]
        return f"{prefix}{len(taken) + 1:04d}"


class FakeLedger(AssignmentLedger):
    def __init__(self, store: InMemoryStore, undo: list):
        self._store = store
        self._undo = undo

    async def open_entry(self, entry):
        if any(e.request_id == entry.request_id and e.is_open() for e in self._store.ledger):
            raise DuplicatePendingEntry(entry.request_id)
        entry.id = self._store.next_id()
        self._store.ledger.append(replace(entry))
        self._undo.append(lambda: self._store.ledger.pop())
        return entry

    async def close_open(self, request_id, response, responded_at, reason=None, partner_id=None):
        for i, e in enumerate(self._store.ledger):
            if e.request_id != request_id or not e.is_open():
                continue
            if partner_id is not None and e.partner_id != partner_id:
                return False
            self._store.ledger[i] = replace(
                e, response=response, responded_at=responded_at, rejection_reason=reason
            )
            self._undo.append(lambda i=i, e=e: self._store.ledger.__setitem__(i, e))
            return True
        return False

    async def list_for_request(self, request_id):
        return [replace(e) for e in self._store.ledger if e.request_id == request_id]


class FakeStatusLog(StatusLogWriter):
    def __init__(self, store: InMemoryStore, undo: list):
        self._store = store
        self._undo = undo

    async def append(self, entry):
        entry.id = self._store.next_id()
        self._store.log.append(replace(entry))
        self._undo.append(lambda: self._store.log.pop())
        return entry

    async def list_for_request(self, request_id):
        return [replace(e) for e in self._store.log if e.request_id == request_id]


class FakeUnitOfWork(UnitOfWork):
    def __init__(self, store: InMemoryStore):
        self._store = store
        self._undo: list = []
        self.requests = FakeRequestRepo(store, self._undo)
        self.ledger = FakeLedger(store, self._undo)
        self.status_log = FakeStatusLog(store, self._undo)

    async def commit(self):
        self._undo.clear()
        self._store.commits += 1

    async def rollback(self):
        while self._undo:
            self._undo.pop()()
        self._store.rollbacks += 1


def uow_factory(store: InMemoryStore):
    return lambda: FakeUnitOfWork(store)


# ─── Collaborators ──────────────────────────────────────────────────


class FakeConfiguration(ConfigurationPort):
    def __init__(self, timeout_minutes=15, partner_timeouts=None, recipients=None):
        self.timeout_minutes = timeout_minutes
        self.partner_timeouts = partner_timeouts or {}
        self.recipients = list(OPS_EMAILS) if recipients is None else recipients

    async def get_sla_timeout_minutes(self, partner_id=None):
        return self.partner_timeouts.get(partner_id, self.timeout_minutes)

    async def get_sla_notification_recipients(self):
        return list(self.recipients)


class FakeDirectory(DirectoryPort):
    def __init__(self):
        self.partners = {
            PARTNER_ID: Partner(PARTNER_ID, "Acme Towing", "dispatch@acme.test", Locale.EN),
            OTHER_PARTNER_ID: Partner(OTHER_PARTNER_ID, "Gulf Motors", "ops@gulf.test", Locale.AR),
        }
        self.branches = {
            BRANCH_ID: Branch(BRANCH_ID, PARTNER_ID, "Downtown", "1 Main St"),
            OTHER_BRANCH_ID: Branch(OTHER_BRANCH_ID, OTHER_PARTNER_ID, "Corniche", "2 Sea Rd"),
        }
        self.customers = {
            CUSTOMER_ID: Customer(CUSTOMER_ID, "Sara", "sara@example.com", Locale.AR),
            PLACEHOLDER_CUSTOMER_ID: Customer(
                PLACEHOLDER_CUSTOMER_ID, "Walk-in", "walkin@system.local", Locale.EN,
                is_placeholder=True,
            ),
        }
        self.categories = {CATEGORY_ID: Category(CATEGORY_ID, "Roadside")}
        self.services = {SERVICE_ID: Service(SERVICE_ID, CATEGORY_ID, "Towing")}

    async def get_partner(self, partner_id):
        return self.partners.get(partner_id)

    async def get_branch(self, branch_id):
        return self.branches.get(branch_id)

    async def get_customer(self, customer_id):
        return self.customers.get(customer_id)

    async def get_category(self, category_id):
        return self.categories.get(category_id)

    async def get_service(self, service_id):
        return self.services.get(service_id)


class FakeEventPublisher(EventPublisher):
    def __init__(self, fail: bool = False):
        self.events = []
        self._fail = fail

    def publish(self, event):
        if self._fail:
            raise RuntimeError("channel closed")
        self.events.append(event)


class FakeMailTransport(MailTransport):
    def __init__(self, undeliverable=(), raising=()):
        self.sent: list[tuple[str, str]] = []
        self._undeliverable = set(undeliverable)
        self._raising = set(raising)

    async def send(self, to, subject, html_body, text_body):
        if to in self._raising:
            raise ConnectionError(f"smtp relay refused {to}")
        if to in self._undeliverable:
            return MailDelivery(delivered=False, error="mailbox unavailable")
        self.sent.append((to, subject))
        return MailDelivery(delivered=True)


class RecordingRenderer(TemplateRenderer):
    def __init__(self):
        self.calls = []

    def render(self, template, data, locale):
        self.calls.append((template, locale))
        tag = locale.value if locale else "en+ar"
        return RenderedMessage(
            subject=f"[{tag}] {template.value} {data.request_number}",
            html_body="<p>body</p>",
            text_body="body",
        )


# ─── Builders ───────────────────────────────────────────────────────


def make_machine(
    store=None, clock=None, configuration=None, directory=None, events=None
) -> RequestStateMachine:
    return RequestStateMachine(
        uow_factory(store or InMemoryStore()),
        configuration or FakeConfiguration(),
        directory or FakeDirectory(),
        events=events,
        clock=clock or FakeClock(),
        system_actor_id=1,
    )


async def submitted(machine: RequestStateMachine, customer_id: int = CUSTOMER_ID) -> int:
    result = await machine.submit(customer_id, CATEGORY_ID, pickup_option_id=1, service_id=SERVICE_ID)
    return result.request.id


async def assigned(machine: RequestStateMachine, partner_id=PARTNER_ID, branch_id=BRANCH_ID) -> int:
    request_id = await submitted(machine)
    await machine.assign(request_id, partner_id, branch_id, ADMIN_ID)
    return request_id


def open_entries(store: InMemoryStore, request_id: int) -> list[Assignment]:
    return [e for e in store.ledger if e.request_id == request_id and e.is_open()]


def entries_with(store: InMemoryStore, request_id: int, response: AssignmentResponse):
    return [e for e in store.ledger if e.request_id == request_id and e.response == response]
