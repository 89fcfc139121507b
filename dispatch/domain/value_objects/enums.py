"""Domain enums — pure Python, no external dependencies."""

from enum import Enum


class RequestStatus(str, Enum):
    SUBMITTED = "submitted"
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"
    REJECTED = "rejected"
    UNASSIGNED = "unassigned"


class AssignmentResponse(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"
    TIMEOUT = "timeout"


class TransitionKind(str, Enum):
    SUBMITTED = "submitted"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CLOSED = "closed"
    TIMED_OUT = "timed_out"


class NotificationTemplate(str, Enum):
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CONFIRMED = "confirmed"
    CLOSED = "closed"
    SLA_TIMEOUT = "sla_timeout"
    STATUS_CHANGE = "status_change"


class Locale(str, Enum):
    EN = "en"
    AR = "ar"


class DeliveryStatus(str, Enum):
    DELIVERED = "delivered"
    FAILED = "failed"
    SKIPPED = "skipped"


class ConfigScope(str, Enum):
    GLOBAL = "global"
    PARTNER = "partner"
