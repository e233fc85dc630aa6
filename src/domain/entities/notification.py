"""Notification domain entities and enumerations."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum


class NotificationType(StrEnum):
    """Domain area that produced a notification."""

    ASSET = "Asset"
    TICKET = "Ticket"
    SYSTEM = "System"
    EMPLOYEE = "Employee"


class NotificationPriority(StrEnum):
    """Urgency of a notification, lowest to highest."""

    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        """Display rank: 0 is shown first."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK: dict[NotificationPriority, int] = {
    NotificationPriority.CRITICAL: 0,
    NotificationPriority.HIGH: 1,
    NotificationPriority.MEDIUM: 2,
    NotificationPriority.LOW: 3,
    NotificationPriority.INFO: 4,
}


class NotificationCategory(StrEnum):
    """Display category of a notification."""

    ASSIGNMENTS = "assignments"
    STATUS_CHANGES = "status_changes"
    MAINTENANCE = "maintenance"
    APPROVALS = "approvals"
    ANNOUNCEMENTS = "announcements"
    REMINDERS = "reminders"
    ALERTS = "alerts"


class PreferenceKey(StrEnum):
    """The seven per-user notification toggles."""

    TICKET_ASSIGNMENTS = "ticket_assignments"
    TICKET_STATUS_CHANGES = "ticket_status_changes"
    ASSET_ASSIGNMENTS = "asset_assignments"
    MAINTENANCE_ALERTS = "maintenance_alerts"
    UPGRADE_REQUESTS = "upgrade_requests"
    SYSTEM_ANNOUNCEMENTS = "system_announcements"
    EMPLOYEE_CHANGES = "employee_changes"


DEFAULT_PRIORITY = NotificationPriority.MEDIUM
DEFAULT_CATEGORY = NotificationCategory.ALERTS


@dataclass
class Notification:
    """A persisted, rendered notification for exactly one recipient."""

    user_id: int
    title: str
    message: str
    type: NotificationType
    priority: NotificationPriority = DEFAULT_PRIORITY
    category: NotificationCategory = DEFAULT_CATEGORY
    entity_id: int | None = None
    is_read: bool = False
    read_at: datetime | None = None
    snoozed_until: datetime | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    id: int | None = None


@dataclass
class NotificationPreference:
    """Per-user toggles and Do-Not-Disturb schedule.

    ``dnd_days`` holds weekday numbers with 0 = Sunday; an empty list
    means the schedule applies every day.
    """

    user_id: int
    ticket_assignments: bool = True
    ticket_status_changes: bool = True
    asset_assignments: bool = True
    maintenance_alerts: bool = True
    upgrade_requests: bool = True
    system_announcements: bool = True
    employee_changes: bool = True
    dnd_enabled: bool = False
    dnd_start_time: str | None = None
    dnd_end_time: str | None = None
    dnd_days: list[int] = field(default_factory=list)
    id: int | None = None
    updated_at: datetime | None = None

    def is_enabled(self, key: PreferenceKey) -> bool:
        """Return the toggle value for a preference key."""
        return bool(getattr(self, key.value))


@dataclass
class NotificationTemplate:
    """Admin-managed message template with ``{{variable}}`` placeholders."""

    name: str
    category: NotificationCategory
    type: NotificationType
    title_template: str
    message_template: str
    priority: NotificationPriority = DEFAULT_PRIORITY
    description: str | None = None
    variables: list[str] = field(default_factory=list)
    is_active: bool = True
    created_by: int | None = None
    created_at: datetime = field(default_factory=datetime.utcnow)
    updated_at: datetime = field(default_factory=datetime.utcnow)
    id: int | None = None


@dataclass(frozen=True, slots=True)
class BroadcastResult:
    """Outcome of a broadcast fan-out."""

    recipient_count: int
    delivered_count: int

    @property
    def suppressed_count(self) -> int:
        return self.recipient_count - self.delivered_count
