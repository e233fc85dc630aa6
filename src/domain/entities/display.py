"""Display-side entities: domain snapshots and the persisted/synthesized variant."""

from dataclasses import dataclass, field
from datetime import date, datetime

from domain.entities.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)

# --- Domain snapshots (read-only inputs to the synthesizer) ---


@dataclass(frozen=True, slots=True)
class TicketSnapshot:
    """Current state of a helpdesk ticket."""

    id: int
    ticket_number: str
    title: str
    status: str
    priority: str = "Medium"
    assigned_to_id: int | None = None
    submitted_by_id: int | None = None
    assigned_by_id: int | None = None


@dataclass(frozen=True, slots=True)
class AssetSnapshot:
    """Current assignment of an asset."""

    id: int
    name: str
    asset_tag: str | None = None
    assigned_to_id: int | None = None
    assigned_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class MaintenanceSnapshot:
    """A maintenance record against an asset."""

    id: int
    asset_id: int
    asset_name: str
    maintenance_type: str
    scheduled_date: date
    status: str = "Scheduled"


@dataclass(frozen=True, slots=True)
class UpgradeSnapshot:
    """An asset upgrade request."""

    id: int
    asset_name: str
    status: str
    requested_by: str | None = None


@dataclass(frozen=True, slots=True)
class DomainSnapshot:
    """Everything the synthesizer may look at for one caller.

    ``now`` is part of the snapshot so evaluation stays a pure function.
    """

    user_id: int
    role: str
    now: datetime
    tickets: tuple[TicketSnapshot, ...] = ()
    assets: tuple[AssetSnapshot, ...] = ()
    maintenance: tuple[MaintenanceSnapshot, ...] = ()
    upgrades: tuple[UpgradeSnapshot, ...] = ()


# --- Display variants ---


@dataclass(frozen=True, slots=True)
class SynthesizedNotification:
    """Ephemeral notification computed from current state, never persisted."""

    key: str
    rule: str
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    created_at: datetime
    entity_ids: tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class PersistedItem:
    """A stored notification in the merged display list."""

    notification: Notification

    @property
    def priority(self) -> NotificationPriority:
        return self.notification.priority


@dataclass(frozen=True, slots=True)
class SynthesizedItem:
    """A synthesized notification in the merged display list."""

    notification: SynthesizedNotification

    @property
    def priority(self) -> NotificationPriority:
        return self.notification.priority


DisplayItem = PersistedItem | SynthesizedItem
