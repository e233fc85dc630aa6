"""Pydantic schemas for the merged display feed."""

from datetime import date, datetime
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from api.v1.schemas.notification import NotificationResponse
from domain.entities.display import (
    AssetSnapshot,
    DisplayItem,
    MaintenanceSnapshot,
    PersistedItem,
    TicketSnapshot,
    UpgradeSnapshot,
)
from domain.entities.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from domain.services.notification_service import to_naive_utc


class TicketState(BaseModel):
    id: int
    ticket_number: str
    title: str
    status: str
    priority: str = "Medium"
    assigned_to_id: int | None = None
    submitted_by_id: int | None = None
    assigned_by_id: int | None = None


class AssetState(BaseModel):
    id: int
    name: str
    asset_tag: str | None = None
    assigned_to_id: int | None = None
    assigned_at: datetime | None = None


class MaintenanceState(BaseModel):
    id: int
    asset_id: int
    asset_name: str
    maintenance_type: str
    scheduled_date: date
    status: str = "Scheduled"


class UpgradeState(BaseModel):
    id: int
    asset_name: str
    status: str
    requested_by: str | None = None


class DisplayRequest(BaseModel):
    """Live domain state visible to the caller plus the session's dismissed keys.

    The caller's id and role come from the token, never from the body.
    """

    tickets: list[TicketState] = Field(default_factory=list, max_length=1000)
    assets: list[AssetState] = Field(default_factory=list, max_length=1000)
    maintenance: list[MaintenanceState] = Field(default_factory=list, max_length=1000)
    upgrades: list[UpgradeState] = Field(default_factory=list, max_length=1000)
    dismissed_keys: list[str] = Field(default_factory=list)
    limit: int | None = Field(None, description="Persisted page size (capped server-side)")

    def ticket_snapshots(self) -> tuple[TicketSnapshot, ...]:
        return tuple(TicketSnapshot(**t.model_dump()) for t in self.tickets)

    def asset_snapshots(self) -> tuple[AssetSnapshot, ...]:
        return tuple(
            AssetSnapshot(
                id=a.id,
                name=a.name,
                asset_tag=a.asset_tag,
                assigned_to_id=a.assigned_to_id,
                assigned_at=to_naive_utc(a.assigned_at) if a.assigned_at else None,
            )
            for a in self.assets
        )

    def maintenance_snapshots(self) -> tuple[MaintenanceSnapshot, ...]:
        return tuple(MaintenanceSnapshot(**m.model_dump()) for m in self.maintenance)

    def upgrade_snapshots(self) -> tuple[UpgradeSnapshot, ...]:
        return tuple(UpgradeSnapshot(**u.model_dump()) for u in self.upgrades)


class PersistedDisplayItem(BaseModel):
    source: Literal["persisted"] = "persisted"
    notification: NotificationResponse


class SynthesizedDisplayItem(BaseModel):
    source: Literal["synthesized"] = "synthesized"
    key: str
    rule: str
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    created_at: datetime
    entity_ids: list[int]


DisplayItemResponse = Annotated[
    PersistedDisplayItem | SynthesizedDisplayItem,
    Field(discriminator="source"),
]


class DisplayResponse(BaseModel):
    """Merged feed, critical first."""

    data: list[DisplayItemResponse]


def to_display_response(item: DisplayItem) -> PersistedDisplayItem | SynthesizedDisplayItem:
    """Render one display variant on the wire."""
    if isinstance(item, PersistedItem):
        return PersistedDisplayItem(notification=NotificationResponse.from_entity(item.notification))
    n = item.notification
    return SynthesizedDisplayItem(
        key=n.key,
        rule=n.rule,
        title=n.title,
        message=n.message,
        type=n.type,
        category=n.category,
        priority=n.priority,
        created_at=n.created_at,
        entity_ids=list(n.entity_ids),
    )
