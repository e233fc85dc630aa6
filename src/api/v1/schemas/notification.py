"""Pydantic schemas for Notification API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.entities.notification import (
    Notification,
    NotificationCategory,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
)

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class NotificationResponse(BaseModel):
    """Single notification in the feed."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 128,
                "title": "Ticket TKT-000042 Assigned to You",
                "message": "jdoe assigned you ticket TKT-000042: Laptop will not boot",
                "type": "Ticket",
                "category": "assignments",
                "priority": "medium",
                "read": False,
                "read_at": None,
                "snoozed_until": None,
                "entity_id": 42,
                "created_at": "2026-03-02T09:15:00",
            }
        },
    )

    id: int
    title: str
    message: str
    type: NotificationType
    category: NotificationCategory
    priority: NotificationPriority
    read: bool
    read_at: datetime | None = None
    snoozed_until: datetime | None = None
    entity_id: int | None = None
    created_at: datetime

    @classmethod
    def from_entity(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.id,  # type: ignore[arg-type]
            title=notification.title,
            message=notification.message,
            type=notification.type,
            category=notification.category,
            priority=notification.priority,
            read=notification.is_read,
            read_at=notification.read_at,
            snoozed_until=notification.snoozed_until,
            entity_id=notification.entity_id,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    """Paginated notification feed response."""

    data: list[NotificationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class NotificationCreate(BaseModel):
    """Admin request to insert a notification directly, bypassing all gates."""

    user_id: int = Field(..., ge=1)
    title: str = Field(..., max_length=255)
    message: str
    type: NotificationType
    priority: NotificationPriority | None = None
    category: NotificationCategory | None = None
    entity_id: int | None = None


class NotificationDetailResponse(BaseModel):
    """Single notification wrapper."""

    data: NotificationResponse


class UnreadCountResponse(BaseModel):
    """Unread notification count response."""

    count: int


class CountResponse(BaseModel):
    """Number of notifications affected by a batch operation."""

    count: int


class MarkReadRequest(BaseModel):
    """Batch mark-read request. Ids the caller does not own are ignored."""

    notification_ids: list[int] = Field(..., max_length=500)


class SnoozeRequest(BaseModel):
    """Snooze request. ``snooze_until`` wins over ``minutes`` when both are sent."""

    snooze_until: datetime | None = None
    minutes: int | None = Field(None, ge=1, le=60 * 24 * 30)


class SnoozeResponse(BaseModel):
    """Computed snooze deadline (naive UTC)."""

    snoozed_until: datetime


# --- Broadcast ---


class BroadcastRequest(BaseModel):
    """Fan one message out to a role or to every user."""

    title: str = Field(..., max_length=255)
    message: str
    target_role: str = Field("all", description='A role name, or "all"')
    notification_type: NotificationType = NotificationType.SYSTEM
    priority: NotificationPriority | None = None


class BroadcastResponse(BaseModel):
    """Broadcast outcome.

    ``recipient_count`` is how many users the message was attempted for;
    ``delivered_count`` passed their gates; the rest were suppressed.
    """

    recipient_count: int
    delivered_count: int
    suppressed_count: int


# --- Preferences ---


class NotificationPreferenceRequest(BaseModel):
    """Full replacement of the caller's preferences."""

    ticket_assignments: bool = True
    ticket_status_changes: bool = True
    asset_assignments: bool = True
    maintenance_alerts: bool = True
    upgrade_requests: bool = True
    system_announcements: bool = True
    employee_changes: bool = True
    dnd_enabled: bool = False
    dnd_start_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    dnd_end_time: str | None = Field(None, pattern=CLOCK_PATTERN)
    dnd_days: list[int] = Field(default_factory=list, description="0 = Sunday ... 6 = Saturday")

    @field_validator("dnd_days")
    @classmethod
    def validate_days(cls, v: list[int]) -> list[int]:
        if any(day < 0 or day > 6 for day in v):
            raise ValueError("dnd_days must contain weekday numbers 0-6")
        return sorted(set(v))

    def to_entity(self, user_id: int) -> NotificationPreference:
        return NotificationPreference(user_id=user_id, **self.model_dump())


class NotificationPreferenceResponse(BaseModel):
    """The caller's preferences (defaults when none were ever saved)."""

    model_config = ConfigDict(from_attributes=True)

    ticket_assignments: bool
    ticket_status_changes: bool
    asset_assignments: bool
    maintenance_alerts: bool
    upgrade_requests: bool
    system_announcements: bool
    employee_changes: bool
    dnd_enabled: bool
    dnd_start_time: str | None = None
    dnd_end_time: str | None = None
    dnd_days: list[int] = Field(default_factory=list)
    updated_at: datetime | None = None
