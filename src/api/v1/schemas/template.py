"""Pydantic schemas for Notification Template API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.notification import (
    NotificationCategory,
    NotificationPriority,
    NotificationTemplate,
    NotificationType,
)


class TemplateCreate(BaseModel):
    """Schema for creating a template."""

    name: str = Field(..., max_length=100)
    description: str | None = None
    category: NotificationCategory
    type: NotificationType
    priority: NotificationPriority = NotificationPriority.MEDIUM
    title_template: str = Field(..., max_length=255)
    message_template: str
    variables: list[str] | None = Field(
        None, description="Declared placeholder names; derived from the templates when omitted"
    )
    is_active: bool = True


class TemplateUpdate(BaseModel):
    """Schema for partially updating a template. Omitted fields are unchanged."""

    name: str | None = Field(None, max_length=100)
    description: str | None = None
    category: NotificationCategory | None = None
    type: NotificationType | None = None
    priority: NotificationPriority | None = None
    title_template: str | None = Field(None, max_length=255)
    message_template: str | None = None
    variables: list[str] | None = None
    is_active: bool | None = None


class TemplateResponse(BaseModel):
    """Schema for template response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": 3,
                "name": "ticket_assignment",
                "description": "Sent to the assignee when a ticket is assigned",
                "category": "assignments",
                "type": "Ticket",
                "priority": "medium",
                "title_template": "Ticket {{ticketId}} Assigned to You",
                "message_template": "{{assignedBy}} assigned you ticket {{ticketId}}: {{ticketTitle}}",
                "variables": ["ticketId", "assignedBy", "ticketTitle"],
                "is_active": True,
                "created_by": 1,
                "created_at": "2026-01-28T10:00:00",
                "updated_at": "2026-01-28T10:00:00",
            }
        },
    )

    id: int
    name: str
    description: str | None = None
    category: NotificationCategory
    type: NotificationType
    priority: NotificationPriority
    title_template: str
    message_template: str
    variables: list[str]
    is_active: bool
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, template: NotificationTemplate) -> "TemplateResponse":
        return cls.model_validate(template)


class TemplateDetailResponse(BaseModel):
    """Single template wrapper."""

    data: TemplateResponse


class TemplateListResponse(BaseModel):
    """Schema for list of templates."""

    data: list[TemplateResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class TemplateTestRequest(BaseModel):
    """Sample values for a template preview."""

    variables: dict[str, Any] = Field(default_factory=dict)


class TemplatePreviewBody(BaseModel):
    title: str
    message: str


class TemplateTestResponse(BaseModel):
    """Rendered preview. Placeholders without a value are left as-is."""

    preview: TemplatePreviewBody
