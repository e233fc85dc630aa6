"""Notification template repository protocol."""

from typing import Any, Protocol

from domain.entities.notification import NotificationCategory, NotificationTemplate


class ITemplateRepository(Protocol):
    """Repository interface for NotificationTemplate entities."""

    async def get(self, template_id: int) -> NotificationTemplate | None:
        """Get a template by ID, active or not."""
        ...

    async def get_by_name(self, name: str) -> NotificationTemplate | None:
        """Get a template by its unique name."""
        ...

    async def list_templates(
        self,
        active_only: bool = False,
        category: NotificationCategory | None = None,
    ) -> list[NotificationTemplate]:
        """List templates, newest first."""
        ...

    async def create(self, template: NotificationTemplate) -> NotificationTemplate:
        """Insert a new template."""
        ...

    async def update(self, template_id: int, changes: dict[str, Any]) -> NotificationTemplate | None:
        """Apply field changes to a template."""
        ...
