"""Notification repository protocol."""

from datetime import datetime
from typing import Protocol

from domain.entities.notification import Notification, NotificationPreference


class INotificationRepository(Protocol):
    """Repository interface for Notification entities and preferences."""

    # --- Notifications ---

    async def create(self, notification: Notification) -> Notification:
        """Insert a new notification."""
        ...

    async def list_for_user(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        since: datetime | None = None,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Get a page of the user's notifications, newest first."""
        ...

    async def get_unread_count(self, user_id: int) -> int:
        """Get the count of unread notifications for a user."""
        ...

    async def mark_read(self, user_id: int, notification_ids: list[int]) -> int:
        """Mark the user's own notifications in ``notification_ids`` as read."""
        ...

    async def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of the user as read."""
        ...

    async def snooze(self, notification_id: int, user_id: int, until: datetime) -> bool:
        """Set ``snoozed_until`` on one of the user's notifications."""
        ...

    async def delete(self, notification_id: int, user_id: int) -> bool:
        """Hard-delete one of the user's notifications."""
        ...

    async def delete_all_for_user(self, user_id: int) -> int:
        """Hard-delete every notification of the user."""
        ...

    async def delete_read_before(self, cutoff: datetime) -> int:
        """Delete read notifications created before ``cutoff``."""
        ...

    # --- Preferences ---

    async def get_preference(self, user_id: int) -> NotificationPreference | None:
        """Get the user's preference record, if one exists."""
        ...

    async def upsert_preference(self, pref: NotificationPreference) -> NotificationPreference:
        """Create or overwrite the user's preference record."""
        ...
