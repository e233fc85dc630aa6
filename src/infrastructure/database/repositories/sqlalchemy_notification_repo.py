"""SQLAlchemy implementation of Notification repository."""

from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.notification import (
    Notification,
    NotificationCategory,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
    PreferenceKey,
)
from infrastructure.database.models import NotificationModel, NotificationPreferenceModel


class SQLAlchemyNotificationRepository:
    """SQLAlchemy implementation of INotificationRepository.

    Every per-user operation filters on ``user_id`` in the statement itself,
    so ids belonging to another user never match.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- Notifications ---

    async def create(self, notification: Notification) -> Notification:
        """Create a new notification."""
        model = self._to_model(notification)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def list_for_user(
        self,
        user_id: int,
        limit: int = 50,
        offset: int = 0,
        since: datetime | None = None,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Get a page of the user's notifications, newest first."""
        stmt = select(NotificationModel).where(NotificationModel.user_id == user_id)

        if since is not None:
            stmt = stmt.where(NotificationModel.created_at > since)

        if unread_only:
            stmt = stmt.where(NotificationModel.is_read.is_(False))

        stmt = (
            stmt.order_by(NotificationModel.created_at.desc(), NotificationModel.id.desc())
            .offset(offset)
            .limit(limit)
        )
        result = await self._session.execute(stmt)
        return [self._to_entity(m) for m in result.scalars()]

    async def get_unread_count(self, user_id: int) -> int:
        """Get the count of unread notifications for a user."""
        stmt = select(func.count(NotificationModel.id)).where(
            NotificationModel.user_id == user_id,
            NotificationModel.is_read.is_(False),
        )
        result = await self._session.execute(stmt)
        return result.scalar_one()

    async def mark_read(self, user_id: int, notification_ids: list[int]) -> int:
        """Mark a batch as read. Returns how many of the user's rows changed."""
        if not notification_ids:
            return 0
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id.in_(notification_ids),
                NotificationModel.user_id == user_id,
            )
            .values(is_read=True, read_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    async def mark_all_read(self, user_id: int) -> int:
        """Mark all notifications as read for a user. Returns count updated."""
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.user_id == user_id,
                NotificationModel.is_read.is_(False),
            )
            .values(is_read=True, read_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    async def snooze(self, notification_id: int, user_id: int, until: datetime) -> bool:
        """Snooze one of the user's notifications."""
        stmt = (
            update(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .values(snoozed_until=until)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0  # type: ignore[return-value]

    async def delete(self, notification_id: int, user_id: int) -> bool:
        """Delete one of the user's notifications."""
        stmt = (
            delete(NotificationModel)
            .where(
                NotificationModel.id == notification_id,
                NotificationModel.user_id == user_id,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0  # type: ignore[return-value]

    async def delete_all_for_user(self, user_id: int) -> int:
        """Delete every notification of a user. Returns count deleted."""
        stmt = (
            delete(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    # --- Cleanup ---

    async def delete_read_before(self, cutoff: datetime) -> int:
        """Delete read notifications created before ``cutoff``. Returns count deleted."""
        stmt = (
            delete(NotificationModel)
            .where(
                NotificationModel.is_read.is_(True),
                NotificationModel.created_at < cutoff,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[return-value]

    # --- Preferences ---

    async def get_preference(self, user_id: int) -> NotificationPreference | None:
        """Get the user's preference record."""
        stmt = select(NotificationPreferenceModel).where(
            NotificationPreferenceModel.user_id == user_id
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._pref_to_entity(model) if model else None

    async def upsert_preference(self, pref: NotificationPreference) -> NotificationPreference:
        """Create the user's preference record, or overwrite every field of it."""
        stmt = select(NotificationPreferenceModel).where(
            NotificationPreferenceModel.user_id == pref.user_id
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if model is None:
            model = NotificationPreferenceModel(user_id=pref.user_id)
            self._session.add(model)

        for key in PreferenceKey:
            setattr(model, key.value, pref.is_enabled(key))
        model.dnd_enabled = pref.dnd_enabled
        model.dnd_start_time = pref.dnd_start_time
        model.dnd_end_time = pref.dnd_end_time
        model.dnd_days = list(pref.dnd_days)
        model.updated_at = pref.updated_at or datetime.utcnow()

        await self._session.flush()
        await self._session.refresh(model)
        return self._pref_to_entity(model)

    # --- Conversion methods ---

    def _to_entity(self, model: NotificationModel) -> Notification:
        """Convert NotificationModel to domain entity."""
        return Notification(
            id=model.id,
            user_id=model.user_id,
            title=model.title,
            message=model.message,
            type=NotificationType(model.type),
            priority=NotificationPriority(model.priority),
            category=NotificationCategory(model.category),
            entity_id=model.entity_id,
            is_read=model.is_read,
            read_at=model.read_at,
            snoozed_until=model.snoozed_until,
            created_at=model.created_at,
        )

    def _to_model(self, entity: Notification) -> NotificationModel:
        """Convert Notification domain entity to ORM model."""
        return NotificationModel(
            id=entity.id,
            user_id=entity.user_id,
            title=entity.title,
            message=entity.message,
            type=entity.type.value,
            priority=entity.priority.value,
            category=entity.category.value,
            entity_id=entity.entity_id,
            is_read=entity.is_read,
            read_at=entity.read_at,
            snoozed_until=entity.snoozed_until,
            created_at=entity.created_at,
        )

    def _pref_to_entity(self, model: NotificationPreferenceModel) -> NotificationPreference:
        """Convert NotificationPreferenceModel to domain entity."""
        return NotificationPreference(
            id=model.id,
            user_id=model.user_id,
            ticket_assignments=model.ticket_assignments,
            ticket_status_changes=model.ticket_status_changes,
            asset_assignments=model.asset_assignments,
            maintenance_alerts=model.maintenance_alerts,
            upgrade_requests=model.upgrade_requests,
            system_announcements=model.system_announcements,
            employee_changes=model.employee_changes,
            dnd_enabled=model.dnd_enabled,
            dnd_start_time=model.dnd_start_time,
            dnd_end_time=model.dnd_end_time,
            dnd_days=[int(d) for d in model.dnd_days or []],
            updated_at=model.updated_at,
        )
