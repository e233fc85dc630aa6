"""Notification service layer: gated creation, broadcast fan-out and the delivery feed."""

import re
from collections.abc import Callable, Iterable
from datetime import datetime, timedelta, timezone
from enum import StrEnum
from typing import Any, TypeVar
from zoneinfo import ZoneInfo

import structlog
from sqlalchemy.exc import SQLAlchemyError

from core.config import settings
from core.exceptions import PersistenceError, ValidationError
from domain.entities.display import DisplayItem, DomainSnapshot
from domain.entities.notification import (
    DEFAULT_CATEGORY,
    DEFAULT_PRIORITY,
    BroadcastResult,
    Notification,
    NotificationCategory,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
    PreferenceKey,
)
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.notification_gates import evaluate_gates
from domain.services.notification_synthesizer import merge_for_display, synthesize

logger = structlog.get_logger()

BROADCAST_ALL = "all"
CLOCK_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")

E = TypeVar("E", bound=StrEnum)


def organization_now() -> datetime:
    """Current wall-clock time in the organization's timezone."""
    return datetime.now(ZoneInfo(settings.timezone))


def to_naive_utc(value: datetime) -> datetime:
    """Normalize a timestamp to the naive UTC form stored in the database."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def coerce_enum(enum_cls: type[E], value: Any, field: str) -> E:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {field}: {value!r}", field=field) from exc


class NotificationService:
    """Service layer for notification creation and management."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        clock: Callable[[], datetime] = organization_now,
        default_limit: int = settings.feed_default_limit,
        max_limit: int = settings.feed_max_limit,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._default_limit = default_limit
        self._max_limit = max_limit

    # --- Gated creation ---

    async def notify(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        title: str,
        message: str,
        type_: NotificationType | str,
        entity_id: int | None = None,
        priority: NotificationPriority | str | None = None,
        category: NotificationCategory | str | None = None,
        preference_key: PreferenceKey | None = None,
    ) -> Notification | None:
        """Create a notification within an existing UoW transaction.

        Designed to be called from domain event handlers inside their own
        transaction. The recipient's preference record is read once and
        handed to the gate evaluator; nothing is written when a gate
        suppresses the notification.

        Args:
            uow: The active Unit of Work (caller manages commit).
            recipient_id: The user who will receive the notification.
            title: Pre-rendered title.
            message: Pre-rendered message.
            type_: Domain area of the originating event.
            entity_id: Optional ID of the originating entity.
            priority: Defaults to medium.
            category: Display category; defaults to alerts when persisted.
            preference_key: Toggle that governs delivery, when the caller knows it.

        Returns:
            The persisted Notification, or None if a gate suppressed it.

        Raises:
            ValidationError: If title or message is blank or an enum value is unknown.
            PersistenceError: If the insert fails.
        """
        if not title or not title.strip():
            raise ValidationError("title is required", field="title")
        if not message or not message.strip():
            raise ValidationError("message is required", field="message")

        type_ = coerce_enum(NotificationType, type_, "type")
        resolved_priority = (
            coerce_enum(NotificationPriority, priority, "priority") if priority else DEFAULT_PRIORITY
        )
        resolved_category = coerce_enum(NotificationCategory, category, "category") if category else None

        pref = await uow.notifications.get_preference(recipient_id)
        decision = evaluate_gates(
            pref,
            type_=type_,
            title=title,
            message=message,
            priority=resolved_priority,
            now=self._clock(),
            category=resolved_category,
            preference_key=preference_key,
        )

        if not decision.allowed:
            logger.info(
                "notification_suppressed",
                user_id=recipient_id,
                type=type_.value,
                priority=resolved_priority.value,
                preference_key=decision.preference_key,
                reason=decision.reason,
                title=title,
            )
            return None

        notification = Notification(
            user_id=recipient_id,
            title=title,
            message=message,
            type=type_,
            priority=resolved_priority,
            category=resolved_category or DEFAULT_CATEGORY,
            entity_id=entity_id,
        )
        created = await self._persist(uow, notification)

        logger.info(
            "notification_created",
            notification_id=created.id,
            user_id=recipient_id,
            type=type_.value,
            priority=resolved_priority.value,
            entity_id=entity_id,
            reason=decision.reason,
        )
        return created

    async def create(
        self,
        recipient_id: int,
        title: str,
        message: str,
        type_: NotificationType | str,
        entity_id: int | None = None,
        priority: NotificationPriority | str | None = None,
        category: NotificationCategory | str | None = None,
        preference_key: PreferenceKey | None = None,
    ) -> Notification | None:
        """Gated creation in its own transaction. See ``notify``."""
        async with self._uow_factory() as uow:
            created = await self.notify(
                uow,
                recipient_id=recipient_id,
                title=title,
                message=message,
                type_=type_,
                entity_id=entity_id,
                priority=priority,
                category=category,
                preference_key=preference_key,
            )
            if created is not None:
                await self._commit(uow, {"user_id": recipient_id, "title": title})
            return created

    async def create_unchecked(
        self,
        recipient_id: int,
        title: str,
        message: str,
        type_: NotificationType | str,
        entity_id: int | None = None,
        priority: NotificationPriority | str | None = None,
        category: NotificationCategory | str | None = None,
    ) -> Notification:
        """Administrative direct insert that bypasses every gate."""
        if not title or not title.strip():
            raise ValidationError("title is required", field="title")
        if not message or not message.strip():
            raise ValidationError("message is required", field="message")

        notification = Notification(
            user_id=recipient_id,
            title=title,
            message=message,
            type=coerce_enum(NotificationType, type_, "type"),
            priority=(
                coerce_enum(NotificationPriority, priority, "priority") if priority else DEFAULT_PRIORITY
            ),
            category=(
                coerce_enum(NotificationCategory, category, "category") if category else DEFAULT_CATEGORY
            ),
            entity_id=entity_id,
        )
        async with self._uow_factory() as uow:
            created = await self._persist(uow, notification)
            await self._commit(uow, {"user_id": recipient_id, "title": title})

        logger.info(
            "notification_created",
            notification_id=created.id,
            user_id=recipient_id,
            type=created.type.value,
            priority=created.priority.value,
            reason="admin_override",
        )
        return created

    # --- Fan-out ---

    async def notify_many(
        self,
        uow: IUnitOfWork,
        recipient_ids: list[int],
        title: str,
        message: str,
        type_: NotificationType | str,
        entity_id: int | None = None,
        priority: NotificationPriority | str | None = None,
        category: NotificationCategory | str | None = None,
        preference_key: PreferenceKey | None = None,
    ) -> list[Notification]:
        """Run the gated factory once per recipient inside one transaction."""
        delivered: list[Notification] = []
        for recipient_id in recipient_ids:
            created = await self.notify(
                uow,
                recipient_id=recipient_id,
                title=title,
                message=message,
                type_=type_,
                entity_id=entity_id,
                priority=priority,
                category=category,
                preference_key=preference_key,
            )
            if created is not None:
                delivered.append(created)
        return delivered

    async def broadcast(
        self,
        title: str,
        message: str,
        target_role: str | None = BROADCAST_ALL,
        type_: NotificationType | str = NotificationType.SYSTEM,
        priority: NotificationPriority | str | None = None,
    ) -> BroadcastResult:
        """Send one message to every member of a role, or to all users.

        ``recipient_count`` is the number of recipients the message was
        attempted for; ``delivered_count`` is how many passed their gates.
        Both paths (role and all) report the same way.
        """
        if not title or not title.strip():
            raise ValidationError("title is required", field="title")
        if not message or not message.strip():
            raise ValidationError("message is required", field="message")

        async with self._uow_factory() as uow:
            if not target_role or target_role.lower() == BROADCAST_ALL:
                recipient_ids = await uow.users.list_all_ids()
            else:
                recipient_ids = await uow.users.list_ids_by_role(target_role)

            delivered = await self.notify_many(
                uow,
                recipient_ids,
                title=title,
                message=message,
                type_=type_,
                priority=priority,
                category=(
                    NotificationCategory.ANNOUNCEMENTS
                    if type_ == NotificationType.SYSTEM
                    else None
                ),
            )
            if delivered:
                await self._commit(uow, {"target_role": target_role, "title": title})

        result = BroadcastResult(
            recipient_count=len(recipient_ids),
            delivered_count=len(delivered),
        )
        logger.info(
            "notification_broadcast",
            target_role=target_role or BROADCAST_ALL,
            recipient_count=result.recipient_count,
            delivered_count=result.delivered_count,
            suppressed_count=result.suppressed_count,
        )
        return result

    # --- Feed (caller-scoped) ---

    def clamp_limit(self, limit: int | None) -> int:
        """Apply the default page size and the hard cap."""
        if limit is None or limit < 1:
            return self._default_limit
        return min(limit, self._max_limit)

    async def get_notifications(
        self,
        user_id: int,
        limit: int | None = None,
        offset: int = 0,
        since: datetime | None = None,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Get a page of the caller's notifications, newest first.

        Snoozed notifications are included; hiding them is up to the client.
        """
        async with self._uow_factory() as uow:
            return await uow.notifications.list_for_user(
                user_id=user_id,
                limit=self.clamp_limit(limit),
                offset=max(offset, 0),
                since=to_naive_utc(since) if since else None,
                unread_only=unread_only,
            )

    async def get_unread_count(self, user_id: int) -> int:
        """Get the count of unread notifications."""
        async with self._uow_factory() as uow:
            return await uow.notifications.get_unread_count(user_id)

    async def mark_read(self, user_id: int, notification_ids: list[int]) -> int:
        """Mark a batch as read. Ids the caller does not own are ignored."""
        if not notification_ids:
            return 0
        async with self._uow_factory() as uow:
            count = await uow.notifications.mark_read(user_id, list(set(notification_ids)))
            await uow.commit()
            return count

    async def mark_all_read(self, user_id: int) -> int:
        """Mark all notifications as read. Returns count of marked."""
        async with self._uow_factory() as uow:
            count = await uow.notifications.mark_all_read(user_id)
            await uow.commit()
            return count

    async def snooze(
        self,
        notification_id: int,
        user_id: int,
        snooze_until: datetime | None = None,
        minutes: int | None = None,
    ) -> datetime:
        """Snooze one of the caller's notifications.

        An absolute ``snooze_until`` wins over relative ``minutes``.
        Snoozing a notification the caller does not own changes nothing.
        """
        if snooze_until is not None:
            until = to_naive_utc(snooze_until)
        elif minutes is not None:
            if minutes <= 0:
                raise ValidationError("minutes must be positive", field="minutes")
            until = datetime.utcnow() + timedelta(minutes=minutes)
        else:
            raise ValidationError("snooze_until or minutes is required", field="snooze_until")

        async with self._uow_factory() as uow:
            await uow.notifications.snooze(notification_id, user_id, until)
            await uow.commit()
        return until

    async def dismiss(self, notification_id: int, user_id: int) -> None:
        """Hard-delete one of the caller's notifications; unknown ids are a no-op."""
        async with self._uow_factory() as uow:
            deleted = await uow.notifications.delete(notification_id, user_id)
            await uow.commit()
        if deleted:
            logger.debug("notification_dismissed", notification_id=notification_id, user_id=user_id)

    async def clear_all(self, user_id: int) -> int:
        """Hard-delete every notification of the caller."""
        async with self._uow_factory() as uow:
            count = await uow.notifications.delete_all_for_user(user_id)
            await uow.commit()
        logger.info("notifications_cleared", user_id=user_id, deleted_count=count)
        return count

    async def get_display_feed(
        self,
        snapshot: DomainSnapshot,
        dismissed_keys: Iterable[str] = (),
        limit: int | None = None,
    ) -> list[DisplayItem]:
        """Merge the caller's persisted feed with notifications synthesized from ``snapshot``.

        Nothing synthesized is stored; dismissed keys come from the client session.
        """
        persisted = await self.get_notifications(snapshot.user_id, limit=limit)
        return merge_for_display(synthesize(snapshot), persisted, dismissed_keys)

    # --- Preference methods ---

    async def get_preferences(self, user_id: int) -> NotificationPreference:
        """Get the caller's preferences, or the all-enabled defaults if none are stored."""
        async with self._uow_factory() as uow:
            pref = await uow.notifications.get_preference(user_id)
        return pref or NotificationPreference(user_id=user_id)

    async def update_preferences(self, pref: NotificationPreference) -> NotificationPreference:
        """Create or overwrite the caller's preferences (last writer wins)."""
        for field in ("dnd_start_time", "dnd_end_time"):
            value = getattr(pref, field)
            if value is not None and not CLOCK_PATTERN.match(value):
                raise ValidationError(f"{field} must be HH:MM", field=field)
        if any(day not in range(7) for day in pref.dnd_days):
            raise ValidationError("dnd_days must be weekday numbers 0-6", field="dnd_days")
        pref.dnd_days = sorted(set(pref.dnd_days))
        pref.updated_at = datetime.utcnow()
        async with self._uow_factory() as uow:
            result = await uow.notifications.upsert_preference(pref)
            await uow.commit()
            return result

    # --- Cleanup ---

    async def cleanup_read(self, retention_days: int = settings.notification_retention_days) -> int:
        """Delete read notifications older than the retention window."""
        cutoff = datetime.utcnow() - timedelta(days=retention_days)
        async with self._uow_factory() as uow:
            count = await uow.notifications.delete_read_before(cutoff)
            await uow.commit()
            return count

    # --- Persistence helpers ---

    async def _persist(self, uow: IUnitOfWork, notification: Notification) -> Notification:
        try:
            return await uow.notifications.create(notification)
        except SQLAlchemyError as exc:
            context = {
                "user_id": notification.user_id,
                "type": notification.type.value,
                "priority": notification.priority.value,
                "title": notification.title,
                "entity_id": notification.entity_id,
            }
            logger.error("notification_persist_failed", error=str(exc), **context)
            raise PersistenceError("Failed to persist notification", context) from exc

    async def _commit(self, uow: IUnitOfWork, context: dict[str, Any]) -> None:
        try:
            await uow.commit()
        except SQLAlchemyError as exc:
            logger.error("notification_commit_failed", error=str(exc), **context)
            raise PersistenceError("Failed to persist notification", context) from exc
