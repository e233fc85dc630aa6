"""Notification API routes."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query, Request, status

from api.dependencies.auth import AdminUser, CurrentUser
from api.v1.dependencies import get_notification_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.display import DisplayRequest, DisplayResponse, to_display_response
from api.v1.schemas.notification import (
    BroadcastRequest,
    BroadcastResponse,
    CountResponse,
    MarkReadRequest,
    NotificationCreate,
    NotificationDetailResponse,
    NotificationListResponse,
    NotificationPreferenceRequest,
    NotificationPreferenceResponse,
    NotificationResponse,
    SnoozeRequest,
    SnoozeResponse,
    UnreadCountResponse,
)
from core.rate_limit import ADMIN_LIMIT, READ_LIMIT, WRITE_LIMIT, limiter
from domain.entities.display import DomainSnapshot
from domain.services.notification_service import NotificationService

# Caller-scoped feed routes
user_notifications_router = APIRouter(
    prefix="/users/me",
    tags=["notifications"],
)

# Admin-only routes
admin_notifications_router = APIRouter(
    prefix="/notifications",
    tags=["notifications-admin"],
    responses={403: {"model": ErrorResponse, "description": "Admin role required"}},
)


# --- Feed ---


@user_notifications_router.get(
    "/notifications",
    response_model=NotificationListResponse,
    summary="List notifications",
    responses={
        200: {"description": "Page of the caller's notifications, newest first"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def list_notifications(
    request: Request,
    user: CurrentUser,
    limit: int | None = Query(None, description="Page size (capped server-side)"),
    offset: int = Query(0, ge=0),
    since: datetime | None = Query(None, description="Only notifications created after this"),
    unread_only: bool = Query(False),
    service: NotificationService = Depends(get_notification_service),
) -> NotificationListResponse:
    """List the caller's notifications. Snoozed notifications are included."""
    page_size = service.clamp_limit(limit)
    notifications = await service.get_notifications(
        user_id=user.id,
        limit=page_size,
        offset=offset,
        since=since,
        unread_only=unread_only,
    )
    unread_count = await service.get_unread_count(user.id)
    return NotificationListResponse(
        data=[NotificationResponse.from_entity(n) for n in notifications],
        meta={
            "limit": page_size,
            "offset": offset,
            "count": len(notifications),
            "unread_count": unread_count,
        },
    )


@user_notifications_router.get(
    "/notifications/unread-count",
    response_model=UnreadCountResponse,
    summary="Get unread notification count",
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_unread_count(
    request: Request,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> UnreadCountResponse:
    """Get the caller's unread notification count."""
    count = await service.get_unread_count(user.id)
    return UnreadCountResponse(count=count)


@user_notifications_router.post(
    "/notifications/mark-read",
    response_model=CountResponse,
    summary="Mark notifications as read",
    responses={
        200: {"description": "Number of the caller's notifications updated"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def mark_notifications_read(
    request: Request,
    body: MarkReadRequest,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> CountResponse:
    """Mark a batch as read. Ids the caller does not own are silently ignored."""
    count = await service.mark_read(user.id, body.notification_ids)
    return CountResponse(count=count)


@user_notifications_router.post(
    "/notifications/mark-all-read",
    response_model=CountResponse,
    summary="Mark all notifications as read",
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def mark_all_notifications_read(
    request: Request,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> CountResponse:
    """Mark every unread notification of the caller as read."""
    count = await service.mark_all_read(user.id)
    return CountResponse(count=count)


@user_notifications_router.post(
    "/notifications/{notification_id}/snooze",
    response_model=SnoozeResponse,
    summary="Snooze a notification",
    responses={
        200: {"description": "Computed snooze deadline"},
        400: {"model": ErrorResponse, "description": "Neither snooze_until nor minutes given"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def snooze_notification(
    request: Request,
    notification_id: int,
    body: SnoozeRequest,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> SnoozeResponse:
    """Snooze one of the caller's notifications until a time, or for some minutes."""
    until = await service.snooze(
        notification_id,
        user.id,
        snooze_until=body.snooze_until,
        minutes=body.minutes,
    )
    return SnoozeResponse(snoozed_until=until)


@user_notifications_router.delete(
    "/notifications/{notification_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Dismiss a notification",
    responses={
        204: {"description": "Deleted, or nothing to delete"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def dismiss_notification(
    request: Request,
    notification_id: int,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> None:
    """Permanently delete one of the caller's notifications."""
    await service.dismiss(notification_id, user.id)


@user_notifications_router.delete(
    "/notifications",
    response_model=CountResponse,
    summary="Clear all notifications",
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def clear_all_notifications(
    request: Request,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> CountResponse:
    """Permanently delete every notification of the caller."""
    count = await service.clear_all(user.id)
    return CountResponse(count=count)


@user_notifications_router.post(
    "/notifications/display",
    response_model=DisplayResponse,
    summary="Merged display feed",
    responses={
        200: {"description": "Persisted and synthesized notifications, critical first"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_display_feed(
    request: Request,
    body: DisplayRequest,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> DisplayResponse:
    """Merge persisted notifications with ones synthesized from live domain state.

    Synthesized notifications are never stored. Keys dismissed during the
    client session are passed back in ``dismissed_keys`` and filtered out.
    """
    snapshot = DomainSnapshot(
        user_id=user.id,
        role=str(user.role),
        now=datetime.utcnow(),
        tickets=body.ticket_snapshots(),
        assets=body.asset_snapshots(),
        maintenance=body.maintenance_snapshots(),
        upgrades=body.upgrade_snapshots(),
    )
    items = await service.get_display_feed(snapshot, body.dismissed_keys, limit=body.limit)
    return DisplayResponse(data=[to_display_response(item) for item in items])


# --- Preferences ---


@user_notifications_router.get(
    "/notification-preferences",
    response_model=NotificationPreferenceResponse,
    summary="Get notification preferences",
    responses={
        200: {"description": "Stored preferences, or the all-enabled defaults"},
    },
)
@limiter.limit(READ_LIMIT)  # type: ignore[untyped-decorator]
async def get_notification_preferences(
    request: Request,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceResponse:
    """Get the caller's preferences. Reading never creates a record."""
    pref = await service.get_preferences(user.id)
    return NotificationPreferenceResponse.model_validate(pref)


@user_notifications_router.put(
    "/notification-preferences",
    response_model=NotificationPreferenceResponse,
    summary="Update notification preferences",
    responses={
        200: {"description": "Preferences created or replaced"},
    },
)
@limiter.limit(WRITE_LIMIT)  # type: ignore[untyped-decorator]
async def update_notification_preferences(
    request: Request,
    body: NotificationPreferenceRequest,
    user: CurrentUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationPreferenceResponse:
    """Create or replace the caller's toggles and Do-Not-Disturb schedule."""
    pref = await service.update_preferences(body.to_entity(user.id))
    return NotificationPreferenceResponse.model_validate(pref)


# --- Admin ---


@admin_notifications_router.post(
    "",
    response_model=NotificationDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a notification (admin)",
    responses={
        201: {"description": "Inserted without evaluating any gate"},
    },
)
@limiter.limit(ADMIN_LIMIT)  # type: ignore[untyped-decorator]
async def create_notification(
    request: Request,
    body: NotificationCreate,
    user: AdminUser,
    service: NotificationService = Depends(get_notification_service),
) -> NotificationDetailResponse:
    """Insert a notification directly. Preferences and Do-Not-Disturb are ignored."""
    notification = await service.create_unchecked(
        recipient_id=body.user_id,
        title=body.title,
        message=body.message,
        type_=body.type,
        entity_id=body.entity_id,
        priority=body.priority,
        category=body.category,
    )
    return NotificationDetailResponse(data=NotificationResponse.from_entity(notification))


@admin_notifications_router.post(
    "/broadcast",
    response_model=BroadcastResponse,
    summary="Broadcast a notification (admin)",
    responses={
        200: {"description": "Attempted, delivered and suppressed counts"},
    },
)
@limiter.limit(ADMIN_LIMIT)  # type: ignore[untyped-decorator]
async def broadcast_notification(
    request: Request,
    body: BroadcastRequest,
    user: AdminUser,
    service: NotificationService = Depends(get_notification_service),
) -> BroadcastResponse:
    """Send one message to every member of a role, or to all users.

    Each recipient's preferences and Do-Not-Disturb schedule still apply.
    """
    result = await service.broadcast(
        title=body.title,
        message=body.message,
        target_role=body.target_role,
        type_=body.notification_type,
        priority=body.priority,
    )
    return BroadcastResponse(
        recipient_count=result.recipient_count,
        delivered_count=result.delivered_count,
        suppressed_count=result.suppressed_count,
    )
