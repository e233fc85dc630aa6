"""Domain event helpers.

Each helper renders the text for one kind of domain event and hands it to
the gated factory with an explicit category and preference key, so no
keyword inference is needed. Helpers run inside the caller's Unit of Work;
the caller commits together with the originating mutation.
"""

from datetime import date
from decimal import Decimal

from domain.entities.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
    PreferenceKey,
)
from domain.entities.user import UserRole
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.notification_service import NotificationService

URGENT_TICKET_PRIORITIES = frozenset({"Critical", "High", "Urgent"})

DATE_FORMAT = "%Y-%m-%d"


def urgent_priority(ticket_priority: str) -> NotificationPriority:
    """Map a ticket priority onto notification priority for urgent tickets."""
    if ticket_priority == "Critical":
        return NotificationPriority.CRITICAL
    return NotificationPriority.HIGH


class NotificationEvents:
    """Notification helpers for ticket, asset, maintenance, upgrade and employee events."""

    def __init__(self, notification_service: NotificationService) -> None:
        self._notifications = notification_service

    # --- Tickets ---

    async def ticket_assigned(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        ticket_number: str,
        ticket_title: str,
        ticket_priority: str = "Medium",
        assigned_by: str | None = None,
        entity_id: int | None = None,
    ) -> Notification | None:
        """Notify the new assignee. Urgent tickets get the urgent variant."""
        if ticket_priority in URGENT_TICKET_PRIORITIES:
            return await self.urgent_ticket(
                uow, recipient_id, ticket_number, ticket_title, ticket_priority, entity_id
            )

        if assigned_by:
            message = f"{assigned_by} assigned you ticket {ticket_number}: {ticket_title}"
        else:
            message = f"You have been assigned ticket {ticket_number}: {ticket_title}"
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title=f"Ticket {ticket_number} Assigned to You",
            message=message,
            type_=NotificationType.TICKET,
            entity_id=entity_id,
            priority=NotificationPriority.MEDIUM,
            category=NotificationCategory.ASSIGNMENTS,
            preference_key=PreferenceKey.TICKET_ASSIGNMENTS,
        )

    async def urgent_ticket(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        ticket_number: str,
        ticket_title: str,
        ticket_priority: str,
        entity_id: int | None = None,
    ) -> Notification | None:
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title=f"Urgent: Ticket {ticket_number} Assigned",
            message=f"HIGH PRIORITY ({ticket_priority}): {ticket_title} - Please address immediately",
            type_=NotificationType.TICKET,
            entity_id=entity_id,
            priority=urgent_priority(ticket_priority),
            category=NotificationCategory.ASSIGNMENTS,
            preference_key=PreferenceKey.TICKET_ASSIGNMENTS,
        )

    async def ticket_status_changed(
        self,
        uow: IUnitOfWork,
        recipient_ids: list[int],
        ticket_number: str,
        ticket_title: str,
        old_status: str,
        new_status: str,
        entity_id: int | None = None,
    ) -> list[Notification]:
        """Notify submitter and assignee; each recipient is notified once."""
        if old_status == new_status:
            return []
        return await self._notifications.notify_many(
            uow,
            list(dict.fromkeys(recipient_ids)),
            title=f"Ticket {ticket_number} Status Updated",
            message=f'Ticket "{ticket_title}" status changed from {old_status} to {new_status}',
            type_=NotificationType.TICKET,
            entity_id=entity_id,
            priority=NotificationPriority.MEDIUM,
            category=NotificationCategory.STATUS_CHANGES,
            preference_key=PreferenceKey.TICKET_STATUS_CHANGES,
        )

    # --- Assets ---

    async def asset_assigned(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        asset_name: str,
        asset_tag: str | None = None,
        entity_id: int | None = None,
    ) -> Notification | None:
        display_name = f"{asset_name} ({asset_tag})" if asset_tag else asset_name
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title="New Asset Assigned to You",
            message=f'Asset "{display_name}" has been assigned to you',
            type_=NotificationType.ASSET,
            entity_id=entity_id,
            priority=NotificationPriority.MEDIUM,
            category=NotificationCategory.ASSIGNMENTS,
            preference_key=PreferenceKey.ASSET_ASSIGNMENTS,
        )

    async def asset_transaction(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        asset_name: str,
        checked_out: bool,
        performed_by: str | None = None,
        entity_id: int | None = None,
    ) -> Notification | None:
        """Notify the holder of a check-out (assigned) or check-in (returned)."""
        action = "checked out to you" if checked_out else "checked in"
        message = f'Asset "{asset_name}" has been {action}'
        if performed_by:
            message += f" by {performed_by}"
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title="Asset Checked Out" if checked_out else "Asset Returned",
            message=message,
            type_=NotificationType.ASSET,
            entity_id=entity_id,
            priority=NotificationPriority.LOW,
            category=NotificationCategory.ASSIGNMENTS,
            preference_key=PreferenceKey.ASSET_ASSIGNMENTS,
        )

    # --- Maintenance ---

    async def maintenance_scheduled(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        asset_name: str,
        maintenance_type: str,
        scheduled_date: date,
        entity_id: int | None = None,
    ) -> Notification | None:
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title="Maintenance Scheduled on Your Asset",
            message=(
                f'{maintenance_type} maintenance scheduled for "{asset_name}" '
                f"on {scheduled_date.strftime(DATE_FORMAT)}"
            ),
            type_=NotificationType.ASSET,
            entity_id=entity_id,
            priority=NotificationPriority.MEDIUM,
            category=NotificationCategory.MAINTENANCE,
            preference_key=PreferenceKey.MAINTENANCE_ALERTS,
        )

    async def maintenance_completed(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        asset_name: str,
        maintenance_type: str,
        entity_id: int | None = None,
    ) -> Notification | None:
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title="Maintenance Completed",
            message=f'{maintenance_type} maintenance completed for your asset "{asset_name}"',
            type_=NotificationType.ASSET,
            entity_id=entity_id,
            priority=NotificationPriority.LOW,
            category=NotificationCategory.MAINTENANCE,
            preference_key=PreferenceKey.MAINTENANCE_ALERTS,
        )

    # --- Upgrades ---

    async def upgrade_requested(
        self,
        uow: IUnitOfWork,
        asset_name: str,
        requested_by: str,
        estimated_cost: Decimal | float | None = None,
        approver_ids: list[int] | None = None,
        entity_id: int | None = None,
    ) -> list[Notification]:
        """Notify approvers. Without explicit approvers, every Manager is notified."""
        if approver_ids is None:
            approver_ids = await uow.users.list_ids_by_role(UserRole.MANAGER)

        cost = f" (Est. Cost: ${float(estimated_cost):.2f})" if estimated_cost else ""
        return await self._notifications.notify_many(
            uow,
            approver_ids,
            title="Asset Upgrade Request Pending Approval",
            message=f'{requested_by} requested an upgrade for "{asset_name}"{cost}',
            type_=NotificationType.ASSET,
            entity_id=entity_id,
            priority=NotificationPriority.HIGH,
            category=NotificationCategory.APPROVALS,
            preference_key=PreferenceKey.UPGRADE_REQUESTS,
        )

    async def upgrade_decided(
        self,
        uow: IUnitOfWork,
        recipient_id: int,
        asset_name: str,
        approved: bool,
        decided_by: str,
        entity_id: int | None = None,
    ) -> Notification | None:
        decision = "approved" if approved else "rejected"
        return await self._notifications.notify(
            uow,
            recipient_id=recipient_id,
            title=f"Upgrade Request {decision.capitalize()}",
            message=f'Your upgrade request for "{asset_name}" was {decision} by {decided_by}',
            type_=NotificationType.ASSET,
            entity_id=entity_id,
            priority=NotificationPriority.MEDIUM,
            category=NotificationCategory.APPROVALS,
            preference_key=PreferenceKey.UPGRADE_REQUESTS,
        )

    # --- Employees ---

    async def employee_onboarding(
        self,
        uow: IUnitOfWork,
        recipient_ids: list[int],
        employee_name: str,
        department: str,
        start_date: date,
        entity_id: int | None = None,
    ) -> list[Notification]:
        return await self._notifications.notify_many(
            uow,
            recipient_ids,
            title="New Employee Onboarding",
            message=(
                f"{employee_name} joining {department} on {start_date.strftime(DATE_FORMAT)}. "
                "Please prepare onboarding checklist."
            ),
            type_=NotificationType.EMPLOYEE,
            entity_id=entity_id,
            priority=NotificationPriority.MEDIUM,
            category=NotificationCategory.REMINDERS,
            preference_key=PreferenceKey.EMPLOYEE_CHANGES,
        )

    async def employee_offboarding(
        self,
        uow: IUnitOfWork,
        recipient_ids: list[int],
        employee_name: str,
        last_day: date,
        entity_id: int | None = None,
    ) -> list[Notification]:
        return await self._notifications.notify_many(
            uow,
            recipient_ids,
            title="Employee Offboarding Required",
            message=(
                f"{employee_name} leaving on {last_day.strftime(DATE_FORMAT)}. "
                "Please initiate asset recovery and offboarding process."
            ),
            type_=NotificationType.EMPLOYEE,
            entity_id=entity_id,
            priority=NotificationPriority.HIGH,
            category=NotificationCategory.ALERTS,
            preference_key=PreferenceKey.EMPLOYEE_CHANGES,
        )

    # --- System ---

    async def system(
        self,
        uow: IUnitOfWork,
        recipient_ids: list[int],
        title: str,
        message: str,
        priority: NotificationPriority | None = None,
    ) -> list[Notification]:
        """System message (version updates, maintenance windows) to an explicit user list."""
        return await self._notifications.notify_many(
            uow,
            recipient_ids,
            title=title,
            message=message,
            type_=NotificationType.SYSTEM,
            priority=priority,
            category=NotificationCategory.ANNOUNCEMENTS,
            preference_key=PreferenceKey.SYSTEM_ANNOUNCEMENTS,
        )
