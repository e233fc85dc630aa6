"""Ephemeral notifications derived from live domain state.

``synthesize`` is a pure function of a ``DomainSnapshot``: no I/O and no
clock reads (``snapshot.now`` is the clock). Each rule yields at most one
summary notification whose key is derived from the rule name, the number
of matching entities, their sorted ids and any rule-specific qualifier
(such as the urgency of assigned tickets), so an unchanged condition keeps
its key across evaluations and an escalated one gets a new key.
"""

import hashlib
from collections.abc import Callable, Iterable
from datetime import timedelta

from domain.entities.display import (
    DisplayItem,
    DomainSnapshot,
    PersistedItem,
    SynthesizedItem,
    SynthesizedNotification,
)
from domain.entities.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from domain.entities.user import APPROVER_ROLES

RULE_ASSIGNED_TO_ME = "assigned_to_me"
RULE_MY_SUBMITTED = "my_submitted"
RULE_PENDING_APPROVALS = "pending_approvals"
RULE_RECENT_ASSETS = "recent_assets"
RULE_UPCOMING_MAINTENANCE = "upcoming_maintenance"
RULE_DELEGATED_OPEN = "delegated_open"

INACTIVE_TICKET_STATUSES = frozenset({"Resolved", "Closed"})
URGENT_TICKET_PRIORITIES = frozenset({"Critical", "Urgent", "High"})
PENDING_UPGRADE_STATUSES = frozenset({"Pending", "Pending Approval"})
OPEN_MAINTENANCE_STATUSES = frozenset({"Scheduled", "In Progress"})

RECENT_WINDOW = timedelta(days=7)
UPCOMING_WINDOW = timedelta(days=7)


def synthesized_key(rule: str, entity_ids: Iterable[int], qualifier: str = "") -> str:
    """Stable content key: rule name, cardinality and a hash of the sorted ids.

    ``qualifier`` is hashed along with the ids; rules whose condition can
    change without the entity set changing pass it.
    """
    ids = sorted(set(entity_ids))
    material = ",".join(str(i) for i in ids)
    if qualifier:
        material += f"|{qualifier}"
    digest = hashlib.sha1(material.encode()).hexdigest()[:12]
    return f"{rule}:{len(ids)}:{digest}"


def _plural(count: int, singular: str, plural: str | None = None) -> str:
    if count == 1:
        return f"{count} {singular}"
    return f"{count} {plural or singular + 's'}"


def _build(
    snapshot: DomainSnapshot,
    rule: str,
    entity_ids: list[int],
    title: str,
    message: str,
    type_: NotificationType,
    category: NotificationCategory,
    priority: NotificationPriority,
    qualifier: str = "",
) -> SynthesizedNotification:
    return SynthesizedNotification(
        key=synthesized_key(rule, entity_ids, qualifier),
        rule=rule,
        title=title,
        message=message,
        type=type_,
        category=category,
        priority=priority,
        created_at=snapshot.now,
        entity_ids=tuple(sorted(set(entity_ids))),
    )


# --- Rules ---


def _assigned_to_me(snapshot: DomainSnapshot) -> SynthesizedNotification | None:
    tickets = [
        t
        for t in snapshot.tickets
        if t.assigned_to_id == snapshot.user_id and t.status not in INACTIVE_TICKET_STATUSES
    ]
    if not tickets:
        return None

    urgent = [t for t in tickets if t.priority in URGENT_TICKET_PRIORITIES]
    if any(t.priority == "Critical" for t in urgent):
        priority = NotificationPriority.CRITICAL
    elif urgent:
        priority = NotificationPriority.HIGH
    else:
        priority = NotificationPriority.MEDIUM

    title = f"{_plural(len(tickets), 'Ticket')} Assigned to You"
    if urgent:
        title += f" ({len(urgent)} Urgent)"
    return _build(
        snapshot,
        RULE_ASSIGNED_TO_ME,
        [t.id for t in tickets],
        title=title,
        message=f"{_plural(len(tickets), 'open ticket')} awaiting your action.",
        type_=NotificationType.TICKET,
        category=NotificationCategory.ASSIGNMENTS,
        priority=priority,
        qualifier=f"{priority.value}:{len(urgent)}",
    )


def _my_submitted(snapshot: DomainSnapshot) -> SynthesizedNotification | None:
    tickets = [
        t
        for t in snapshot.tickets
        if t.submitted_by_id == snapshot.user_id and t.status not in INACTIVE_TICKET_STATUSES
    ]
    if not tickets:
        return None
    return _build(
        snapshot,
        RULE_MY_SUBMITTED,
        [t.id for t in tickets],
        title=f"{_plural(len(tickets), 'Request')} In Progress",
        message=f"{_plural(len(tickets), 'ticket')} you submitted still being worked on.",
        type_=NotificationType.TICKET,
        category=NotificationCategory.STATUS_CHANGES,
        priority=NotificationPriority.LOW,
    )


def _pending_approvals(snapshot: DomainSnapshot) -> SynthesizedNotification | None:
    if snapshot.role not in APPROVER_ROLES:
        return None
    upgrades = [u for u in snapshot.upgrades if u.status in PENDING_UPGRADE_STATUSES]
    if not upgrades:
        return None
    return _build(
        snapshot,
        RULE_PENDING_APPROVALS,
        [u.id for u in upgrades],
        title=f"{_plural(len(upgrades), 'Upgrade')} Pending Approval",
        message=f"{_plural(len(upgrades), 'upgrade request')} waiting for your decision.",
        type_=NotificationType.ASSET,
        category=NotificationCategory.APPROVALS,
        priority=NotificationPriority.HIGH,
    )


def _recent_assets(snapshot: DomainSnapshot) -> SynthesizedNotification | None:
    cutoff = snapshot.now - RECENT_WINDOW
    assets = [
        a
        for a in snapshot.assets
        if a.assigned_to_id == snapshot.user_id
        and a.assigned_at is not None
        and cutoff <= a.assigned_at <= snapshot.now
    ]
    if not assets:
        return None
    return _build(
        snapshot,
        RULE_RECENT_ASSETS,
        [a.id for a in assets],
        title=f"{_plural(len(assets), 'New Asset')} Assigned",
        message=f"{_plural(len(assets), 'asset')} assigned to you in the last 7 days.",
        type_=NotificationType.ASSET,
        category=NotificationCategory.ASSIGNMENTS,
        priority=NotificationPriority.INFO,
    )


def _upcoming_maintenance(snapshot: DomainSnapshot) -> SynthesizedNotification | None:
    my_assets = {a.id for a in snapshot.assets if a.assigned_to_id == snapshot.user_id}
    if not my_assets:
        return None
    today = snapshot.now.date()
    horizon = (snapshot.now + UPCOMING_WINDOW).date()
    records = [
        m
        for m in snapshot.maintenance
        if m.asset_id in my_assets
        and m.status in OPEN_MAINTENANCE_STATUSES
        and today <= m.scheduled_date <= horizon
    ]
    if not records:
        return None
    return _build(
        snapshot,
        RULE_UPCOMING_MAINTENANCE,
        [m.id for m in records],
        title=f"{_plural(len(records), 'Maintenance Visit')} This Week",
        message=(
            f"{_plural(len(records), 'maintenance visit')} planned for your assets "
            "in the next 7 days."
        ),
        type_=NotificationType.ASSET,
        category=NotificationCategory.MAINTENANCE,
        priority=NotificationPriority.MEDIUM,
    )


def _delegated_open(snapshot: DomainSnapshot) -> SynthesizedNotification | None:
    tickets = [
        t
        for t in snapshot.tickets
        if t.assigned_by_id == snapshot.user_id
        and t.assigned_to_id is not None
        and t.assigned_to_id != snapshot.user_id
        and t.status not in INACTIVE_TICKET_STATUSES
    ]
    if not tickets:
        return None
    return _build(
        snapshot,
        RULE_DELEGATED_OPEN,
        [t.id for t in tickets],
        title=f"{_plural(len(tickets), 'Delegated Ticket')} Still Open",
        message=f"{_plural(len(tickets), 'ticket')} you assigned to others not yet resolved.",
        type_=NotificationType.TICKET,
        category=NotificationCategory.REMINDERS,
        priority=NotificationPriority.LOW,
    )


RULES: tuple[Callable[[DomainSnapshot], SynthesizedNotification | None], ...] = (
    _assigned_to_me,
    _my_submitted,
    _pending_approvals,
    _recent_assets,
    _upcoming_maintenance,
    _delegated_open,
)


def synthesize(snapshot: DomainSnapshot) -> list[SynthesizedNotification]:
    """Evaluate every rule against the snapshot, in rule order."""
    results = []
    for rule in RULES:
        notification = rule(snapshot)
        if notification is not None:
            results.append(notification)
    return results


# --- Merge ---


class SynthesizedDismissals:
    """Session-local set of dismissed synthesized keys.

    Held in memory only; a fresh session starts empty, so dismissed
    conditions that still hold reappear after a reload.
    """

    def __init__(self, keys: Iterable[str] = ()) -> None:
        self._keys: set[str] = set(keys)

    def dismiss(self, key: str) -> None:
        self._keys.add(key)

    def is_dismissed(self, key: str) -> bool:
        return key in self._keys

    def reset(self) -> None:
        self._keys.clear()

    def filter(self, items: Iterable[DisplayItem]) -> list[DisplayItem]:
        """Drop synthesized items whose key was dismissed this session."""
        return [
            item
            for item in items
            if not (isinstance(item, SynthesizedItem) and item.notification.key in self._keys)
        ]

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._keys


def sort_by_priority(items: Iterable[DisplayItem]) -> list[DisplayItem]:
    """Stable sort, critical first. Equal priorities keep their input order."""
    return sorted(items, key=lambda item: item.priority.rank)


def merge_for_display(
    synthesized: Iterable[SynthesizedNotification],
    persisted: Iterable[Notification],
    dismissed_keys: Iterable[str] = (),
) -> list[DisplayItem]:
    """Merge both sources into one list ordered by priority.

    Persisted rows are placed after synthesized ones before sorting, so
    within a priority level synthesized items come first. Synthesized
    items dismissed in the caller's session are dropped.
    """
    items: list[DisplayItem] = [SynthesizedItem(n) for n in synthesized]
    items.extend(PersistedItem(n) for n in persisted)
    return SynthesizedDismissals(dismissed_keys).filter(sort_by_priority(items))
