"""Unit tests for synthesized notifications and the display merge."""

from datetime import date, datetime, timedelta

import pytest

from domain.entities.display import (
    AssetSnapshot,
    DomainSnapshot,
    MaintenanceSnapshot,
    PersistedItem,
    SynthesizedItem,
    TicketSnapshot,
    UpgradeSnapshot,
)
from domain.entities.notification import (
    Notification,
    NotificationCategory,
    NotificationPriority,
    NotificationType,
)
from domain.services.notification_synthesizer import (
    RULE_ASSIGNED_TO_ME,
    RULE_DELEGATED_OPEN,
    RULE_MY_SUBMITTED,
    RULE_PENDING_APPROVALS,
    RULE_RECENT_ASSETS,
    RULE_UPCOMING_MAINTENANCE,
    SynthesizedDismissals,
    merge_for_display,
    sort_by_priority,
    synthesize,
    synthesized_key,
)

NOW = datetime(2025, 1, 15, 12, 0)
ME = 10
OTHER = 20


def snapshot(role: str = "Employee", **kwargs) -> DomainSnapshot:
    return DomainSnapshot(user_id=ME, role=role, now=NOW, **kwargs)


def ticket(id_: int, **kwargs) -> TicketSnapshot:
    values = {"ticket_number": f"T-{id_}", "title": "Issue", "status": "Open"}
    values.update(kwargs)
    return TicketSnapshot(id=id_, **values)


def by_rule(results):
    return {n.rule: n for n in results}


def persisted(priority: NotificationPriority, id_: int) -> Notification:
    return Notification(
        user_id=ME,
        title=f"Stored {id_}",
        message="m",
        type=NotificationType.SYSTEM,
        priority=priority,
        id=id_,
    )


class TestKeys:
    """Test synthesized key derivation."""

    def test_key_is_order_independent(self):
        assert synthesized_key("rule", [3, 1, 2]) == synthesized_key("rule", [2, 3, 1])

    def test_key_format(self):
        key = synthesized_key("assigned_to_me", [1, 2])
        rule, count, digest = key.split(":")
        assert rule == "assigned_to_me"
        assert count == "2"
        assert len(digest) == 12

    def test_key_changes_with_cardinality(self):
        assert synthesized_key("rule", [1, 2]) != synthesized_key("rule", [1, 2, 3])

    def test_key_changes_with_membership(self):
        assert synthesized_key("rule", [1, 2]) != synthesized_key("rule", [1, 3])

    def test_key_changes_with_qualifier(self):
        assert synthesized_key("rule", [1], "medium:0") != synthesized_key("rule", [1], "critical:1")
        assert synthesized_key("rule", [1], "") == synthesized_key("rule", [1])

    def test_escalated_ticket_gets_new_key(self):
        before = synthesize(snapshot(tickets=(ticket(1, assigned_to_id=ME, priority="Medium"),)))[0]
        after = synthesize(snapshot(tickets=(ticket(1, assigned_to_id=ME, priority="Critical"),)))[0]

        assert before.priority == NotificationPriority.MEDIUM
        assert after.priority == NotificationPriority.CRITICAL
        assert before.key != after.key

    def test_unchanged_state_keeps_key(self):
        state = snapshot(tickets=(ticket(1, assigned_to_id=ME),))
        first = synthesize(state)[0].key
        later = synthesize(DomainSnapshot(user_id=ME, role="Employee", now=NOW + timedelta(hours=3),
                                          tickets=state.tickets))[0].key
        assert first == later


class TestRules:
    """Test each synthesis rule."""

    def test_empty_snapshot_yields_nothing(self):
        assert synthesize(snapshot()) == []

    def test_assigned_to_me_medium_without_urgent(self):
        results = by_rule(synthesize(snapshot(tickets=(ticket(1, assigned_to_id=ME),))))
        n = results[RULE_ASSIGNED_TO_ME]
        assert n.priority == NotificationPriority.MEDIUM
        assert n.title == "1 Ticket Assigned to You"
        assert n.category == NotificationCategory.ASSIGNMENTS

    def test_assigned_to_me_high_with_urgent(self):
        tickets = (
            ticket(1, assigned_to_id=ME, priority="High"),
            ticket(2, assigned_to_id=ME),
        )
        n = by_rule(synthesize(snapshot(tickets=tickets)))[RULE_ASSIGNED_TO_ME]
        assert n.priority == NotificationPriority.HIGH
        assert n.title == "2 Tickets Assigned to You (1 Urgent)"

    def test_assigned_to_me_critical(self):
        tickets = (ticket(1, assigned_to_id=ME, priority="Critical"),)
        n = by_rule(synthesize(snapshot(tickets=tickets)))[RULE_ASSIGNED_TO_ME]
        assert n.priority == NotificationPriority.CRITICAL

    def test_closed_tickets_are_ignored(self):
        tickets = (
            ticket(1, assigned_to_id=ME, status="Resolved"),
            ticket(2, submitted_by_id=ME, status="Closed"),
        )
        assert synthesize(snapshot(tickets=tickets)) == []

    def test_my_submitted(self):
        n = by_rule(synthesize(snapshot(tickets=(ticket(1, submitted_by_id=ME),))))[RULE_MY_SUBMITTED]
        assert n.priority == NotificationPriority.LOW
        assert n.category == NotificationCategory.STATUS_CHANGES

    @pytest.mark.parametrize("role", ["Manager", "Admin", "SuperAdmin"])
    def test_pending_approvals_for_approvers(self, role: str):
        upgrades = (
            UpgradeSnapshot(id=1, asset_name="Laptop", status="Pending"),
            UpgradeSnapshot(id=2, asset_name="Monitor", status="Approved"),
        )
        n = by_rule(synthesize(snapshot(role=role, upgrades=upgrades)))[RULE_PENDING_APPROVALS]
        assert n.priority == NotificationPriority.HIGH
        assert n.entity_ids == (1,)

    @pytest.mark.parametrize("role", ["Employee", "Agent"])
    def test_pending_approvals_hidden_from_others(self, role: str):
        upgrades = (UpgradeSnapshot(id=1, asset_name="Laptop", status="Pending"),)
        assert RULE_PENDING_APPROVALS not in by_rule(synthesize(snapshot(role=role, upgrades=upgrades)))

    def test_recent_assets_window(self):
        assets = (
            AssetSnapshot(id=1, name="Laptop", assigned_to_id=ME, assigned_at=NOW - timedelta(days=2)),
            AssetSnapshot(id=2, name="Phone", assigned_to_id=ME, assigned_at=NOW - timedelta(days=30)),
            AssetSnapshot(id=3, name="Desk", assigned_to_id=OTHER, assigned_at=NOW),
        )
        n = by_rule(synthesize(snapshot(assets=assets)))[RULE_RECENT_ASSETS]
        assert n.entity_ids == (1,)
        assert n.priority == NotificationPriority.INFO

    def test_upcoming_maintenance_for_my_assets(self):
        assets = (AssetSnapshot(id=1, name="Laptop", assigned_to_id=ME),)
        maintenance = (
            MaintenanceSnapshot(id=5, asset_id=1, asset_name="Laptop",
                                maintenance_type="Preventive", scheduled_date=date(2025, 1, 17)),
            MaintenanceSnapshot(id=6, asset_id=1, asset_name="Laptop",
                                maintenance_type="Repair", scheduled_date=date(2025, 2, 17)),
            MaintenanceSnapshot(id=7, asset_id=1, asset_name="Laptop",
                                maintenance_type="Repair", scheduled_date=date(2025, 1, 16),
                                status="Completed"),
            MaintenanceSnapshot(id=8, asset_id=99, asset_name="Server",
                                maintenance_type="Repair", scheduled_date=date(2025, 1, 16)),
        )
        n = by_rule(synthesize(snapshot(assets=assets, maintenance=maintenance)))[RULE_UPCOMING_MAINTENANCE]
        assert n.entity_ids == (5,)
        assert n.title == "1 Maintenance Visit This Week"

    def test_delegated_open(self):
        tickets = (
            ticket(1, assigned_by_id=ME, assigned_to_id=OTHER),
            ticket(2, assigned_by_id=ME, assigned_to_id=ME),
        )
        n = by_rule(synthesize(snapshot(tickets=tickets)))[RULE_DELEGATED_OPEN]
        assert n.entity_ids == (1,)
        assert n.category == NotificationCategory.REMINDERS

    def test_created_at_is_snapshot_time(self):
        n = synthesize(snapshot(tickets=(ticket(1, submitted_by_id=ME),)))[0]
        assert n.created_at == NOW


class TestMerge:
    """Test the merged display ordering."""

    def test_sort_is_stable_by_priority(self):
        items = [
            PersistedItem(persisted(NotificationPriority.LOW, 1)),
            PersistedItem(persisted(NotificationPriority.CRITICAL, 2)),
            PersistedItem(persisted(NotificationPriority.MEDIUM, 3)),
            PersistedItem(persisted(NotificationPriority.HIGH, 4)),
            PersistedItem(persisted(NotificationPriority.CRITICAL, 5)),
        ]
        ordered = sort_by_priority(items)
        assert [i.notification.id for i in ordered] == [2, 5, 4, 3, 1]

    def test_info_sorts_last(self):
        items = [
            PersistedItem(persisted(NotificationPriority.INFO, 1)),
            PersistedItem(persisted(NotificationPriority.LOW, 2)),
        ]
        assert [i.notification.id for i in sort_by_priority(items)] == [2, 1]

    def test_merge_tags_sources_and_filters_dismissed(self):
        state = snapshot(
            tickets=(ticket(1, assigned_to_id=ME), ticket(2, submitted_by_id=ME)),
        )
        synthesized = synthesize(state)
        dismissed = [n.key for n in synthesized if n.rule == RULE_MY_SUBMITTED]

        merged = merge_for_display(synthesized, [persisted(NotificationPriority.HIGH, 9)], dismissed)

        assert isinstance(merged[0], PersistedItem)
        assert isinstance(merged[1], SynthesizedItem)
        assert merged[1].notification.rule == RULE_ASSIGNED_TO_ME
        assert len(merged) == 2


class TestDismissals:
    """Test the session-local dismissal set."""

    def test_dismiss_and_filter(self):
        synthesized = synthesize(snapshot(tickets=(ticket(1, submitted_by_id=ME),)))
        items = merge_for_display(synthesized, [persisted(NotificationPriority.LOW, 1)])
        dismissals = SynthesizedDismissals()

        dismissals.dismiss(synthesized[0].key)

        assert synthesized[0].key in dismissals
        remaining = dismissals.filter(items)
        assert len(remaining) == 1
        assert isinstance(remaining[0], PersistedItem)

    def test_changed_condition_reappears(self):
        dismissals = SynthesizedDismissals()
        first = synthesize(snapshot(tickets=(ticket(1, submitted_by_id=ME),)))[0]
        dismissals.dismiss(first.key)

        grown = synthesize(snapshot(tickets=(ticket(1, submitted_by_id=ME), ticket(2, submitted_by_id=ME))))[0]

        assert not dismissals.is_dismissed(grown.key)

    def test_dismissed_assignment_reappears_when_escalated(self):
        before = synthesize(snapshot(tickets=(ticket(1, assigned_to_id=ME, priority="Medium"),)))
        after = synthesize(snapshot(tickets=(ticket(1, assigned_to_id=ME, priority="Critical"),)))

        merged = merge_for_display(after, [], dismissed_keys=[before[0].key])

        assert len(merged) == 1
        assert merged[0].priority == NotificationPriority.CRITICAL

    def test_dismissed_assignment_stays_hidden_while_unchanged(self):
        state = snapshot(tickets=(ticket(1, assigned_to_id=ME, priority="High"),))
        first = synthesize(state)

        assert merge_for_display(synthesize(state), [], dismissed_keys=[first[0].key]) == []

    def test_reset_clears_everything(self):
        dismissals = SynthesizedDismissals(["a", "b"])
        assert len(dismissals) == 2
        dismissals.reset()
        assert len(dismissals) == 0
        assert not dismissals.is_dismissed("a")
