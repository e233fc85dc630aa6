"""Pure delivery gates: Do-Not-Disturb window and per-category preference toggles.

Everything here is a function of its arguments. The preference record is
passed in by the caller (``None`` when the user never saved preferences),
which keeps the rules unit-testable without a database.
"""

from dataclasses import dataclass
from datetime import datetime, time

from domain.entities.notification import (
    NotificationCategory,
    NotificationPreference,
    NotificationPriority,
    NotificationType,
    PreferenceKey,
)

REASON_ALLOWED = "allowed"
REASON_CRITICAL = "critical_bypass"
REASON_NO_PREFERENCES = "no_preferences"
REASON_DND = "dnd_active"
REASON_PREFERENCE_DISABLED = "preference_disabled"


@dataclass(frozen=True, slots=True)
class GateDecision:
    """Result of evaluating both gates for one recipient."""

    allowed: bool
    reason: str
    preference_key: PreferenceKey | None = None


def parse_clock(value: str) -> time:
    """Parse an ``HH:MM`` time of day."""
    hours, _, minutes = value.partition(":")
    return time(int(hours), int(minutes))


def is_within_window(now: time, start: time, end: time) -> bool:
    """Check whether ``now`` falls inside a daily window, bounds inclusive.

    A window whose start is after its end wraps past midnight
    (e.g. 22:00-06:00).
    """
    if start <= end:
        return start <= now <= end
    return now >= start or now <= end


def sunday_based_weekday(moment: datetime) -> int:
    """Weekday number with 0 = Sunday, matching stored ``dnd_days``."""
    return (moment.weekday() + 1) % 7


def is_dnd_active(pref: NotificationPreference, now: datetime) -> bool:
    """Check whether the user's Do-Not-Disturb schedule covers ``now``."""
    if not pref.dnd_enabled or not pref.dnd_start_time or not pref.dnd_end_time:
        return False

    if pref.dnd_days and sunday_based_weekday(now) not in pref.dnd_days:
        return False

    try:
        start = parse_clock(pref.dnd_start_time)
        end = parse_clock(pref.dnd_end_time)
    except ValueError:
        # Malformed schedule fails open
        return False

    # Minute resolution: 06:00:59 still counts as 06:00
    return is_within_window(time(now.hour, now.minute), start, end)


# --- Preference key resolution ---

_CATEGORY_KEYS: dict[tuple[NotificationType, NotificationCategory], PreferenceKey] = {
    (NotificationType.TICKET, NotificationCategory.ASSIGNMENTS): PreferenceKey.TICKET_ASSIGNMENTS,
    (NotificationType.TICKET, NotificationCategory.STATUS_CHANGES): PreferenceKey.TICKET_STATUS_CHANGES,
    (NotificationType.ASSET, NotificationCategory.ASSIGNMENTS): PreferenceKey.ASSET_ASSIGNMENTS,
    (NotificationType.ASSET, NotificationCategory.MAINTENANCE): PreferenceKey.MAINTENANCE_ALERTS,
    (NotificationType.ASSET, NotificationCategory.APPROVALS): PreferenceKey.UPGRADE_REQUESTS,
}

_TYPE_KEYS: dict[NotificationType, PreferenceKey] = {
    NotificationType.SYSTEM: PreferenceKey.SYSTEM_ANNOUNCEMENTS,
    NotificationType.EMPLOYEE: PreferenceKey.EMPLOYEE_CHANGES,
}


def infer_preference_key(
    type_: NotificationType, title: str, message: str
) -> PreferenceKey | None:
    """Guess the toggle from rendered text.

    Fallback for callers that do not pass a category. Rule order matters:
    the first matching rule wins.
    """
    title = title.lower()
    message = message.lower()

    def mentions(word: str) -> bool:
        return word in title or word in message

    if type_ == NotificationType.TICKET and mentions("assigned"):
        return PreferenceKey.TICKET_ASSIGNMENTS
    if type_ == NotificationType.TICKET and mentions("status"):
        return PreferenceKey.TICKET_STATUS_CHANGES
    if type_ == NotificationType.ASSET and (mentions("assigned") or "checked" in message):
        return PreferenceKey.ASSET_ASSIGNMENTS
    if type_ == NotificationType.ASSET and mentions("maintenance"):
        return PreferenceKey.MAINTENANCE_ALERTS
    if mentions("upgrade"):
        return PreferenceKey.UPGRADE_REQUESTS
    return _TYPE_KEYS.get(type_)


def resolve_preference_key(
    type_: NotificationType,
    title: str,
    message: str,
    category: NotificationCategory | None = None,
    preference_key: PreferenceKey | None = None,
) -> PreferenceKey | None:
    """Pick the toggle that governs a notification.

    An explicit key wins, then the (type, category) mapping, then keyword
    inference. ``None`` means no toggle applies.
    """
    if preference_key is not None:
        return preference_key
    if category is not None:
        key = _CATEGORY_KEYS.get((type_, category)) or _TYPE_KEYS.get(type_)
        if key is not None:
            return key
    return infer_preference_key(type_, title, message)


def evaluate_gates(
    pref: NotificationPreference | None,
    *,
    type_: NotificationType,
    title: str,
    message: str,
    priority: NotificationPriority,
    now: datetime,
    category: NotificationCategory | None = None,
    preference_key: PreferenceKey | None = None,
) -> GateDecision:
    """Decide whether a notification may be persisted for one recipient.

    No preference record means deliver (fail-open). Critical priority is
    never suppressed.
    """
    key = resolve_preference_key(type_, title, message, category, preference_key)

    if priority == NotificationPriority.CRITICAL:
        return GateDecision(allowed=True, reason=REASON_CRITICAL, preference_key=key)

    if pref is None:
        return GateDecision(allowed=True, reason=REASON_NO_PREFERENCES, preference_key=key)

    if is_dnd_active(pref, now):
        return GateDecision(allowed=False, reason=REASON_DND, preference_key=key)

    if key is not None and not pref.is_enabled(key):
        return GateDecision(allowed=False, reason=REASON_PREFERENCE_DISABLED, preference_key=key)

    return GateDecision(allowed=True, reason=REASON_ALLOWED, preference_key=key)
