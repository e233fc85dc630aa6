"""Integration tests for Notifications API."""

from datetime import datetime, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from infrastructure.database.models import (
    NotificationModel,
    NotificationPreferenceModel,
    UserModel,
)

BASE = "/api/v1/users/me/notifications"

# Ids of the users seeded by the shared fixtures
TEST_USER_ID = 1
TEST_ADMIN_ID = 2


async def _seed_notification(
    session_factory: async_sessionmaker[AsyncSession],
    user_id: int,
    title: str,
    created_at: datetime,
    priority: str = "medium",
    is_read: bool = False,
) -> int:
    async with session_factory() as session:
        model = NotificationModel(
            user_id=user_id,
            title=title,
            message=f"{title} body",
            type="Ticket",
            priority=priority,
            category="assignments",
            is_read=is_read,
            created_at=created_at,
        )
        session.add(model)
        await session.commit()
        return model.id


@pytest.fixture
async def seeded_feed(session_factory, seeded_users) -> dict[str, int]:
    """Two notifications for the test user and one for the admin."""
    now = datetime.utcnow()
    return {
        "older": await _seed_notification(
            session_factory, TEST_USER_ID, "Older", now - timedelta(hours=2)
        ),
        "newer": await _seed_notification(
            session_factory, TEST_USER_ID, "Newer", now - timedelta(minutes=5), priority="high"
        ),
        "foreign": await _seed_notification(
            session_factory, TEST_ADMIN_ID, "Admin only", now - timedelta(minutes=1)
        ),
    }


class TestFeed:
    """Caller-scoped feed endpoints."""

    @pytest.mark.asyncio
    async def test_list_newest_first(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.get(BASE)

        assert response.status_code == 200
        data = response.json()
        assert [n["title"] for n in data["data"]] == ["Newer", "Older"]
        assert data["meta"]["unread_count"] == 2
        assert data["meta"]["limit"] == 50
        assert data["data"][0]["read"] is False

    @pytest.mark.asyncio
    async def test_list_pagination(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.get(f"{BASE}?limit=1&offset=1")

        data = response.json()
        assert [n["title"] for n in data["data"]] == ["Older"]
        assert data["meta"]["offset"] == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("requested,applied", [("0", 50), ("-5", 50), ("500", 100)])
    async def test_list_limit_is_clamped(
        self, authenticated_client: AsyncClient, seeded_feed, requested: str, applied: int
    ):
        response = await authenticated_client.get(f"{BASE}?limit={requested}")

        assert response.status_code == 200
        assert response.json()["meta"]["limit"] == applied
        assert len(response.json()["data"]) == 2

    @pytest.mark.asyncio
    async def test_unread_count(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.get(f"{BASE}/unread-count")

        assert response.status_code == 200
        assert response.json()["count"] == 2

    @pytest.mark.asyncio
    async def test_mark_read_ignores_foreign_ids(
        self, authenticated_client: AsyncClient, seeded_feed, session_factory
    ):
        """Only the caller's own rows change; the admin's row stays unread."""
        response = await authenticated_client.post(
            f"{BASE}/mark-read",
            json={"notification_ids": [seeded_feed["older"], seeded_feed["foreign"]]},
        )

        assert response.status_code == 200
        assert response.json()["count"] == 1

        async with session_factory() as session:
            foreign = await session.get(NotificationModel, seeded_feed["foreign"])
            assert foreign.is_read is False

    @pytest.mark.asyncio
    async def test_mark_all_read(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.post(f"{BASE}/mark-all-read")

        assert response.json()["count"] == 2
        count = await authenticated_client.get(f"{BASE}/unread-count")
        assert count.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_unread_only_filter(self, authenticated_client: AsyncClient, seeded_feed):
        await authenticated_client.post(
            f"{BASE}/mark-read", json={"notification_ids": [seeded_feed["newer"]]}
        )

        response = await authenticated_client.get(f"{BASE}?unread_only=true")

        assert [n["title"] for n in response.json()["data"]] == ["Older"]

    @pytest.mark.asyncio
    async def test_snooze_by_minutes(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.post(
            f"{BASE}/{seeded_feed['older']}/snooze", json={"minutes": 60}
        )

        assert response.status_code == 200
        assert "snoozed_until" in response.json()

        feed = await authenticated_client.get(BASE)
        older = next(n for n in feed.json()["data"] if n["id"] == seeded_feed["older"])
        assert older["snoozed_until"] is not None

    @pytest.mark.asyncio
    async def test_snooze_requires_deadline(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.post(f"{BASE}/{seeded_feed['older']}/snooze", json={})

        assert response.status_code == 400
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    @pytest.mark.asyncio
    async def test_dismiss(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.delete(f"{BASE}/{seeded_feed['older']}")

        assert response.status_code == 204
        feed = await authenticated_client.get(BASE)
        assert [n["title"] for n in feed.json()["data"]] == ["Newer"]

    @pytest.mark.asyncio
    async def test_dismiss_foreign_is_noop(
        self, authenticated_client: AsyncClient, seeded_feed, session_factory
    ):
        response = await authenticated_client.delete(f"{BASE}/{seeded_feed['foreign']}")

        assert response.status_code == 204
        async with session_factory() as session:
            assert await session.get(NotificationModel, seeded_feed["foreign"]) is not None

    @pytest.mark.asyncio
    async def test_clear_all(self, authenticated_client: AsyncClient, seeded_feed):
        response = await authenticated_client.delete(BASE)

        assert response.json()["count"] == 2
        feed = await authenticated_client.get(BASE)
        assert feed.json()["data"] == []

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get(BASE)

        assert response.status_code == 401
        assert response.json()["error_code"] == "UNAUTHORIZED"


class TestDisplayFeed:
    """Merged display endpoint."""

    @pytest.mark.asyncio
    async def test_merges_synthesized_and_persisted(
        self, authenticated_client: AsyncClient, seeded_feed
    ):
        body = {
            "tickets": [
                {
                    "id": 1,
                    "ticket_number": "TKT-1",
                    "title": "Server down",
                    "status": "Open",
                    "priority": "Critical",
                    "assigned_to_id": TEST_USER_ID,
                },
            ],
        }

        response = await authenticated_client.post(f"{BASE}/display", json=body)

        assert response.status_code == 200
        items = response.json()["data"]
        assert items[0]["source"] == "synthesized"
        assert items[0]["priority"] == "critical"
        assert items[0]["rule"] == "assigned_to_me"
        assert items[1]["source"] == "persisted"
        assert items[1]["notification"]["title"] == "Newer"

    @pytest.mark.asyncio
    async def test_dismissed_keys_are_hidden(self, authenticated_client: AsyncClient, seeded_users):
        body = {
            "assets": [
                {
                    "id": 9,
                    "name": "ThinkPad",
                    "assigned_to_id": TEST_USER_ID,
                    "assigned_at": (datetime.utcnow() - timedelta(days=1)).isoformat() + "Z",
                },
            ],
        }
        first = await authenticated_client.post(f"{BASE}/display", json=body)
        key = first.json()["data"][0]["key"]

        second = await authenticated_client.post(
            f"{BASE}/display", json={**body, "dismissed_keys": [key]}
        )

        assert second.json()["data"] == []

    @pytest.mark.asyncio
    async def test_pending_approvals_hidden_from_employee(
        self, authenticated_client: AsyncClient, seeded_users
    ):
        body = {"upgrades": [{"id": 1, "asset_name": "ThinkPad", "status": "Pending"}]}

        response = await authenticated_client.post(f"{BASE}/display", json=body)

        assert response.json()["data"] == []


class TestPreferences:
    """Preference endpoints."""

    PREFS = "/api/v1/users/me/notification-preferences"

    @pytest.mark.asyncio
    async def test_defaults_without_record(
        self, authenticated_client: AsyncClient, seeded_users, session_factory
    ):
        response = await authenticated_client.get(self.PREFS)

        assert response.status_code == 200
        data = response.json()
        assert data["ticket_assignments"] is True
        assert data["dnd_enabled"] is False

        async with session_factory() as session:
            rows = (await session.execute(select(NotificationPreferenceModel))).scalars().all()
            assert rows == []

    @pytest.mark.asyncio
    async def test_put_then_get(self, authenticated_client: AsyncClient, seeded_users):
        payload = {
            "ticket_status_changes": False,
            "dnd_enabled": True,
            "dnd_start_time": "22:00",
            "dnd_end_time": "06:00",
            "dnd_days": [6, 0],
        }

        put = await authenticated_client.put(self.PREFS, json=payload)
        assert put.status_code == 200

        data = (await authenticated_client.get(self.PREFS)).json()
        assert data["ticket_status_changes"] is False
        assert data["ticket_assignments"] is True
        assert data["dnd_days"] == [0, 6]
        assert data["dnd_start_time"] == "22:00"

    @pytest.mark.asyncio
    async def test_put_overwrites_previous(self, authenticated_client: AsyncClient, seeded_users):
        await authenticated_client.put(self.PREFS, json={"asset_assignments": False})
        await authenticated_client.put(self.PREFS, json={"maintenance_alerts": False})

        data = (await authenticated_client.get(self.PREFS)).json()
        assert data["asset_assignments"] is True
        assert data["maintenance_alerts"] is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"dnd_start_time": "25:00"},
            {"dnd_end_time": "6pm"},
            {"dnd_days": [7]},
        ],
    )
    async def test_rejects_malformed_schedule(
        self, authenticated_client: AsyncClient, seeded_users, payload
    ):
        response = await authenticated_client.put(self.PREFS, json=payload)

        assert response.status_code == 422


class TestAdminNotifications:
    """Admin-only creation and broadcast."""

    @pytest.mark.asyncio
    async def test_employee_cannot_broadcast(self, authenticated_client: AsyncClient):
        response = await authenticated_client.post(
            "/api/v1/notifications/broadcast", json={"title": "Hi", "message": "All"}
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_create_bypasses_gates(
        self, admin_client: AsyncClient, session_factory
    ):
        async with session_factory() as session:
            session.add(
                NotificationPreferenceModel(
                    user_id=TEST_USER_ID, system_announcements=False, dnd_days=[]
                )
            )
            await session.commit()

        response = await admin_client.post(
            "/api/v1/notifications",
            json={"user_id": TEST_USER_ID, "title": "Policy", "message": "Read me", "type": "System"},
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Policy"
        assert data["priority"] == "medium"
        assert data["category"] == "alerts"

    @pytest.mark.asyncio
    async def test_create_rejects_blank_title(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/notifications",
            json={"user_id": TEST_USER_ID, "title": " ", "message": "x", "type": "System"},
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_broadcast_to_role_counts_suppressed(
        self, admin_client: AsyncClient, session_factory
    ):
        """Three managers, one opted out of announcements."""
        async with session_factory() as session:
            for uid in (10, 11, 12):
                session.add(
                    UserModel(id=uid, username=f"mgr{uid}", email=f"m{uid}@example.com", role="Manager")
                )
            session.add(
                NotificationPreferenceModel(user_id=11, system_announcements=False, dnd_days=[])
            )
            await session.commit()

        response = await admin_client.post(
            "/api/v1/notifications/broadcast",
            json={"title": "Audit", "message": "Verify assets", "target_role": "Manager"},
        )

        assert response.status_code == 200
        assert response.json() == {
            "recipient_count": 3,
            "delivered_count": 2,
            "suppressed_count": 1,
        }

        async with session_factory() as session:
            rows = (
                await session.execute(
                    select(NotificationModel.user_id).where(NotificationModel.title == "Audit")
                )
            ).scalars().all()
            assert sorted(rows) == [10, 12]

    @pytest.mark.asyncio
    async def test_broadcast_all(self, admin_client: AsyncClient):
        response = await admin_client.post(
            "/api/v1/notifications/broadcast", json={"title": "Hello", "message": "Everyone"}
        )

        assert response.json()["recipient_count"] == 2
        assert response.json()["delivered_count"] == 2
