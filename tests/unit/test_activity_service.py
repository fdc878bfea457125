"""Unit tests for the activity log."""

import pytest

from fieldops.core.errors import PermissionDeniedError
from fieldops.domain.activity import ActivityAction
from fieldops.services import activity_service


@pytest.mark.unit
class TestActivityFeed:
    """Tests for topics, creation and paging."""

    def test_topics(self):
        """Test topic names for tasks and the general feed, and parsing them back."""
        assert activity_service.get_activity_topic(12) == "TASK_12"
        assert activity_service.get_activity_topic() == "GENERAL"
        assert activity_service.parse_task_topic("TASK_12") == 12
        assert activity_service.parse_task_topic("GENERAL") is None
        assert activity_service.parse_task_topic("TASK_abc") is None

    async def test_paging_newest_first(self, db):
        """Test cursor paging walks the feed newest first."""
        for i in range(5):
            await activity_service.create_activity(
                topic="GENERAL", user_id="u1", action=ActivityAction.TASK_COMMENTED, payload={"n": i}
            )

        first = await activity_service.list_activities(topic="GENERAL", take=2)
        second = await activity_service.list_activities(topic="GENERAL", cursor=first.next_cursor, take=2)
        third = await activity_service.list_activities(topic="GENERAL", cursor=second.next_cursor, take=2)

        assert [a.payload["n"] for a in first.activities] == [4, 3]
        assert [a.payload["n"] for a in second.activities] == [2, 1]
        assert [a.payload["n"] for a in third.activities] == [0]
        assert first.has_next_page and second.has_next_page
        assert not third.has_next_page
        assert third.next_cursor is None

    async def test_topics_are_isolated(self, db):
        """Test a topic's feed holds only its own activities."""
        await activity_service.create_activity(topic="TASK_1", user_id="u1", action=ActivityAction.TASK_CREATED)
        await activity_service.create_activity(topic="TASK_2", user_id="u1", action=ActivityAction.TASK_CREATED)

        page = await activity_service.list_activities(topic="TASK_1")
        assert [a.topic for a in page.activities] == ["TASK_1"]
        assert page.activities[0].payload == {}

    async def test_actor_sees_feed_of_assigned_task_only(self, worker, task_factory):
        """Test workers read task feeds only for tasks they are assigned to."""
        mine = await task_factory(assignee_ids=[worker.id])
        other = await task_factory()

        page = await activity_service.list_activities_for_actor(actor=worker, topic=f"TASK_{mine.id}")
        assert len(page.activities) == 1

        with pytest.raises(PermissionDeniedError):
            await activity_service.list_activities_for_actor(actor=worker, topic=f"TASK_{other.id}")

    async def test_general_feed_is_admin_only(self, admin, worker):
        """Test only admins read the general feed."""
        await activity_service.list_activities_for_actor(actor=admin, topic="GENERAL")
        with pytest.raises(PermissionDeniedError):
            await activity_service.list_activities_for_actor(actor=worker, topic="GENERAL")
