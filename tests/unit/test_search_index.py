"""Unit tests for searchable text maintenance."""

import pytest

from fieldops.core import db_client
from fieldops.services import search_index


@pytest.mark.unit
class TestBuildSearchableText:
    """Tests for build_searchable_text."""

    def test_joins_all_parts_in_order(self):
        """Test searchable text joins every part of the task in order."""
        text = search_index.build_searchable_text(
            42,
            "Sửa điều hòa",
            "Máy lạnh",
            {"name": "Lê Văn Cường", "phone": "0901"},
            {"address": "12 Đường Lê Lợi", "name": "Nhà khách"},
        )
        assert text == "42 sua dieu hoa may lanh le van cuong 0901 12 duong le loi nha khach"

    def test_skips_missing_parts(self):
        """Test missing parts leave no gaps."""
        text = search_index.build_searchable_text(7, "Lắp   đặt", None, None, {"address": None, "name": ""})
        assert text == "7 lap dat"

    def test_normalize_query(self):
        """Test queries are folded the same way as the index."""
        assert search_index.normalize_query("  ĐIỀU  hòa ") == "dieu hoa"
        assert search_index.normalize_query("   ") is None
        assert search_index.normalize_query(None) is None


@pytest.mark.unit
class TestBackfill:
    """Tests for refresh_task and backfill_searchable_text."""

    async def test_refresh_task_follows_customer_rename(self, task_factory):
        """Test refreshing a task picks up a renamed customer."""
        task = await task_factory()
        await db_client.execute("UPDATE customers SET name = ? WHERE id = ?", ("Phạm Minh Đức", task.customer_id))

        text = await search_index.refresh_task(task.id)

        assert "pham minh duc" in text
        row = await db_client.get_record(collection="tasks", record_id=task.id)
        assert row["searchable_text"] == text

    async def test_backfill_updates_only_stale_rows(self, task_factory):
        """Test the backfill rewrites only rows that changed."""
        first = await task_factory()
        await task_factory(title="Bảo trì máy giặt")
        await db_client.execute("UPDATE tasks SET searchable_text = '' WHERE id = ?", (first.id,))

        updated = await search_index.backfill_searchable_text(batch_size=1)

        assert updated == 1
        row = await db_client.get_record(collection="tasks", record_id=first.id)
        assert row["searchable_text"].startswith(f"{first.id} sua dieu hoa")
