"""Tests for the key-value substrates and the audit log store."""

import asyncio
import json

import pytest

from expense_tracker.models.audit import AuditEventBuilder
from expense_tracker.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueAuditStorage,
    StorageReadError,
    StorageWriteError,
)


class TestJsonFileStorage:

    def test_missing_key_reads_none(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        assert asyncio.run(storage.get("expenses")) is None

    def test_set_then_get(self, tmp_path):
        storage = JsonFileStorage(tmp_path / "nested" / "dir")

        async def run():
            await storage.set("expenses", '[{"id": "1"}]')
            return await storage.get("expenses")

        assert asyncio.run(run()) == '[{"id": "1"}]'
        assert (tmp_path / "nested" / "dir" / "expenses.json").exists()

    def test_set_replaces_whole_document(self, tmp_path):
        storage = JsonFileStorage(tmp_path)

        async def run():
            await storage.set("categories", "[1, 2, 3]")
            await storage.set("categories", "[]")
            return await storage.get("categories")

        assert asyncio.run(run()) == "[]"

    def test_no_temp_files_left_behind(self, tmp_path):
        storage = JsonFileStorage(tmp_path)
        asyncio.run(storage.set("expenses", "[]"))
        assert sorted(p.name for p in tmp_path.iterdir()) == ["expenses.json"]

    @pytest.mark.parametrize("key", ["", "..", "../escape", "a/b", "with space"])
    def test_invalid_keys_rejected(self, tmp_path, key):
        with pytest.raises(ValueError):
            JsonFileStorage(tmp_path).path_for(key)

    def test_write_failure_raises(self, tmp_path):
        """A regular file where the data directory should be cannot be written into."""
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        storage = JsonFileStorage(blocker, write_attempts=2, retry_wait_seconds=0)

        with pytest.raises(StorageWriteError):
            asyncio.run(storage.set("expenses", "[]"))

    def test_read_failure_raises(self, tmp_path):
        """A directory in place of the document is a read error, not a missing key."""
        (tmp_path / "expenses.json").mkdir()
        storage = JsonFileStorage(tmp_path)

        with pytest.raises(StorageReadError):
            asyncio.run(storage.get("expenses"))


class TestInMemoryStorage:

    def test_initial_contents(self):
        storage = InMemoryStorage({"expenses": "[]"})
        assert asyncio.run(storage.get("expenses")) == "[]"
        assert asyncio.run(storage.get("categories")) is None

    def test_injected_failures(self):
        storage = InMemoryStorage()
        storage.fail_reads = True
        storage.fail_writes = True

        with pytest.raises(StorageReadError):
            asyncio.run(storage.get("expenses"))
        with pytest.raises(StorageWriteError):
            asyncio.run(storage.set("expenses", "[]"))
        assert storage.write_count == 0

    def test_snapshot_is_a_copy(self):
        storage = InMemoryStorage()
        asyncio.run(storage.set("expenses", "[]"))
        snapshot = storage.snapshot()
        snapshot["expenses"] = "changed"
        assert asyncio.run(storage.get("expenses")) == "[]"


class TestKeyValueAuditStorage:

    def test_append_and_read_back(self):
        storage = InMemoryStorage()
        audit = KeyValueAuditStorage(storage)

        async def run():
            await audit.append_event(AuditEventBuilder.expense_added("1", "10", "Other"))
            await audit.append_event(AuditEventBuilder.expense_deleted("1"))
            return await audit.get_recent_events()

        events = asyncio.run(run())
        assert [e.event_type.value for e in events] == ["expense_deleted", "expense_added"]
        assert events[1].details["category"] == "Other"

    def test_log_is_capped(self):
        storage = InMemoryStorage()
        audit = KeyValueAuditStorage(storage, max_events=3)

        async def run():
            for i in range(5):
                await audit.append_event(AuditEventBuilder.expense_deleted(str(i)))

        asyncio.run(run())
        rows = json.loads(storage.snapshot()["audit_log"])
        assert [r["entity_id"] for r in rows] == ["2", "3", "4"]

    def test_concurrent_appends_are_all_kept(self):
        storage = InMemoryStorage()
        audit = KeyValueAuditStorage(storage)

        async def run():
            await asyncio.gather(*[
                audit.append_event(AuditEventBuilder.expense_deleted(str(i)))
                for i in range(10)
            ])

        asyncio.run(run())
        assert len(json.loads(storage.snapshot()["audit_log"])) == 10

    def test_append_failure_returns_false(self):
        storage = InMemoryStorage()
        storage.fail_writes = True
        audit = KeyValueAuditStorage(storage)

        ok = asyncio.run(audit.append_event(AuditEventBuilder.expense_deleted("1")))
        assert ok is False

    def test_malformed_rows_skipped(self):
        storage = InMemoryStorage({"audit_log": json.dumps([{"event_type": "bogus"}])})
        audit = KeyValueAuditStorage(storage)

        async def run():
            await audit.append_event(AuditEventBuilder.categories_seeded(8))
            return await audit.get_recent_events()

        events = asyncio.run(run())
        assert [e.event_type.value for e in events] == ["categories_seeded"]
