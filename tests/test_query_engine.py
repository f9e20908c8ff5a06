"""Tests for telescope_insight/services/query_engine.py (through a plain entry tool)"""

from datetime import timedelta

import pytest

from telescope_insight.models.data_models import Entry
from telescope_insight.services.entry_tools import ExceptionsTool
from telescope_insight.services.storage import MemoryEntryStore

from conftest import NOW, make_entry


def exception_entry(cls="RuntimeException", message="boom", **kw):
    return make_entry("exception", **{"class": cls, "message": message, "file": "app/User.php"}, **kw)


@pytest.fixture
def tool(settings, store, clock):
    return ExceptionsTool(settings, store, clock=clock)


class TestPeriodWindow:
    def test_cutoff_is_inclusive(self, tool, store):
        store.add(exception_entry(minutes_ago=60))
        store.add(exception_entry(minutes_ago=61))
        result = tool.execute({"action": "list"})
        assert result["data"]["pagination"]["total"] == 1

    def test_wider_period(self, tool, store):
        store.add(exception_entry(minutes_ago=60 * 5))
        assert tool.execute({"period": "1h"})["data"]["pagination"]["total"] == 0
        assert tool.execute({"period": "6h"})["data"]["pagination"]["total"] == 1

    def test_unknown_period_uses_one_hour(self, tool, store):
        store.add(exception_entry(minutes_ago=90))
        result = tool.execute({"action": "summary", "period": "2y"})
        assert result["data"]["summary"]["period"] == "1h"
        assert result["data"]["summary"]["total_count"] == 0

    def test_entries_without_timestamp_are_skipped(self, tool, store):
        store.add(Entry(id="x", type="exception", content={}, created_at=None, sequence=1))
        assert tool.execute({})["data"]["pagination"]["total"] == 0


class TestList:
    def test_newest_first(self, tool, store):
        first = exception_entry()
        second = exception_entry()
        store.add(first)
        store.add(second)
        ids = [r["id"] for r in tool.execute({"action": "list"})["data"]["data"]]
        assert ids == [second.id, first.id]

    def test_projected_fields(self, tool, store):
        store.add(exception_entry(cls="QueryException"))
        [record] = tool.execute({})["data"]["data"]
        assert record["content.class"] == "QueryException"
        assert record["content.line"] is None
        assert set(record) == set(ExceptionsTool.list_fields)

    def test_unknown_action_falls_back_to_list(self, tool, store):
        store.add(exception_entry())
        assert tool.execute({"action": "dance"}) == tool.execute({"action": "list"})

    def test_unhashable_action_falls_back_to_list(self, tool, store):
        store.add(exception_entry())
        assert tool.execute({"action": ["stats"]}) == tool.execute({"action": "list"})

    def test_repeated_calls_are_identical(self, tool, store):
        for _ in range(12):
            store.add(exception_entry())
        first = tool.execute({"limit": 5})
        second = tool.execute({"limit": 5})
        assert first["content"][0]["text"] == second["content"][0]["text"]

    def test_cursor_continues(self, tool, store):
        entries = [exception_entry() for _ in range(5)]
        for e in entries:
            store.add(e)

        page1 = tool.execute({"limit": 2})["data"]
        page2 = tool.execute({"limit": 2, "cursor": page1["pagination"]["next_cursor"]})["data"]

        assert page2["pagination"]["offset"] == 2
        assert [r["id"] for r in page2["data"]] == [entries[2].id, entries[1].id]

    def test_garbage_cursor_uses_offset(self, tool, store):
        for _ in range(3):
            store.add(exception_entry())
        data = tool.execute({"limit": 1, "offset": 2, "cursor": "nope"})["data"]
        assert data["pagination"]["offset"] == 2

    def test_limit_clamped_to_maximum(self, tool, store):
        for _ in range(30):
            store.add(exception_entry())
        data = tool.execute({"limit": 1000})["data"]
        assert data["pagination"]["limit"] == 25
        assert len(data["data"]) == 25

    def test_tag_filter(self, tool, store):
        store.add(Entry(id="tagged", type="exception", created_at=NOW - timedelta(minutes=1), sequence=1,
                        tags=("user:1",)))
        store.add(exception_entry())
        ids = [r["id"] for r in tool.execute({"tag": "user:1"})["data"]["data"]]
        assert ids == ["tagged"]


class TestDetail:
    def test_found(self, tool, store):
        entry = exception_entry(entry_id="abc")
        store.add(entry)
        data = tool.execute({"action": "detail", "id": "abc"})["data"]
        assert data["entry"]["id"] == "abc"
        assert data["entry"]["content"]["class"] == "RuntimeException"

    def test_detail_ignores_period(self, tool, store):
        store.add(exception_entry(entry_id="old", minutes_ago=60 * 24 * 30))
        assert "isError" not in tool.execute({"action": "detail", "id": "old"})

    def test_not_found(self, tool):
        result = tool.execute({"action": "detail", "id": "missing"})
        assert result["isError"] is True
        assert result["error"]["kind"] == "not_found"

    def test_missing_id(self, tool):
        result = tool.execute({"action": "detail"})
        assert result["error"]["kind"] == "invalid_argument"


class TestSearchAndStats:
    def test_search_case_insensitive(self, tool, store):
        store.add(exception_entry(message="Connection REFUSED"))
        store.add(exception_entry(message="Division by zero"))
        data = tool.execute({"action": "search", "query": "refused"})["data"]
        assert data["pagination"]["total"] == 1

    def test_empty_query_matches_everything(self, tool, store):
        store.add(exception_entry())
        assert tool.execute({"action": "search"})["data"]["pagination"]["total"] == 1

    def test_stats(self, tool, store):
        store.add(exception_entry(cls="A"))
        store.add(exception_entry(cls="A"))
        store.add(exception_entry(cls="B"))
        stats = tool.execute({"action": "stats"})["data"]["statistics"]
        assert stats["count"] == 3
        assert stats["by_class"] == {"A": 2, "B": 1}
        assert stats["most_common_exception"] == "A"
        assert stats["unique_classes"] == 2

    def test_summary_uses_tool_statistics(self, tool, store):
        store.add(exception_entry(cls="A"))
        data = tool.execute({"action": "summary"})["data"]
        assert data["mode"] == "summary"
        assert data["summary"] == {"total_count": 1, "type": "exception", "period": "1h"}
        assert data["stats"]["by_class"] == {"A": 1}


class TestUnavailableStorage:
    def test_missing_storage(self, settings, clock):
        tool = ExceptionsTool(settings, None, clock=clock)
        result = tool.execute({"action": "list"})
        assert result["error"]["kind"] == "upstream_unavailable"

    def test_empty_storage_is_not_an_error(self, settings, clock):
        result = ExceptionsTool(settings, MemoryEntryStore(), clock=clock).execute({})
        assert result["data"]["data"] == []
        assert result["data"]["pagination"]["total"] == 0


def test_schema_lists_actions(tool):
    schema = tool.schema()
    assert schema["name"] == "exceptions"
    props = schema["inputSchema"]["properties"]
    assert props["action"]["enum"] == ["summary", "list", "detail", "stats", "search"]
    assert props["period"]["default"] == "1h"
