"""Tests for telescope_insight/services/maintenance.py"""

import pytest

from telescope_insight.services.maintenance import MaintenanceTool

from conftest import make_entry

DAY = 60 * 24


@pytest.fixture
def tool(store, clock):
    return MaintenanceTool(store, clock=clock)


@pytest.fixture
def seeded(store):
    entries = {
        "old_log": make_entry("log", minutes_ago=DAY * 40),
        "old_request": make_entry("request", minutes_ago=DAY * 40),
        "new_log": make_entry("log", minutes_ago=5),
    }
    for e in entries.values():
        store.add(e)
    return entries


def test_stats(tool, seeded):
    data = tool.execute({"action": "stats"})["data"]
    assert data["total_entries"] == 3
    assert data["by_type"] == {"log": 2, "request": 1}
    assert data["oldest_entry"] == seeded["old_log"].created_at.isoformat()
    assert data["newest_entry"] == seeded["new_log"].created_at.isoformat()


def test_default_action_is_stats(tool, seeded):
    assert tool.execute({}) == tool.execute({"action": "stats"})


def test_unknown_action(tool):
    assert tool.execute({"action": "vacuum"})["error"]["kind"] == "invalid_argument"


def test_unhashable_action(tool):
    assert tool.execute({"action": {"name": "clear"}})["error"]["kind"] == "invalid_argument"


class TestPrune:
    def test_requires_confirm(self, tool, store, seeded):
        result = tool.execute({"action": "prune"})
        assert result["isError"] is True
        assert store.find_by_id(seeded["old_log"].id) is not None

    def test_all_types(self, tool, store, seeded):
        data = tool.execute({"action": "prune", "confirm": True})["data"]
        assert data["deleted_count"] == 2
        assert store.find_by_id(seeded["new_log"].id) is not None

    def test_single_type(self, tool, store, seeded):
        data = tool.execute({"action": "prune", "confirm": True, "entry_type": "request"})["data"]
        assert data["deleted_count"] == 1
        assert store.find_by_id(seeded["old_log"].id) is not None

    def test_rejects_unknown_period(self, tool, seeded):
        result = tool.execute({"action": "prune", "confirm": True, "older_than": "5m"})
        assert result["error"]["kind"] == "invalid_argument"

    def test_rejects_unknown_type(self, tool, seeded):
        result = tool.execute({"action": "prune", "confirm": True, "entry_type": "widget"})
        assert result["error"]["kind"] == "invalid_argument"


class TestClear:
    def test_requires_confirm(self, tool, seeded):
        assert tool.execute({"action": "clear"})["error"]["kind"] == "invalid_argument"

    def test_clear_type(self, tool, store, seeded):
        data = tool.execute({"action": "clear", "confirm": True, "entry_type": "log"})["data"]
        assert data["deleted_count"] == 2
        assert store.find_by_id(seeded["old_request"].id) is not None

    def test_clear_all(self, tool, seeded):
        assert tool.execute({"action": "clear", "confirm": True})["data"]["deleted_count"] == 3


def test_missing_storage(clock):
    result = MaintenanceTool(None, clock=clock).execute({"action": "stats"})
    assert result["error"]["kind"] == "upstream_unavailable"
