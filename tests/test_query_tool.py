"""Tests for telescope_insight/services/query_tool.py"""

import pytest

from telescope_insight.services.query_tool import QueriesTool, find_duplicates

from conftest import make_entry


def query_entry(sql="select 1", time=1.5, connection="mysql", **kw):
    return make_entry("query", sql=sql, time=time, connection=connection, **kw)


@pytest.fixture
def tool(settings, store, clock):
    return QueriesTool(settings, store, clock=clock)


class TestDuplicates:
    def test_literals_collapse(self):
        groups = find_duplicates([
            query_entry("SELECT * FROM users WHERE id = 1", time=2),
            query_entry("SELECT * FROM users WHERE id = 2", time=4),
            query_entry("SELECT * FROM posts"),
        ])
        assert len(groups) == 1
        group = groups[0]
        assert group["count"] == 2
        assert group["normalized_sql"] == "SELECT * FROM users WHERE id = ?"
        assert group["sql"] == "SELECT * FROM users WHERE id = 1"
        assert group["total_time"] == 6
        assert group["avg_time"] == 3

    def test_most_frequent_first(self):
        entries = [query_entry("select a from t where x = 'a'")] * 2 + [query_entry("select b from t where y = 1")] * 3
        groups = find_duplicates(entries)
        assert [g["count"] for g in groups] == [3, 2]

    def test_action(self, tool, store):
        for sql in ("select * from users where id = 1", "select * from users where id = 2"):
            store.add(query_entry(sql))
        data = tool.execute({"action": "duplicates"})["data"]
        assert data["total_duplicates"] == 1
        assert data["duplicate_queries"][0]["count"] == 2
        assert "N+1" in data["note"]

    def test_no_duplicates(self, tool, store):
        store.add(query_entry("select 1"))
        assert tool.execute({"action": "duplicates"})["data"]["duplicate_queries"] == []


class TestSlow:
    def test_default_threshold(self, tool, store):
        store.add(query_entry(time=50))
        store.add(query_entry(time=150))
        store.add(query_entry(time=100))
        data = tool.execute({"action": "slow"})["data"]
        assert data["threshold_ms"] == 100
        assert [q["time"] for q in data["slow_queries"]] == [150, 100]

    def test_min_time(self, tool, store):
        store.add(query_entry(time=5))
        store.add(query_entry(time=15))
        data = tool.execute({"action": "slow", "min_time": 10})["data"]
        assert data["total_slow"] == 1


def test_stats(tool, store):
    store.add(query_entry(time=10, connection="mysql"))
    store.add(query_entry(time=200, connection="mysql"))
    store.add(query_entry(time=30, connection="sqlite"))
    stats = tool.execute({"action": "stats"})["data"]["statistics"]
    assert stats["total_queries"] == 3
    assert stats["time"]["total"] == 240
    assert stats["time"]["max"] == 200
    assert stats["connections"] == {"mysql": 2, "sqlite": 1}
    assert stats["slow_queries"] == {"count": 1, "threshold_ms": 100, "percentage": 33.33}
