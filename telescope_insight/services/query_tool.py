"""
QueriesTool - database query entries

The `duplicates` action groups queries by their SQL with literals replaced
by `?`. Queries that differ only in a literal collapse into one group,
which is what surfaces N+1 patterns.
"""

from datetime import datetime
from typing import Any, Dict, List

from telescope_insight.models.data_models import Entry
from telescope_insight.services.aggregator import count_by, numeric_summary, percent
from telescope_insight.services.query_engine import Args, EntryQueryEngine, Handler
from telescope_insight.utils.helpers import normalize_sql, safe_float


class QueriesTool(EntryQueryEngine):
    entry_type = "query"
    name = "queries"
    description = "Analyze database queries: slow queries, duplicates (N+1 candidates) and timing statistics."
    list_fields = ("id", "content.sql", "content.time", "content.connection", "created_at")
    searchable_fields = ("sql", "connection")

    def actions(self) -> Dict[str, Handler]:
        return {**super().actions(), "slow": self.slow, "duplicates": self.duplicates}

    def slow(self, args: Args, now: datetime) -> Dict[str, Any]:
        threshold = safe_float(args.get("min_time"))
        if threshold is None:
            threshold = self.settings.slow_query_ms

        entries = [e for e in self.get_entries(args, now) if _time(e) >= threshold]
        entries.sort(key=_time, reverse=True)
        shown = entries[:self._limit(args)]

        return self.formatter.format({
            "slow_queries": [
                {
                    "id": e.id,
                    "sql": e.get("sql", ""),
                    "time": e.get("time", 0),
                    "connection": e.get("connection", ""),
                    "created_at": e.created_at_iso() or "",
                }
                for e in shown
            ],
            "threshold_ms": threshold,
            "total_slow": len(entries),
            "returned": len(shown),
        })

    def duplicates(self, args: Args, now: datetime) -> Dict[str, Any]:
        groups = find_duplicates(self.get_entries(args, now))
        shown = groups[:self._limit(args)]
        return self.formatter.format({
            "duplicate_queries": shown,
            "total_duplicates": len(groups),
            "note": "Duplicate queries may indicate N+1 query problems",
        })

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        total = len(entries)
        threshold = self.settings.slow_query_ms
        slow_count = sum(1 for e in entries if _time(e) >= threshold)

        return {
            "count": total,
            "total_queries": total,
            "time": numeric_summary((e.get("time", 0) for e in entries), total=True),
            "connections": count_by(entries, "connection", "unknown"),
            "slow_queries": {
                "count": slow_count,
                "threshold_ms": threshold,
                "percentage": percent(slow_count, total),
            },
        }

    def extra_properties(self) -> Dict[str, Any]:
        return {
            "min_time": {"type": "number", "description": "Minimum query time in ms for the slow action"},
        }


def find_duplicates(entries: List[Entry]) -> List[Dict[str, Any]]:
    """Groups of structurally identical SQL seen more than once, most frequent first"""
    groups: Dict[str, Dict[str, Any]] = {}
    for e in entries:
        sql = e.get("sql", "")
        if not sql:
            continue

        key = normalize_sql(str(sql))
        group = groups.setdefault(key, {
            "sql": sql,
            "normalized_sql": key,
            "count": 0,
            "total_time": 0,
            "avg_time": 0,
        })
        group["count"] += 1
        group["total_time"] += _time(e)

    duplicates = [g for g in groups.values() if g["count"] > 1]
    for g in duplicates:
        g["avg_time"] = g["total_time"] / g["count"]

    duplicates.sort(key=lambda g: g["count"], reverse=True)
    return duplicates


def _time(entry: Entry) -> float:
    return safe_float(entry.get("time", 0)) or 0.0
