"""
RequestsTool - HTTP request entries

Adds route-group filtering (`route_type`), `status` and `method` filters,
the `slow` action and request statistics with a route-group breakdown.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from telescope_insight.config import Settings
from telescope_insight.models.data_models import Entry
from telescope_insight.services.aggregator import count_by, frequency, numeric_summary, percent
from telescope_insight.services.query_engine import Args, EntryQueryEngine, Handler
from telescope_insight.services.route_filter import RouteFilter
from telescope_insight.services.storage import EntryRepository
from telescope_insight.utils.helpers import numeric_values, safe_float, safe_int


class RequestsTool(EntryQueryEngine):
    entry_type = "request"
    name = "requests"
    description = "Analyze HTTP requests handled by your application. Can filter by route type (web/api)."
    list_fields = (
        "id",
        "content.method",
        "content.uri",
        "content.controller_action",
        "content.response_status",
        "content.duration",
        "content.memory",
        "created_at",
    )
    searchable_fields = ("uri", "controller_action", "method", "ip_address")

    def __init__(
        self,
        settings: Settings,
        storage: Optional[EntryRepository],
        route_filter: Optional[RouteFilter] = None,
        **kwargs: Any,
    ):
        super().__init__(settings, storage, **kwargs)
        self.route_filter = route_filter or RouteFilter.from_settings(settings)

    def actions(self) -> Dict[str, Handler]:
        return {**super().actions(), "slow": self.slow}

    def filter_entries(self, entries: List[Entry], args: Args) -> List[Entry]:
        route_type = args.get("route_type") or "all"
        if route_type != "all":
            entries = self.route_filter.filter_requests(entries, route_type)

        status = safe_int(args.get("status"))
        if status is not None:
            entries = [e for e in entries if safe_int(e.get("response_status")) == status]

        method = args.get("method")
        if method:
            entries = [e for e in entries if str(e.get("method", "")).upper() == str(method).upper()]

        return entries

    def slow(self, args: Args, now: datetime) -> Dict[str, Any]:
        """Requests at or above the duration threshold, slowest first"""
        threshold = safe_float(args.get("min_duration"))
        if threshold is None:
            threshold = self.settings.thresholds(args.get("route_type")).slow_request_ms

        entries = [e for e in self.get_entries(args, now) if _duration(e) >= threshold]
        entries.sort(key=_duration, reverse=True)
        shown = entries[:self._limit(args)]

        return self.formatter.format({
            "slow_requests": [
                {
                    "id": e.id,
                    "method": e.get("method", ""),
                    "uri": e.get("uri", ""),
                    "status": e.get("response_status", 0),
                    "duration": e.get("duration", 0),
                    "controller": e.get("controller_action", ""),
                    "memory": e.get("memory", 0),
                    "created_at": e.created_at_iso() or "",
                }
                for e in shown
            ],
            "threshold_ms": threshold,
            "total_slow": len(entries),
            "returned": len(shown),
        })

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        statuses = [safe_int(e.get("response_status", 0)) or 0 for e in entries]
        success = sum(1 for s in statuses if 200 <= s < 400)
        errors = sum(1 for s in statuses if s >= 400)
        total = len(entries)

        return {
            "count": total,
            "total_requests": total,
            "duration": numeric_summary(e.get("duration", 0) for e in entries),
            "memory": numeric_summary((e.get("memory", 0) for e in entries), percentiles=False),
            "status": {
                "success": success,
                "error": errors,
                "error_rate": percent(errors, total),
                "breakdown": frequency(statuses),
            },
            "methods": count_by(entries, "method", "UNKNOWN"),
            "endpoints": top_endpoints(entries, 5),
            "route_breakdown": self.route_filter.breakdown(entries),
        }

    def stats(self, args: Args, now: datetime) -> Dict[str, Any]:
        stats = self.calculate_stats(self.get_entries(args, now))
        stats["route_type"] = args.get("route_type") or "all"
        return self.formatter.format_stats(stats)

    def extra_properties(self) -> Dict[str, Any]:
        return {
            "route_type": {
                "type": "string",
                "description": "Filter by route type (all, other, or a configured group). Defaults to \"all\".",
                "default": "all",
            },
            "status": {"type": "integer", "description": "Filter by response status"},
            "method": {"type": "string", "description": "Filter by HTTP method"},
            "min_duration": {
                "type": "integer",
                "description": "Minimum duration in ms for the slow action",
            },
        }


def top_endpoints(entries: List[Entry], limit: int = 5) -> Dict[str, Dict[str, Any]]:
    """Busiest endpoints by controller action (or URI) with their average duration"""
    durations: Dict[str, List[Any]] = {}
    for e in entries:
        endpoint = str(e.get("controller_action") or e.get("uri") or "unknown")
        durations.setdefault(endpoint, []).append(e.get("duration", 0))

    ranked = sorted(durations.items(), key=lambda kv: len(kv[1]), reverse=True)
    out: Dict[str, Dict[str, Any]] = {}
    for endpoint, values in ranked[:limit]:
        nums = numeric_values(values)
        out[endpoint] = {
            "count": len(values),
            "avg_duration": (sum(nums) / len(values)) if values else 0,
        }
    return out


def _duration(entry: Entry) -> float:
    return safe_float(entry.get("duration", 0)) or 0.0
