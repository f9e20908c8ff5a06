"""
OverviewTool - one-call health picture across all entry types for a period
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from telescope_insight.config import Settings
from telescope_insight.models.data_models import Entry, EntryQueryOptions, EntryType
from telescope_insight.models.errors import ToolError, UpstreamUnavailable
from telescope_insight.services.aggregator import numeric_summary, percent, top_n
from telescope_insight.services.formatter import ResponseFormatter
from telescope_insight.services.parser import EntryParser
from telescope_insight.services.query_engine import DEFAULT_PERIOD, Args, Clock, EntryQueryEngine, utcnow
from telescope_insight.services.route_filter import RouteFilter
from telescope_insight.services.storage import EntryRepository
from telescope_insight.utils.helpers import QUERY_PERIODS, cutoff_for, safe_float
from telescope_insight.utils.log_channels import access_log, error_log


class OverviewTool:
    name = "overview"
    description = "Application health overview: activity per entry type, route groups, slow spots and errors."

    def __init__(
        self,
        settings: Settings,
        storage: Optional[EntryRepository],
        route_filter: Optional[RouteFilter] = None,
        formatter: Optional[ResponseFormatter] = None,
        clock: Clock = utcnow,
    ):
        self.settings = settings
        self.storage = storage
        self.route_filter = route_filter or RouteFilter.from_settings(settings)
        self.formatter = formatter or ResponseFormatter()
        self.parser = EntryParser()
        self.clock = clock

    def execute(self, args: Optional[Args] = None) -> Dict[str, Any]:
        args = args or {}
        access_log.info("tool=%s action=overview", self.name)
        try:
            return self.formatter.format(self.build(args, self.clock()))
        except ToolError as exc:
            error_log.warning("tool=%s failed: %s", self.name, exc.message)
            return self.formatter.format_error(exc)

    def build(self, args: Args, now: datetime) -> Dict[str, Any]:
        if self.storage is None:
            raise UpstreamUnavailable("Entry storage is not configured")

        period = EntryQueryEngine.period(args)
        cutoff = cutoff_for(period, now, DEFAULT_PERIOD)
        entries = [
            e for e in self.storage.fetch(None, EntryQueryOptions(limit=self.settings.fetch_limit))
            if e.created_at is not None and e.created_at >= cutoff
        ]

        by_type: Dict[str, List[Entry]] = {t.value: [] for t in EntryType}
        for e in entries:
            by_type.setdefault(e.type, []).append(e)

        requests = by_type["request"]
        queries = by_type["query"]
        request_errors = sum(1 for e in requests if self.parser.is_error(e))

        return {
            "period": period,
            "total_entries": len(entries),
            "counts": {t: len(items) for t, items in by_type.items() if items},
            "requests": {
                "total": len(requests),
                "errors": request_errors,
                "error_rate": percent(request_errors, len(requests)),
                "duration": numeric_summary(e.get("duration", 0) for e in requests),
                "slow_count": sum(
                    1 for e in requests
                    if (safe_float(e.get("duration", 0)) or 0) >= self.settings.slow_request_ms
                ),
                "route_breakdown": self.route_filter.breakdown(requests),
            },
            "queries": {
                "total": len(queries),
                "slow_count": sum(
                    1 for e in queries
                    if (safe_float(e.get("time", 0)) or 0) >= self.settings.slow_query_ms
                ),
            },
            "exceptions": {
                "total": len(by_type["exception"]),
                "top_classes": top_n((e.get("class", "Unknown") for e in by_type["exception"]), 5),
            },
            "failed_jobs": sum(1 for e in by_type["job"] if e.get("status") == "failed"),
        }

    def schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": {
                    "period": {
                        "type": "string",
                        "enum": list(QUERY_PERIODS),
                        "description": "Time period for analysis",
                        "default": DEFAULT_PERIOD,
                    },
                },
                "required": [],
            },
        }
