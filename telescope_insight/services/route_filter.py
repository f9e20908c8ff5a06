"""
RouteFilter - sorts request entries into configured route groups

Exclusions are checked first; then groups are tried in declared order and
the first match wins. Requests that match nothing land in "other".
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from telescope_insight.config import Settings
from telescope_insight.models.data_models import Entry, ExclusionRuleSet, RouteGroup, RouteThresholds
from telescope_insight.utils.helpers import as_list, matches_pattern, numeric_values, percentile, safe_int

OTHER_GROUP = "other"
DEFAULT_ACCEPTABLE_ERROR_RATE = 0.05


class RouteFilter:
    def __init__(
        self,
        route_groups: Sequence[RouteGroup] = (),
        exclusions: Optional[ExclusionRuleSet] = None,
        matching_strategy: str = "any",
        thresholds: Optional[Mapping[str, RouteThresholds]] = None,
    ):
        self.route_groups = tuple(route_groups)
        self.exclusions = exclusions or ExclusionRuleSet()
        self.matching_strategy = matching_strategy
        self.thresholds = thresholds or {}

    @classmethod
    def from_settings(cls, settings: Settings) -> "RouteFilter":
        return cls(
            settings.route_groups,
            settings.exclusions,
            settings.matching_strategy,
            settings.route_thresholds,
        )

    @property
    def group_names(self) -> List[str]:
        return [g.name for g in self.route_groups] + [OTHER_GROUP]

    def categorize(self, content: Mapping[str, Any]) -> Optional[str]:
        """Route group name for a request's content, or None when excluded"""
        if self.should_exclude(content):
            return None

        for group in self.route_groups:
            if self._matches_group(content, group):
                return group.name

        return OTHER_GROUP

    def should_exclude(self, content: Mapping[str, Any]) -> bool:
        uri = str(content.get("uri") or "")
        middleware = [str(m) for m in as_list(content.get("middleware"))]
        controller_action = str(content.get("controller_action") or "")

        if any(matches_pattern(uri, p) for p in self.exclusions.uris):
            return True

        for pattern in self.exclusions.middleware:
            if any(matches_pattern(m, pattern) for m in middleware):
                return True

        return any(matches_pattern(controller_action, p) for p in self.exclusions.controller_actions)

    def filter_requests(self, entries: Iterable[Entry], route_type: Optional[str] = None) -> List[Entry]:
        """Non-excluded entries, narrowed to one group unless route_type is None/'all'"""
        if route_type is None or route_type == "all":
            return [e for e in entries if self.categorize(e.content) is not None]
        return [e for e in entries if self.categorize(e.content) == route_type]

    def breakdown(self, entries: Iterable[Entry]) -> Dict[str, Dict[str, Any]]:
        """Per-group request stats; excluded requests and empty groups are left out"""
        buckets: Dict[str, List[Entry]] = {name: [] for name in self.group_names}
        for e in entries:
            group = self.categorize(e.content)
            if group is not None:
                buckets[group].append(e)

        out: Dict[str, Dict[str, Any]] = {}
        for name, items in buckets.items():
            count = len(items)
            if count == 0:
                continue

            durations = numeric_values(e.get("duration", 0) for e in items)
            total_duration = sum(durations)
            errors = sum(1 for e in items if (safe_int(e.get("response_status", 200)) or 0) >= 400)

            error_rate = round(errors / count, 4)
            acceptable = self.acceptable_error_rate(name)
            out[name] = {
                "request_count": count,
                "total_duration_ms": round(total_duration, 2),
                "avg_response_time_ms": round(total_duration / count, 2),
                "p95_response_time_ms": round(percentile(durations, 95), 2),
                "error_count": errors,
                "error_rate": error_rate,
                "acceptable_error_rate": acceptable,
                "error_rate_exceeded": error_rate > acceptable,
            }
        return out

    def acceptable_error_rate(self, group: str) -> float:
        configured = self.thresholds.get(group)
        if configured is None:
            return DEFAULT_ACCEPTABLE_ERROR_RATE
        return configured.acceptable_error_rate

    def _matches_group(self, content: Mapping[str, Any], group: RouteGroup) -> bool:
        if group.uri_prefix is not None:
            if not str(content.get("uri") or "").startswith(group.uri_prefix):
                return False

        if not group.middleware:
            return True

        request_middleware = [str(m) for m in as_list(content.get("middleware"))]
        matched = sum(
            1 for pattern in group.middleware
            if any(matches_pattern(m, pattern) for m in request_middleware)
        )

        strategy = group.matching_strategy or self.matching_strategy
        if strategy == "all":
            return matched == len(group.middleware)
        return matched > 0
