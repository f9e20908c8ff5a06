"""
Aggregation helpers - numeric summaries and frequency tables

Shared by every entry tool's statistics. Empty or non-numeric samples
degrade to zeroed structures instead of failing.
"""

from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from telescope_insight.models.data_models import Entry
from telescope_insight.utils.helpers import numeric_values, percentile

TOP_N = 10


def numeric_summary(values: Iterable[Any], percentiles: bool = True, total: bool = False) -> Dict[str, Any]:
    """avg/min/max (+ p50/p95/p99, + total) over the numeric values only"""
    nums = numeric_values(values)
    out: Dict[str, Any] = {
        "avg": (sum(nums) / len(nums)) if nums else 0,
        "min": min(nums) if nums else 0,
        "max": max(nums) if nums else 0,
    }
    if total:
        out["total"] = sum(nums)
    if percentiles:
        out["p50"] = percentile(nums, 50)
        out["p95"] = percentile(nums, 95)
        out["p99"] = percentile(nums, 99)
    return out


def field_values(entries: Iterable[Entry], key: str, default: Any = None) -> List[Any]:
    return [e.get(key, default) for e in entries]


def frequency(values: Iterable[Any]) -> Dict[str, int]:
    """Counts keyed by the string form of each value, in first-seen order"""
    counter: Counter = Counter()
    for v in values:
        counter[_key(v)] += 1
    return dict(counter)


def top_n(values: Iterable[Any], n: Optional[int] = TOP_N) -> Dict[str, int]:
    """Most frequent first; ties keep first-seen order"""
    counter = Counter(frequency(values))
    return dict(counter.most_common(n))


def count_by(entries: Iterable[Entry], key: str, default: Any = "unknown") -> Dict[str, int]:
    return frequency(field_values(entries, key, default))


def top_by(entries: Iterable[Entry], key: str, default: Any = "unknown", n: Optional[int] = TOP_N) -> Dict[str, int]:
    return top_n(field_values(entries, key, default), n)


def percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _key(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
