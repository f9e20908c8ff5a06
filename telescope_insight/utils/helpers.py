"""
Helper Functions

This module contains utility functions used throughout the application:
timestamp parsing, safe numeric coercion, dotted-path lookup, wildcard
pattern matching, nearest-rank percentiles and SQL normalization.
"""

import math
import re
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from typing import Any, Dict, Iterable, List, Optional, Sequence, Union

from dateutil import parser as dtparser

Number = Union[int, float]

PERIODS: Dict[str, timedelta] = {
    "5m": timedelta(minutes=5),
    "15m": timedelta(minutes=15),
    "1h": timedelta(hours=1),
    "6h": timedelta(hours=6),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "14d": timedelta(days=14),
    "21d": timedelta(days=21),
    "30d": timedelta(days=30),
    "60d": timedelta(days=60),
    "90d": timedelta(days=90),
    "3M": timedelta(days=90),
    "6M": timedelta(days=180),
    "12M": timedelta(days=365),
}

QUERY_PERIODS = ("5m", "15m", "1h", "6h", "24h", "7d", "14d", "21d", "30d", "3M", "6M", "12M")
PRUNE_PERIODS = ("1h", "6h", "24h", "7d", "14d", "21d", "30d", "60d", "90d")


def parse_ts(x: Any) -> Optional[datetime]:
    """Parse timestamp from ISO strings, datetimes or epoch seconds"""
    if x is None or x == "":
        return None
    try:
        if isinstance(x, datetime):
            dt = x
        elif isinstance(x, (int, float)) and not isinstance(x, bool):
            return datetime.fromtimestamp(x, tz=timezone.utc)
        else:
            dt = dtparser.isoparse(str(x))
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return dt.astimezone(timezone.utc)
    except (ValueError, OverflowError, OSError):
        return None


def safe_int(x: Any) -> Optional[int]:
    """Safely convert to int"""
    try:
        return int(x) if x is not None else None
    except (TypeError, ValueError, OverflowError):
        return None


def safe_float(x: Any) -> Optional[float]:
    """Safely convert to float"""
    try:
        return float(x) if x is not None else None
    except (TypeError, ValueError):
        return None


def is_number(x: Any) -> bool:
    """True for int/float values and numeric strings, never for bools"""
    if isinstance(x, bool):
        return False
    if isinstance(x, (int, float)):
        return not math.isnan(x)
    if isinstance(x, str):
        f = safe_float(x.strip())
        return f is not None and not math.isnan(f)
    return False


def numeric_values(values: Iterable[Any]) -> List[Number]:
    """Keep numeric samples only, converting numeric strings"""
    out: List[Number] = []
    for v in values:
        if not is_number(v):
            continue
        if isinstance(v, str):
            f = float(v)
            out.append(int(f) if f.is_integer() else f)
        else:
            out.append(v)
    return out


def get_nested(d: Any, path: Union[str, Sequence[str]]) -> Any:
    """
    Safely read nested keys, e.g. get_nested(entry, "content.response_status").
    Any missing intermediate key or leaf yields None.
    """
    keys = path.split(".") if isinstance(path, str) else path
    cur: Any = d
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return None
        cur = cur[k]
    return cur


def period_delta(period: Optional[str], default: str = "1h") -> timedelta:
    """Duration for a period token; unknown or missing tokens use the default"""
    if period in PERIODS:
        return PERIODS[period]
    return PERIODS[default]


def cutoff_for(period: Optional[str], now: datetime, default: str = "1h") -> datetime:
    return now - period_delta(period, default)


@lru_cache(maxsize=512)
def _pattern_regex(pattern: str) -> "re.Pattern[str]":
    parts = [re.escape(p) for p in pattern.split("*")]
    return re.compile(".*".join(parts), re.DOTALL)


def matches_pattern(value: str, pattern: str) -> bool:
    """
    Anchored, case-sensitive wildcard match. `*` matches any run of
    characters including the empty one; every other character is literal.
    """
    if value is None or pattern is None:
        return False
    return _pattern_regex(str(pattern)).fullmatch(str(value)) is not None


def percentile(values: Sequence[Number], p: float) -> Number:
    """
    Nearest-rank percentile: sort ascending and take index
    ceil(p/100 * n) - 1, clamped into [0, n-1]. Empty input gives 0.
    """
    n = len(values)
    if n == 0:
        return 0
    ordered = sorted(values)
    index = math.ceil(p / 100 * n) - 1
    index = max(0, min(index, n - 1))
    return ordered[index]


_DIGITS = re.compile(r"\d+")
_SINGLE_QUOTED = re.compile(r"'[^']*'")
_DOUBLE_QUOTED = re.compile(r'"[^"]*"')


def normalize_sql(sql: str) -> str:
    """Replace digit runs, then quoted string literals, with `?`"""
    normalized = _DIGITS.sub("?", sql)
    normalized = _SINGLE_QUOTED.sub("?", normalized)
    return _DOUBLE_QUOTED.sub("?", normalized)


def as_list(value: Any) -> List[Any]:
    """Middleware and tag fields may arrive as a list, a scalar or nothing"""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes", "on")
