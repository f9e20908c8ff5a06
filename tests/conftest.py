from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from telescope_insight.config import Settings
from telescope_insight.models.data_models import Entry, ExclusionRuleSet, RouteGroup
from telescope_insight.services.storage import MemoryEntryStore

NOW = datetime(2025, 5, 15, 12, 0, 0, tzinfo=timezone.utc)

_ids = count(1)


def make_entry(entry_type="request", minutes_ago=1, entry_id=None, sequence=None, **content):
    n = next(_ids)
    return Entry(
        id=entry_id or f"{entry_type}-{n}",
        type=entry_type,
        content=content,
        created_at=NOW - timedelta(minutes=minutes_ago),
        sequence=sequence if sequence is not None else n,
    )


def request_entry(uri="/api/users", method="GET", status=200, duration=100, middleware=("api",), **kw):
    return make_entry(
        "request",
        uri=uri,
        method=method,
        response_status=status,
        duration=duration,
        middleware=list(middleware),
        **kw,
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def settings():
    return Settings(
        store_path=None,
        route_groups=(
            RouteGroup("api", middleware=("api",)),
            RouteGroup("web", middleware=("web",)),
        ),
        exclusions=ExclusionRuleSet(uris=("telescope/*",)),
    )


@pytest.fixture
def store():
    return MemoryEntryStore()
