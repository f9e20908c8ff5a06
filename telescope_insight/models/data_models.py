"""
Data Models (DTOs - Data Transfer Objects)

This module contains the dataclass definitions used throughout the application.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from telescope_insight.utils.helpers import get_nested


class EntryType(str, Enum):
    """Monitoring category of a stored entry"""
    REQUEST = "request"
    QUERY = "query"
    JOB = "job"
    LOG = "log"
    EXCEPTION = "exception"
    CACHE = "cache"
    EVENT = "event"
    GATE = "gate"
    MODEL = "model"
    NOTIFICATION = "notification"
    REDIS = "redis"
    SCHEDULE = "schedule"
    VIEW = "view"
    COMMAND = "command"


@dataclass(frozen=True)
class Entry:
    """Represents a single stored telemetry entry"""
    id: str
    type: str
    content: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    sequence: int = 0
    family_hash: Optional[str] = None
    tags: Tuple[str, ...] = ()

    def get(self, key: str, default: Any = None) -> Any:
        """Read a content field by (dotted) key; missing or null gives the default"""
        value = get_nested(self.content, key)
        return default if value is None else value

    def created_at_iso(self) -> Optional[str]:
        return self.created_at.isoformat() if self.created_at else None

    def normalized(self) -> Dict[str, Any]:
        """Uniform {id, content, created_at} shape used for projection and search"""
        return {
            "id": self.id,
            "content": self.content,
            "created_at": self.created_at_iso(),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "sequence": self.sequence,
            "family_hash": self.family_hash,
            "tags": list(self.tags),
            "content": self.content,
            "created_at": self.created_at_iso(),
        }


@dataclass(frozen=True)
class EntryQueryOptions:
    """Options passed to the storage collaborator when fetching entries; limit=None is uncapped"""
    limit: Optional[int] = 100
    tag: Optional[str] = None
    family_hash: Optional[str] = None
    before_sequence: Optional[int] = None


@dataclass(frozen=True)
class RouteGroup:
    """Named bucket for request entries, matched by middleware and URI prefix"""
    name: str
    middleware: Tuple[str, ...] = ()
    uri_prefix: Optional[str] = None
    matching_strategy: Optional[str] = None


@dataclass(frozen=True)
class ExclusionRuleSet:
    """Requests matching any of these patterns are left out of route analysis"""
    uris: Tuple[str, ...] = ()
    middleware: Tuple[str, ...] = ()
    controller_actions: Tuple[str, ...] = ()


@dataclass(frozen=True)
class RouteThresholds:
    slow_request_ms: float
    acceptable_error_rate: float = 0.05


@dataclass
class Page:
    """One page of projected items plus pagination metadata"""
    items: List[Dict[str, Any]]
    total: int
    limit: int
    offset: int
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None

    @property
    def has_more(self) -> bool:
        return self.offset + self.limit < self.total

    @property
    def current_page(self) -> int:
        return self.offset // self.limit + 1

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data": self.items,
            "pagination": {
                "total": self.total,
                "limit": self.limit,
                "offset": self.offset,
                "has_more": self.has_more,
                "next_cursor": self.next_cursor,
                "prev_cursor": self.prev_cursor,
                "current_page": self.current_page,
                "total_pages": self.total_pages,
            },
        }


@dataclass
class StoreHealth:
    """Health check response for the entry store"""
    status: str
    store_exists: bool
    path: str
    size_bytes: int
    total_entries: int
    latest_timestamp: Optional[str] = None
