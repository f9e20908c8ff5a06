"""
EntryQueryEngine - the base of every entry tool

Fetches the entries of one type from the repository, keeps those inside the
requested period, and dispatches on `action` to build a summary, list,
detail, stats or search response. Subclasses name their entry type, the
fields shown in lists, the fields searched, their statistics and any
extra actions.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from telescope_insight.config import Settings
from telescope_insight.models.data_models import Entry, EntryQueryOptions
from telescope_insight.models.errors import InvalidArgument, NotFound, ToolError, UpstreamUnavailable
from telescope_insight.services.aggregator import numeric_summary
from telescope_insight.services.formatter import ResponseFormatter
from telescope_insight.services.pagination import PaginationManager
from telescope_insight.services.storage import EntryRepository
from telescope_insight.utils.helpers import QUERY_PERIODS, cutoff_for, safe_int
from telescope_insight.utils.log_channels import access_log, error_log

logger = logging.getLogger(__name__)

Args = Mapping[str, Any]
Handler = Callable[[Args, datetime], Dict[str, Any]]
Clock = Callable[[], datetime]

DEFAULT_ACTION = "list"
DEFAULT_PERIOD = "1h"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EntryQueryEngine:
    entry_type: str = ""
    name: str = ""
    description: str = ""
    list_fields: Sequence[str] = ("id", "created_at")
    searchable_fields: Sequence[str] = ()

    def __init__(
        self,
        settings: Settings,
        storage: Optional[EntryRepository],
        pagination: Optional[PaginationManager] = None,
        formatter: Optional[ResponseFormatter] = None,
        clock: Clock = utcnow,
    ):
        self.settings = settings
        self.storage = storage
        self.pagination = pagination or PaginationManager(settings.default_limit, settings.max_limit)
        self.formatter = formatter or ResponseFormatter()
        self.clock = clock

    # ── dispatch ────────────────────────────────────────────────────────────

    def actions(self) -> Dict[str, Handler]:
        """Handler table keyed by action name; subclasses extend it"""
        return {
            "summary": self.summary,
            "list": self.list,
            "detail": self.detail,
            "stats": self.stats,
            "search": self.search,
        }

    def execute(self, args: Optional[Args] = None) -> Dict[str, Any]:
        """Run one action; tool failures come back as an error envelope"""
        args = args or {}
        handlers = self.actions()
        action = str(args.get("action") or DEFAULT_ACTION)
        handler = handlers.get(action, handlers[DEFAULT_ACTION])

        access_log.info("tool=%s action=%s", self.name, action)
        try:
            return handler(args, self.clock())
        except ToolError as exc:
            error_log.warning("tool=%s action=%s failed: %s", self.name, action, exc.message)
            return self.formatter.format_error(exc)

    # ── base actions ────────────────────────────────────────────────────────

    def summary(self, args: Args, now: datetime) -> Dict[str, Any]:
        entries = self.get_entries(args, now)
        return self.formatter.format_summary(
            total=len(entries),
            entry_type=self.entry_type,
            period=self.period(args),
            stats=self.calculate_stats(entries),
        )

    def list(self, args: Args, now: datetime) -> Dict[str, Any]:
        return self._page(self.get_entries(args, now), args, now)

    def detail(self, args: Args, now: datetime) -> Dict[str, Any]:
        entry_id = str(args.get("id") or "")
        if not entry_id:
            raise InvalidArgument("The detail action requires an id")

        entry = self._storage().find_by_id(entry_id)
        if entry is None:
            raise NotFound(f"Entry not found: {entry_id}")
        return self.formatter.format_detail(entry)

    def stats(self, args: Args, now: datetime) -> Dict[str, Any]:
        return self.formatter.format_stats(self.calculate_stats(self.get_entries(args, now)))

    def search(self, args: Args, now: datetime) -> Dict[str, Any]:
        query = str(args.get("query") or "").lower()
        entries = self.get_entries(args, now)
        if query:
            entries = [e for e in entries if query in self.searchable_content(e).lower()]
        return self._page(entries, args, now)

    # ── entry retrieval ─────────────────────────────────────────────────────

    @staticmethod
    def period(args: Args) -> str:
        period = args.get("period")
        return period if period in QUERY_PERIODS else DEFAULT_PERIOD

    def query_options(self, args: Args) -> EntryQueryOptions:
        return EntryQueryOptions(
            limit=self.settings.fetch_limit,
            tag=args.get("tag") or None,
            family_hash=args.get("family_hash") or None,
            before_sequence=safe_int(args.get("before")),
        )

    def fetch(self, options: EntryQueryOptions) -> List[Entry]:
        entries = self._storage().fetch(self.entry_type, options)
        logger.debug("Fetched %d %s entries", len(entries), self.entry_type)
        return entries

    def get_entries(self, args: Args, now: datetime) -> List[Entry]:
        """Entries of this type inside the requested period, then type filters"""
        cutoff = cutoff_for(self.period(args), now, DEFAULT_PERIOD)
        entries = [
            e for e in self.fetch(self.query_options(args))
            if e.created_at is not None and e.created_at >= cutoff
        ]
        return self.filter_entries(entries, args)

    def filter_entries(self, entries: List[Entry], args: Args) -> List[Entry]:
        """Type-specific narrowing (status, method, route group, ...)"""
        return entries

    def searchable_content(self, entry: Entry) -> str:
        parts = []
        for key in self.searchable_fields:
            value = entry.content.get(key)
            if value is None:
                continue
            if isinstance(value, (list, dict)):
                parts.append(json.dumps(value, ensure_ascii=False))
            else:
                parts.append(str(value))
        return " ".join(parts)

    # ── statistics ──────────────────────────────────────────────────────────

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        return {
            "count": len(entries),
            "duration": numeric_summary(e.get("duration", 0) for e in entries),
        }

    # ── schema ──────────────────────────────────────────────────────────────

    def schema(self) -> Dict[str, Any]:
        """JSON schema describing this tool's arguments"""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": list(self.actions()),
                        "description": "Action to perform",
                        "default": DEFAULT_ACTION,
                    },
                    "period": {
                        "type": "string",
                        "enum": list(QUERY_PERIODS),
                        "description": "Time period for analysis",
                        "default": DEFAULT_PERIOD,
                    },
                    "limit": {
                        "type": "integer",
                        "description": f"Maximum number of results (max {self.pagination.maximum})",
                        "default": self.pagination.default,
                    },
                    "offset": {"type": "integer", "description": "Pagination offset", "default": 0},
                    "cursor": {"type": "string", "description": "Cursor from a previous page"},
                    "id": {"type": "string", "description": "Entry id for the detail action"},
                    "query": {"type": "string", "description": "Search text"},
                    **self.extra_properties(),
                },
                "required": [],
            },
        }

    def extra_properties(self) -> Dict[str, Any]:
        return {}

    # ── internals ───────────────────────────────────────────────────────────

    def _storage(self) -> EntryRepository:
        if self.storage is None:
            raise UpstreamUnavailable("Entry storage is not configured")
        return self.storage

    def _page(self, entries: List[Entry], args: Args, now: datetime) -> Dict[str, Any]:
        limit = self.pagination.limit(args.get("limit"))
        offset = self.pagination.cursor_offset(args.get("cursor"))
        if offset is None:
            offset = self.pagination.offset(args.get("offset"))

        window = entries[offset:offset + limit]
        page = self.pagination.paginate(
            self.formatter.format_list(window, self.list_fields),
            total=len(entries),
            limit=limit,
            offset=offset,
            issued_at=now,
        )
        return self.formatter.format(page.to_dict())

    def _limit(self, args: Args) -> int:
        return self.pagination.limit(args.get("limit"))
