"""
MaintenanceTool - storage statistics and destructive clean-up

`prune` and `clear` refuse to run without confirm=true.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from telescope_insight.models.data_models import EntryQueryOptions, EntryType
from telescope_insight.models.errors import InvalidArgument, ToolError, UpstreamUnavailable
from telescope_insight.services.aggregator import top_n
from telescope_insight.services.formatter import ResponseFormatter
from telescope_insight.services.query_engine import Args, Clock, Handler, utcnow
from telescope_insight.services.storage import EntryRepository
from telescope_insight.utils.helpers import PRUNE_PERIODS, as_bool, cutoff_for
from telescope_insight.utils.log_channels import access_log, error_log

ENTRY_TYPES = ("all",) + tuple(t.value for t in EntryType)


class MaintenanceTool:
    name = "maintenance"
    description = "Perform maintenance operations on stored telemetry entries"

    def __init__(
        self,
        storage: Optional[EntryRepository],
        formatter: Optional[ResponseFormatter] = None,
        clock: Clock = utcnow,
    ):
        self.storage = storage
        self.formatter = formatter or ResponseFormatter()
        self.clock = clock

    def actions(self) -> Dict[str, Handler]:
        return {
            "stats": self.stats,
            "prune": self.prune,
            "clear": self.clear,
        }

    def execute(self, args: Optional[Args] = None) -> Dict[str, Any]:
        args = args or {}
        action = str(args.get("action") or "stats")
        access_log.info("tool=%s action=%s", self.name, action)
        try:
            handler = self.actions().get(action)
            if handler is None:
                raise InvalidArgument(f"Unknown action: {action}")
            return handler(args, self.clock())
        except ToolError as exc:
            error_log.warning("tool=%s action=%s failed: %s", self.name, action, exc.message)
            return self.formatter.format_error(exc)

    def stats(self, args: Args, now: datetime) -> Dict[str, Any]:
        entries = self._storage().fetch(None, EntryQueryOptions(limit=None))
        stamps = [e.created_at for e in entries if e.created_at is not None]
        return self.formatter.format({
            "total_entries": len(entries),
            "by_type": top_n((e.type for e in entries), None),
            "oldest_entry": min(stamps).isoformat() if stamps else None,
            "newest_entry": max(stamps).isoformat() if stamps else None,
        })

    def prune(self, args: Args, now: datetime) -> Dict[str, Any]:
        self._require_confirm(args)
        older_than = args.get("older_than") or "30d"
        if older_than not in PRUNE_PERIODS:
            raise InvalidArgument(f"Unsupported older_than period: {older_than}")
        entry_type = self._entry_type(args)
        cutoff = cutoff_for(older_than, now, "30d")

        deleted = self._storage().delete(
            lambda e: e.created_at is not None
            and e.created_at < cutoff
            and (entry_type == "all" or e.type == entry_type)
        )

        access_log.info("Pruned %d %s entries older than %s", deleted, entry_type, older_than)
        return self.formatter.format({
            "success": True,
            "message": f"Pruned {deleted} entries older than {older_than}",
            "deleted_count": deleted,
            "entry_type": entry_type,
            "older_than": older_than,
            "cutoff_time": cutoff.isoformat(),
        })

    def clear(self, args: Args, now: datetime) -> Dict[str, Any]:
        self._require_confirm(args)
        entry_type = self._entry_type(args)

        deleted = self._storage().delete(lambda e: entry_type == "all" or e.type == entry_type)

        access_log.info("Cleared %d %s entries", deleted, entry_type)
        return self.formatter.format({
            "success": True,
            "message": f"Cleared {deleted} entries",
            "deleted_count": deleted,
            "entry_type": entry_type,
        })

    def schema(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": {
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": list(self.actions()),
                        "description": "Maintenance action to perform",
                        "default": "stats",
                    },
                    "older_than": {
                        "type": "string",
                        "enum": list(PRUNE_PERIODS),
                        "description": "Prune entries older than this period",
                        "default": "30d",
                    },
                    "entry_type": {
                        "type": "string",
                        "enum": list(ENTRY_TYPES),
                        "description": "Type of entries to prune or clear",
                        "default": "all",
                    },
                    "confirm": {
                        "type": "boolean",
                        "description": "Confirmation required for destructive operations",
                        "default": False,
                    },
                },
                "required": ["action"],
            },
        }

    @staticmethod
    def _require_confirm(args: Args) -> None:
        if not as_bool(args.get("confirm")):
            raise InvalidArgument("Destructive operation requires confirm=true parameter")

    @staticmethod
    def _entry_type(args: Args) -> str:
        entry_type = args.get("entry_type") or "all"
        if entry_type not in ENTRY_TYPES:
            raise InvalidArgument(f"Unknown entry type: {entry_type}")
        return entry_type

    def _storage(self) -> EntryRepository:
        if self.storage is None:
            raise UpstreamUnavailable("Entry storage is not configured")
        return self.storage
