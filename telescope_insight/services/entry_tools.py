"""
Entry tools for the remaining monitoring categories.

Each names its list and search fields and its statistics; jobs add the
`failed` action and logs the `prune` action.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List

from telescope_insight.models.data_models import Entry, EntryQueryOptions
from telescope_insight.models.errors import InvalidArgument
from telescope_insight.services.aggregator import count_by, frequency, top_by, top_n
from telescope_insight.services.query_engine import Args, EntryQueryEngine, Handler
from telescope_insight.utils.helpers import PRUNE_PERIODS, as_bool, cutoff_for, safe_int
from telescope_insight.utils.log_channels import access_log, error_log

logger = logging.getLogger(__name__)


class JobsTool(EntryQueryEngine):
    entry_type = "job"
    name = "jobs"
    description = "Inspect queued jobs: failures, queues and the most frequent jobs."
    list_fields = ("id", "content.name", "content.status", "content.queue", "created_at")
    searchable_fields = ("name", "queue")

    def actions(self) -> Dict[str, Handler]:
        return {**super().actions(), "failed": self.failed}

    def filter_entries(self, entries: List[Entry], args: Args) -> List[Entry]:
        status = args.get("status")
        if status:
            entries = [e for e in entries if e.get("status") == status]
        return entries

    def failed(self, args: Args, now: datetime) -> Dict[str, Any]:
        failed = [e for e in self.get_entries(args, now) if e.get("status", "") == "failed"]
        shown = failed[:self._limit(args)]
        return self.formatter.format({
            "failed_jobs": [e.normalized() for e in shown],
            "total_failed": len(failed),
            "returned": len(shown),
        })

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        return {
            "count": len(entries),
            "total_jobs": len(entries),
            "by_status": count_by(entries, "status", "unknown"),
            "by_queue": count_by(entries, "queue", "default"),
            "by_job": top_by(entries, "name"),
        }

    def extra_properties(self) -> Dict[str, Any]:
        return {"status": {"type": "string", "description": "Filter by job status"}}


class LogsTool(EntryQueryEngine):
    entry_type = "log"
    name = "logs"
    description = "Read application log entries by level, and prune old ones."
    list_fields = ("id", "content.level", "content.message", "content.context", "created_at")
    searchable_fields = ("level", "message")

    def actions(self) -> Dict[str, Handler]:
        return {**super().actions(), "prune": self.prune}

    def filter_entries(self, entries: List[Entry], args: Args) -> List[Entry]:
        level = args.get("level")
        if level:
            entries = [e for e in entries if str(e.get("level", "")).lower() == str(level).lower()]
        return entries

    def prune(self, args: Args, now: datetime) -> Dict[str, Any]:
        """Delete log entries older than `older_than`; failures are counted, not fatal"""
        if not as_bool(args.get("confirm")):
            raise InvalidArgument("Destructive operation requires confirm=true parameter")

        period = args.get("older_than") or "30d"
        if period not in PRUNE_PERIODS:
            period = "30d"
        cutoff = cutoff_for(period, now, "30d")

        candidates = {
            e.id for e in self.fetch(EntryQueryOptions(limit=None))
            if e.created_at is not None and e.created_at < cutoff
        }

        logger.debug("%d log entries older than %s", len(candidates), period)
        storage = self._storage()
        deleted = 0
        failed = 0
        if candidates:
            try:
                deleted = storage.delete(
                    lambda e: e.type == self.entry_type and e.id in candidates
                )
            except Exception as exc:
                failed = len(candidates)
                error_log.warning("Failed to delete %d log entries: %s", failed, exc)

        access_log.info("Pruned %d log entries older than %s", deleted, period)
        return self.formatter.format({
            "success": True,
            "message": f"Pruned {deleted} log entries older than {period}",
            "deleted_count": deleted,
            "failed_count": failed,
            "period": period,
            "cutoff_timestamp": int(cutoff.timestamp()),
        })

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        levels = count_by(entries, "level", "unknown")
        return {
            "count": len(entries),
            "total_logs": len(entries),
            "levels": levels,
            "critical_count": sum(levels.get(k, 0) for k in ("critical", "emergency", "alert")),
            "error_count": levels.get("error", 0),
            "warning_count": levels.get("warning", 0),
            "info_count": levels.get("info", 0),
            "debug_count": levels.get("debug", 0),
        }

    def extra_properties(self) -> Dict[str, Any]:
        return {
            "level": {"type": "string", "description": "Filter by log level"},
            "older_than": {
                "type": "string",
                "enum": list(PRUNE_PERIODS),
                "description": "Prune entries older than this period",
                "default": "30d",
            },
            "confirm": {
                "type": "boolean",
                "description": "Confirmation required for the prune action",
                "default": False,
            },
        }


class ExceptionsTool(EntryQueryEngine):
    entry_type = "exception"
    name = "exceptions"
    description = "Review exceptions thrown by your application, grouped by class and file."
    list_fields = ("id", "content.class", "content.message", "content.file", "content.line", "created_at")
    searchable_fields = ("class", "message", "file")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        classes = top_n((e.get("class", "Unknown") for e in entries), None)
        files = top_n((e.get("file", "Unknown") for e in entries), None)
        return {
            "count": len(entries),
            "total_exceptions": len(entries),
            "by_class": dict(list(classes.items())[:10]),
            "by_file": dict(list(files.items())[:10]),
            "unique_classes": len(classes),
            "unique_files": len(files),
            "most_common_exception": next(iter(classes), None),
            "most_common_file": next(iter(files), None),
        }


class CacheTool(EntryQueryEngine):
    entry_type = "cache"
    name = "cache"
    description = "Inspect cache operations (hits, misses, writes, forgets)."
    list_fields = ("id", "content.type", "content.key", "created_at")
    searchable_fields = ("key", "type")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        by_type = count_by(entries, "type")
        hits = by_type.get("hit", 0)
        misses = by_type.get("missed", 0)
        return {
            "count": len(entries),
            "total_operations": len(entries),
            "by_type": by_type,
            "hit_rate": round(hits / (hits + misses) * 100, 2) if hits + misses else 0.0,
        }


class EventsTool(EntryQueryEngine):
    entry_type = "event"
    name = "events"
    description = "Review dispatched events and broadcasts."
    list_fields = ("id", "content.name", "content.broadcast", "created_at")
    searchable_fields = ("name",)

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        events = top_n((e.get("name", "unknown") for e in entries), None)
        return {
            "count": len(entries),
            "total_events": len(entries),
            "by_event": dict(list(events.items())[:10]),
            "broadcast_count": sum(1 for e in entries if e.get("broadcast", False)),
            "unique_events": len(events),
        }


class GatesTool(EntryQueryEngine):
    entry_type = "gate"
    name = "gates"
    description = "Review authorization gate checks and their results."
    list_fields = ("id", "content.ability", "content.result", "created_at")
    searchable_fields = ("ability",)

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        return {
            "count": len(entries),
            "total_checks": len(entries),
            "by_ability": top_by(entries, "ability"),
            "allowed": sum(1 for e in entries if e.get("result") == "allowed"),
            "denied": sum(1 for e in entries if e.get("result") == "denied"),
        }


class ModelsTool(EntryQueryEngine):
    entry_type = "model"
    name = "models"
    description = "Review model events (created, updated, deleted) by model class."
    list_fields = ("id", "content.model", "content.action", "created_at")
    searchable_fields = ("model", "action")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        return {
            "count": len(entries),
            "total_events": len(entries),
            "by_model": top_by(entries, "model"),
            "by_action": count_by(entries, "action"),
        }


class NotificationsTool(EntryQueryEngine):
    entry_type = "notification"
    name = "notifications"
    description = "Review sent notifications by type and channel."
    list_fields = ("id", "content.notification", "content.channel", "created_at")
    searchable_fields = ("notification", "channel")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        return {
            "count": len(entries),
            "total_notifications": len(entries),
            "by_notification": top_by(entries, "notification"),
            "by_channel": count_by(entries, "channel"),
        }


class RedisTool(EntryQueryEngine):
    entry_type = "redis"
    name = "redis"
    description = "Review Redis commands by command and connection."
    list_fields = ("id", "content.command", "content.connection", "created_at")
    searchable_fields = ("command", "connection")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        return {
            "count": len(entries),
            "total_commands": len(entries),
            "by_command": top_by(entries, "command"),
            "by_connection": count_by(entries, "connection", "default"),
        }


class ScheduleTool(EntryQueryEngine):
    entry_type = "schedule"
    name = "schedule"
    description = "Review scheduled task executions."
    list_fields = ("id", "content.command", "content.description", "created_at")
    searchable_fields = ("command", "description")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        commands = count_by(entries, "command")
        return {
            "count": len(entries),
            "total_executions": len(entries),
            "by_command": top_by(entries, "command"),
            "unique_tasks": len(commands),
        }


class ViewsTool(EntryQueryEngine):
    entry_type = "view"
    name = "views"
    description = "Review rendered views."
    list_fields = ("id", "content.name", "content.path", "created_at")
    searchable_fields = ("name", "path")

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        views = count_by(entries, "name")
        return {
            "count": len(entries),
            "total_renders": len(entries),
            "by_view": top_by(entries, "name"),
            "unique_views": len(views),
        }


class CommandsTool(EntryQueryEngine):
    entry_type = "command"
    name = "commands"
    description = "Review console commands and their exit codes."
    list_fields = ("id", "content.command", "content.exit_code", "created_at")
    searchable_fields = ("command",)

    def calculate_stats(self, entries: List[Entry]) -> Dict[str, Any]:
        exit_codes = [safe_int(e.get("exit_code", 0)) for e in entries]
        return {
            "count": len(entries),
            "total_commands": len(entries),
            "by_command": top_by(entries, "command"),
            "by_exit_code": frequency(0 if c is None else c for c in exit_codes),
            "failed_count": sum(1 for c in exit_codes if c not in (None, 0)),
        }
