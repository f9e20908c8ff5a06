"""
EntryParser Class - Handles parsing and normalization

This module parses raw stored lines into structured Entry objects.
"""

import json
from typing import Any, Dict, Optional

from telescope_insight.models.data_models import Entry
from telescope_insight.utils.helpers import as_list, parse_ts, safe_int


class EntryParser:
    """
    Parses raw entry records into Entry objects.
    Responsibilities:
    - Parse JSON lines
    - Normalize the stored record variants (uuid/id, JSON-encoded content)
    - Classify error entries
    """

    @staticmethod
    def parse_json(line: str) -> Optional[Dict[str, Any]]:
        """Parse JSON line, return None if invalid or not an object"""
        try:
            obj = json.loads(line)
        except ValueError:
            return None
        return obj if isinstance(obj, dict) else None

    @staticmethod
    def normalize(raw: Dict[str, Any], sequence: int = 0) -> Optional[Entry]:
        """
        Normalize a raw record into an Entry.
        Records without an id are dropped; a missing or unreadable content
        becomes an empty mapping.
        """
        entry_id = raw.get("uuid") or raw.get("id")
        if entry_id is None or entry_id == "":
            return None

        content = raw.get("content")
        if isinstance(content, str):
            try:
                content = json.loads(content)
            except ValueError:
                content = None
        if not isinstance(content, dict):
            content = {}

        seq = safe_int(raw.get("sequence"))

        return Entry(
            id=str(entry_id),
            type=str(raw.get("type") or raw.get("entry_type") or ""),
            content=content,
            created_at=parse_ts(raw.get("created_at") or raw.get("timestamp")),
            sequence=seq if seq is not None else sequence,
            family_hash=(str(raw["family_hash"]) if raw.get("family_hash") else None),
            tags=tuple(str(t) for t in as_list(raw.get("tags"))),
        )

    @staticmethod
    def is_error(entry: Entry) -> bool:
        """Check if entry represents an error (status >= 400, error level or exception)"""
        if entry.type == "exception":
            return True
        status = safe_int(entry.get("response_status"))
        if status is not None and status >= 400:
            return True
        return str(entry.get("level", "")).lower() in ("error", "critical", "alert", "emergency")
