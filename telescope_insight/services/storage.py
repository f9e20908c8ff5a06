"""
Entry stores - the storage collaborator the tools read from

JsonlEntryStore keeps entries in a JSONL file (one record per line);
MemoryEntryStore holds them in a list. Both satisfy EntryRepository.
"""

import json
import logging
import os
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from telescope_insight.models.data_models import Entry, EntryQueryOptions, StoreHealth
from telescope_insight.models.errors import UpstreamUnavailable
from telescope_insight.services.parser import EntryParser

logger = logging.getLogger(__name__)

EntryPredicate = Callable[[Entry], bool]


class EntryRepository(Protocol):
    def fetch(self, entry_type: Optional[str], options: EntryQueryOptions) -> List[Entry]:
        ...

    def find_by_id(self, entry_id: str) -> Optional[Entry]:
        ...

    def delete(self, predicate: EntryPredicate) -> int:
        ...


def select_entries(
    entries: Iterable[Entry],
    entry_type: Optional[str],
    options: EntryQueryOptions,
) -> List[Entry]:
    """Apply type and query options; newest (highest sequence) first"""
    out = []
    for e in entries:
        if entry_type and e.type != entry_type:
            continue
        if options.tag and options.tag not in e.tags:
            continue
        if options.family_hash and e.family_hash != options.family_hash:
            continue
        if options.before_sequence is not None and e.sequence >= options.before_sequence:
            continue
        out.append(e)

    out.sort(key=lambda e: e.sequence, reverse=True)
    if options.limit is None:
        return out
    return out[: max(0, options.limit)]


class MemoryEntryStore:
    """In-process entry repository over a list of entries"""

    def __init__(self, entries: Optional[Iterable[Entry]] = None):
        self._entries: List[Entry] = list(entries or [])

    def add(self, entry: Entry) -> None:
        self._entries.append(entry)

    def fetch(self, entry_type: Optional[str], options: EntryQueryOptions) -> List[Entry]:
        return select_entries(self._entries, entry_type, options)

    def find_by_id(self, entry_id: str) -> Optional[Entry]:
        for e in self._entries:
            if e.id == entry_id:
                return e
        return None

    def delete(self, predicate: EntryPredicate) -> int:
        kept = [e for e in self._entries if not predicate(e)]
        deleted = len(self._entries) - len(kept)
        self._entries = kept
        return deleted


class JsonlEntryStore:
    """
    Manages the entry file.
    Responsibilities:
    - Save uploaded entry files
    - Read and parse stored entries
    - Delete entries by predicate
    - Provide file statistics
    """

    def __init__(self, file_path: str, parser: Optional[EntryParser] = None):
        self.file_path = file_path
        self.parser = parser or EntryParser()

    def save_upload(self, content: bytes) -> Dict[str, Any]:
        """
        Save uploaded entries (supports JSONL, JSON array, or JSON object)
        Returns metadata about saved file
        """
        if not content:
            raise ValueError("Empty file content")

        text = content.decode("utf-8", errors="ignore").strip()
        if not text:
            raise ValueError("Empty file after decoding")

        self._ensure_parent_dir()

        # Try parsing as JSON first (handles multiline JSON)
        try:
            obj = json.loads(text)
        except ValueError:
            obj = None

        # JSON array
        if isinstance(obj, list):
            return {"mode": "json_array", "written": self._write_jsonl(obj)}

        # JSON object with list under common keys
        if isinstance(obj, dict):
            for key in ("entries", "data", "items", "logs", "events"):
                if isinstance(obj.get(key), list):
                    return {"mode": f"json_object.{key}", "written": self._write_jsonl(obj[key])}

            # Single JSON object
            return {"mode": "single_json_object", "written": self._write_jsonl([obj])}

        # Fallback: treat as raw JSONL
        try:
            with open(self.file_path, "w", encoding="utf-8") as f:
                f.write(text + ("\n" if not text.endswith("\n") else ""))
        except OSError as exc:
            raise UpstreamUnavailable(f"Entry store not writable: {exc}") from exc

        line_count = sum(1 for ln in text.splitlines() if ln.strip())
        return {"mode": "raw_jsonl", "written": line_count}

    def read_lines(self) -> Iterable[str]:
        """Iterator over raw lines in the entry file"""
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        yield line
        except FileNotFoundError:
            return
        except OSError as exc:
            raise UpstreamUnavailable(f"Entry store not readable: {exc}") from exc

    def load_all(self) -> List[Entry]:
        """Load and parse all entries; line position is the fallback sequence"""
        entries: List[Entry] = []
        for i, line in enumerate(self.read_lines(), start=1):
            raw = self.parser.parse_json(line)
            if raw is None:
                logger.debug("Skipping unparseable line %d in %s", i, self.file_path)
                continue
            entry = self.parser.normalize(raw, sequence=i)
            if entry:
                entries.append(entry)
        return entries

    def fetch(self, entry_type: Optional[str], options: EntryQueryOptions) -> List[Entry]:
        return select_entries(self.load_all(), entry_type, options)

    def find_by_id(self, entry_id: str) -> Optional[Entry]:
        for i, line in enumerate(self.read_lines(), start=1):
            raw = self.parser.parse_json(line)
            if raw is None:
                continue
            entry = self.parser.normalize(raw, sequence=i)
            if entry and entry.id == entry_id:
                return entry
        return None

    def delete(self, predicate: EntryPredicate) -> int:
        """Rewrite the file without the records matching predicate"""
        kept: List[str] = []
        deleted = 0
        for i, line in enumerate(self.read_lines(), start=1):
            raw = self.parser.parse_json(line)
            entry = self.parser.normalize(raw, sequence=i) if raw is not None else None
            if entry is not None and predicate(entry):
                deleted += 1
            else:
                kept.append(line)

        if deleted == 0:
            return 0

        try:
            with open(self.file_path, "w", encoding="utf-8") as f:
                for line in kept:
                    f.write(line + "\n")
        except OSError as exc:
            raise UpstreamUnavailable(f"Entry store not writable: {exc}") from exc
        return deleted

    def stat(self) -> StoreHealth:
        """Get file statistics"""
        exists = os.path.exists(self.file_path)
        size_bytes = os.path.getsize(self.file_path) if exists else 0
        entries = self.load_all() if exists else []
        latest = max((e.created_at for e in entries if e.created_at), default=None)

        return StoreHealth(
            status="ok",
            store_exists=exists,
            path=os.path.abspath(self.file_path),
            size_bytes=size_bytes,
            total_entries=len(entries),
            latest_timestamp=latest.isoformat() if latest else None,
        )

    def _ensure_parent_dir(self) -> None:
        """Create parent directories if needed"""
        os.makedirs(os.path.dirname(os.path.abspath(self.file_path)), exist_ok=True)

    def _write_jsonl(self, items: List[Any]) -> int:
        """Write list of dicts as JSONL"""
        written = 0
        try:
            with open(self.file_path, "w", encoding="utf-8") as f:
                for item in items:
                    if isinstance(item, dict):
                        f.write(json.dumps(item, ensure_ascii=False) + "\n")
                        written += 1
        except OSError as exc:
            raise UpstreamUnavailable(f"Entry store not writable: {exc}") from exc
        return written
