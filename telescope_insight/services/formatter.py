"""
ResponseFormatter - field projection and the uniform response envelope

Every tool answer is {"content": [{"type": "text", "text": <pretty JSON>}],
"data": <payload>}; failures add "isError" and a structured "error".
"""

import json
from typing import Any, Dict, Iterable, List, Optional, Sequence

from telescope_insight.models.data_models import Entry
from telescope_insight.models.errors import ToolError
from telescope_insight.utils.helpers import get_nested


def to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


class ResponseFormatter:
    @staticmethod
    def format(data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": to_json(data)}],
            "data": data,
        }

    def format_summary(
        self,
        total: int,
        entry_type: str,
        period: Optional[str],
        stats: Dict[str, Any],
    ) -> Dict[str, Any]:
        return self.format({
            "mode": "summary",
            "summary": {
                "total_count": total,
                "type": entry_type,
                "period": period,
            },
            "stats": stats,
        })

    def format_stats(self, stats: Dict[str, Any]) -> Dict[str, Any]:
        return self.format({"statistics": stats})

    def format_detail(self, entry: Entry) -> Dict[str, Any]:
        return self.format({"entry": entry.to_dict()})

    @staticmethod
    def format_error(error: ToolError) -> Dict[str, Any]:
        return {
            "content": [{"type": "text", "text": f"Error: {error.message}"}],
            "isError": True,
            "error": {"kind": error.kind, "message": error.message},
        }

    @staticmethod
    def project(entry: Dict[str, Any], fields: Sequence[str]) -> Dict[str, Any]:
        """Flat record of the requested dotted paths; missing paths are None"""
        record = {f: get_nested(entry, f) for f in fields}
        record["id"] = entry.get("id")
        return record

    def format_list(self, entries: Iterable[Entry], fields: Sequence[str]) -> List[Dict[str, Any]]:
        return [self.project(e.normalized(), fields) for e in entries]
