"""
PaginationManager - limit clamping, page metadata and opaque cursors
"""

import base64
import binascii
import json
from datetime import datetime
from typing import Any, Dict, List, Optional

from telescope_insight.models.data_models import Page
from telescope_insight.utils.helpers import safe_int


class PaginationManager:
    def __init__(self, default: int = 10, maximum: int = 25):
        self.default = default
        self.maximum = max(1, maximum)

    def limit(self, requested: Any = None) -> int:
        """Clamp the requested limit (or the default) into [1, maximum]"""
        value = safe_int(requested)
        if value is None:
            value = self.default
        return max(1, min(value, self.maximum))

    @staticmethod
    def offset(requested: Any = None) -> int:
        value = safe_int(requested)
        return value if value is not None and value > 0 else 0

    def paginate(
        self,
        items: List[Dict[str, Any]],
        total: int,
        limit: int,
        offset: int = 0,
        issued_at: Optional[datetime] = None,
    ) -> Page:
        page = Page(items=items, total=total, limit=limit, offset=offset)
        if page.has_more:
            page.next_cursor = self.encode_cursor(offset + limit, issued_at)
        if offset > 0:
            page.prev_cursor = self.encode_cursor(max(0, offset - limit), issued_at)
        return page

    @staticmethod
    def encode_cursor(value: int, issued_at: Optional[datetime] = None) -> str:
        payload = {
            "value": value,
            "timestamp": int((issued_at or datetime.now()).timestamp()),
        }
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    @staticmethod
    def decode_cursor(cursor: Any) -> Optional[Dict[str, Any]]:
        """Decoded cursor payload, or None for anything that is not one"""
        if not isinstance(cursor, str) or not cursor:
            return None
        try:
            decoded = json.loads(base64.b64decode(cursor.encode("ascii"), validate=True))
        except (binascii.Error, UnicodeError, ValueError):
            return None
        if not isinstance(decoded, dict) or safe_int(decoded.get("value")) is None:
            return None
        return decoded

    def cursor_offset(self, cursor: Any) -> Optional[int]:
        decoded = self.decode_cursor(cursor)
        if decoded is None:
            return None
        return max(0, safe_int(decoded["value"]))
