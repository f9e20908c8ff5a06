"""
Tool registry - builds every tool from one Settings object and one repository
"""

from typing import Any, Dict, List, Optional, Union

from telescope_insight.config import Settings
from telescope_insight.services.entry_tools import (
    CacheTool,
    CommandsTool,
    EventsTool,
    ExceptionsTool,
    GatesTool,
    JobsTool,
    LogsTool,
    ModelsTool,
    NotificationsTool,
    RedisTool,
    ScheduleTool,
    ViewsTool,
)
from telescope_insight.services.formatter import ResponseFormatter
from telescope_insight.services.maintenance import MaintenanceTool
from telescope_insight.services.overview import OverviewTool
from telescope_insight.services.pagination import PaginationManager
from telescope_insight.services.query_engine import Clock, EntryQueryEngine, utcnow
from telescope_insight.services.query_tool import QueriesTool
from telescope_insight.services.request_tool import RequestsTool
from telescope_insight.services.route_filter import RouteFilter
from telescope_insight.services.storage import EntryRepository

Tool = Union[EntryQueryEngine, MaintenanceTool, OverviewTool]

ENTRY_TOOL_CLASSES = (
    LogsTool,
    ExceptionsTool,
    QueriesTool,
    CommandsTool,
    ScheduleTool,
    JobsTool,
    CacheTool,
    EventsTool,
    GatesTool,
    ModelsTool,
    NotificationsTool,
    RedisTool,
    ViewsTool,
)


class ToolRegistry:
    def __init__(self, tools: Dict[str, Tool]):
        self._tools = tools

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def names(self) -> List[str]:
        return list(self._tools)

    def manifest(self) -> List[Dict[str, Any]]:
        return [tool.schema() for tool in self._tools.values()]


def build_registry(
    settings: Settings,
    storage: Optional[EntryRepository],
    clock: Clock = utcnow,
) -> ToolRegistry:
    pagination = PaginationManager(settings.default_limit, settings.max_limit)
    formatter = ResponseFormatter()
    route_filter = RouteFilter.from_settings(settings)
    shared = {"pagination": pagination, "formatter": formatter, "clock": clock}

    tools: Dict[str, Tool] = {
        MaintenanceTool.name: MaintenanceTool(storage, formatter, clock),
        OverviewTool.name: OverviewTool(settings, storage, route_filter, formatter, clock),
        RequestsTool.name: RequestsTool(settings, storage, route_filter, **shared),
    }
    for cls in ENTRY_TOOL_CLASSES:
        tools[cls.name] = cls(settings, storage, **shared)
    return ToolRegistry(tools)
