"""
Configuration - frozen Settings built once at startup.

Defaults are deep-merged with an optional YAML file, then scalar values are
overridden from environment variables.
"""

from __future__ import annotations

import copy
import logging
import os
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from telescope_insight.models.data_models import ExclusionRuleSet, RouteGroup, RouteThresholds

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "store_path": "./data/telescope.jsonl",
    "logging": {
        "enabled": True,
        "level": "INFO",
    },
    "pagination": {
        "default": 10,
        "maximum": 25,
    },
    "fetch_limit": 10000,
    "slow_request_ms": 1000,
    "slow_query_ms": 100,
    "overview": {
        "matching_strategy": "any",
        "route_groups": {
            "api": {"middleware": ["api"]},
            "web": {"middleware": ["web"]},
        },
        "exclude": {
            "uris": ["telescope/*", "telescope-mcp/*", "/telescope/*", "/telescope-mcp/*"],
            "middleware": [],
            "controller_actions": [],
        },
        "thresholds": {},
    },
}

ENV_CONFIG_PATH = "TELESCOPE_INSIGHT_CONFIG"


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ("true", "1", "yes")


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override dict into base dict."""
    result = copy.deepcopy(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = copy.deepcopy(value)
    return result


@dataclass(frozen=True)
class Settings:
    store_path: Optional[str] = DEFAULTS["store_path"]
    default_limit: int = 10
    max_limit: int = 25
    fetch_limit: int = 10000
    slow_request_ms: float = 1000
    slow_query_ms: float = 100
    logging_enabled: bool = True
    log_level: str = "INFO"
    matching_strategy: str = "any"
    route_groups: Tuple[RouteGroup, ...] = (
        RouteGroup("api", middleware=("api",)),
        RouteGroup("web", middleware=("web",)),
    )
    exclusions: ExclusionRuleSet = ExclusionRuleSet(
        uris=tuple(DEFAULTS["overview"]["exclude"]["uris"]),
    )
    route_thresholds: Mapping[str, RouteThresholds] = field(
        default_factory=lambda: MappingProxyType({})
    )

    def thresholds(self, route_type: Optional[str]) -> RouteThresholds:
        """Thresholds for a route group, falling back to the global values"""
        configured = self.route_thresholds.get(route_type or "")
        if configured is not None:
            return configured
        return RouteThresholds(slow_request_ms=self.slow_request_ms)


def _route_groups(raw: Mapping[str, Any]) -> Tuple[RouteGroup, ...]:
    groups = []
    for name, conf in (raw or {}).items():
        conf = conf or {}
        groups.append(
            RouteGroup(
                name=str(name),
                middleware=tuple(str(m) for m in conf.get("middleware") or ()),
                uri_prefix=conf.get("uri_prefix"),
                matching_strategy=conf.get("matching_strategy"),
            )
        )
    return tuple(groups)


def _thresholds(raw: Mapping[str, Any], slow_request_ms: float) -> Mapping[str, RouteThresholds]:
    out: Dict[str, RouteThresholds] = {}
    for name, conf in (raw or {}).items():
        conf = conf or {}
        out[str(name)] = RouteThresholds(
            slow_request_ms=float(conf.get("slow_request_ms", slow_request_ms)),
            acceptable_error_rate=float(conf.get("acceptable_error_rate", 0.05)),
        )
    return MappingProxyType(out)


def load_raw_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """Defaults merged with the YAML file at config_path, if any."""
    raw = copy.deepcopy(DEFAULTS)
    if not config_path:
        return raw
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            user_config = yaml.safe_load(f)
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", config_path)
        return raw
    except yaml.YAMLError:
        logger.warning("Invalid YAML in %s, using defaults", config_path)
        return raw

    if user_config and isinstance(user_config, dict):
        raw = _deep_merge(raw, user_config)
        # declared group order is evaluation order, so groups replace the defaults
        user_overview = user_config.get("overview")
        if isinstance(user_overview, dict) and "route_groups" in user_overview:
            raw["overview"]["route_groups"] = copy.deepcopy(user_overview["route_groups"])
    return raw


def load_settings(
    config_path: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Settings:
    """Build Settings from defaults, an optional YAML file and the environment."""
    env = os.environ if environ is None else environ
    raw = load_raw_config(config_path or env.get(ENV_CONFIG_PATH))

    overview = raw.get("overview") or {}
    exclude = overview.get("exclude") or {}
    slow_request_ms = float(env.get("TELESCOPE_MCP_SLOW_REQUEST_MS", raw["slow_request_ms"]))

    return Settings(
        store_path=env.get("TELESCOPE_STORE_PATH", raw.get("store_path")) or None,
        default_limit=int(raw["pagination"].get("default", 10)),
        max_limit=int(env.get("TELESCOPE_MAX_LIMIT", raw["pagination"].get("maximum", 25))),
        fetch_limit=int(raw.get("fetch_limit", 10000)),
        slow_request_ms=slow_request_ms,
        slow_query_ms=float(env.get("TELESCOPE_MCP_SLOW_QUERY_MS", raw["slow_query_ms"])),
        logging_enabled=_parse_bool(
            env.get("TELESCOPE_MCP_LOGGING_ENABLED", str(raw["logging"].get("enabled", True)))
        ),
        log_level=env.get("TELESCOPE_MCP_LOG_LEVEL", raw["logging"].get("level", "INFO")).upper(),
        matching_strategy=str(overview.get("matching_strategy") or "any"),
        route_groups=_route_groups(overview.get("route_groups")),
        exclusions=ExclusionRuleSet(
            uris=tuple(exclude.get("uris") or ()),
            middleware=tuple(exclude.get("middleware") or ()),
            controller_actions=tuple(exclude.get("controller_actions") or ()),
        ),
        route_thresholds=_thresholds(overview.get("thresholds"), slow_request_ms),
    )
