"""Tests for telescope_insight/config.py"""

import textwrap

import pytest

from telescope_insight.config import DEFAULTS, Settings, load_raw_config, load_settings


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(textwrap.dedent(text), encoding="utf-8")
    return str(path)


class TestDefaults:
    def test_no_file(self):
        settings = load_settings(environ={})
        assert settings.default_limit == 10
        assert settings.max_limit == 25
        assert settings.slow_request_ms == 1000
        assert settings.slow_query_ms == 100
        assert [g.name for g in settings.route_groups] == ["api", "web"]
        assert "telescope/*" in settings.exclusions.uris

    def test_missing_file_falls_back(self, tmp_path):
        assert load_raw_config(str(tmp_path / "nope.yaml")) == DEFAULTS

    def test_invalid_yaml_falls_back(self, tmp_path):
        path = write_config(tmp_path, "overview: [unclosed\n")
        assert load_raw_config(path) == DEFAULTS


class TestYaml:
    def test_merge_keeps_unrelated_defaults(self, tmp_path):
        path = write_config(tmp_path, """
            slow_query_ms: 50
            pagination:
              maximum: 50
        """)
        settings = load_settings(path, environ={})
        assert settings.slow_query_ms == 50
        assert settings.max_limit == 50
        assert settings.default_limit == 10

    def test_route_groups_replace_defaults(self, tmp_path):
        path = write_config(tmp_path, """
            overview:
              matching_strategy: all
              route_groups:
                admin:
                  uri_prefix: /admin
                  middleware: [web, auth]
                  matching_strategy: any
              exclude:
                controller_actions: ["*HealthController@*"]
              thresholds:
                admin:
                  slow_request_ms: 300
        """)
        settings = load_settings(path, environ={})

        assert [g.name for g in settings.route_groups] == ["admin"]
        admin = settings.route_groups[0]
        assert admin.uri_prefix == "/admin"
        assert admin.middleware == ("web", "auth")
        assert admin.matching_strategy == "any"
        assert settings.matching_strategy == "all"
        assert settings.exclusions.controller_actions == ("*HealthController@*",)
        assert "telescope/*" in settings.exclusions.uris
        assert settings.thresholds("admin").slow_request_ms == 300
        assert settings.thresholds("api").slow_request_ms == 1000


class TestEnvironment:
    def test_env_overrides(self, tmp_path):
        path = write_config(tmp_path, "slow_request_ms: 700\n")
        settings = load_settings(environ={
            "TELESCOPE_INSIGHT_CONFIG": path,
            "TELESCOPE_STORE_PATH": "/tmp/entries.jsonl",
            "TELESCOPE_MAX_LIMIT": "40",
            "TELESCOPE_MCP_SLOW_QUERY_MS": "25",
            "TELESCOPE_MCP_LOGGING_ENABLED": "false",
            "TELESCOPE_MCP_LOG_LEVEL": "debug",
        })
        assert settings.store_path == "/tmp/entries.jsonl"
        assert settings.max_limit == 40
        assert settings.slow_request_ms == 700
        assert settings.slow_query_ms == 25
        assert settings.logging_enabled is False
        assert settings.log_level == "DEBUG"

    def test_empty_store_path_means_unconfigured(self):
        assert load_settings(environ={"TELESCOPE_STORE_PATH": ""}).store_path is None


def test_settings_are_frozen():
    with pytest.raises(AttributeError):
        Settings().max_limit = 99
