"""Tests for resolver configuration layering."""

import argparse
import json
import logging

import pytest

from depfetch.cli_config import (
    ResolverConfig,
    load_config_file,
    load_resolver_config,
    merge_properties,
    parse_bool,
    parse_property,
    split_repos,
)
from depfetch.errors import ConfigurationError


def _args(properties=None, config=None):
    return argparse.Namespace(PROPERTIES=properties or [], CONFIG=config)


class TestParsing:
    """Scalar helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("1", True), ("TRUE", True), ("yes", True), ("on", True), (True, True),
        ("0", False), ("false", False), ("No", False), (False, False),
    ])
    def test_parse_bool(self, value, expected):
        assert parse_bool("KEY", value) is expected

    @pytest.mark.parametrize("value", ["maybe", "", "  ", None])
    def test_parse_bool_rejects_other_values(self, value):
        with pytest.raises(ConfigurationError):
            parse_bool("USE_JETIFIER", value)

    def test_split_repos(self):
        assert split_repos("a;b, c\nd") == ["a", "b", "c", "d"]
        assert split_repos(["a", "b;c"]) == ["a", "b", "c"]
        assert split_repos(None) == []

    def test_parse_property(self):
        assert parse_property("TARGET_DIR=out=1") == ("TARGET_DIR", "out=1")
        with pytest.raises(ConfigurationError):
            parse_property("TARGET_DIR")
        with pytest.raises(ConfigurationError):
            parse_property("=value")


class TestConfigFile:
    """YAML/JSON config files."""

    def test_yaml_section(self, tmp_path):
        path = tmp_path / "depfetch.yml"
        path.write_text(
            "depfetch:\n"
            "  TARGET_DIR: out\n"
            "  PACKAGES_TO_COPY:\n"
            "    - a:b:1.0\n"
            "    - c:d:+\n"
            "  USE_JETIFIER: true\n"
        )
        values = load_config_file(str(path))
        assert values["TARGET_DIR"] == "out"
        assert values["PACKAGES_TO_COPY"] == ["a:b:1.0", "c:d:+"]
        assert values["USE_JETIFIER"] is True

    def test_json_top_level(self, tmp_path):
        path = tmp_path / "depfetch.json"
        path.write_text(json.dumps({"TARGET_DIR": "out", "MAVEN_REPOS": ["r1", "r2"]}))
        assert load_config_file(str(path)) == {"TARGET_DIR": "out", "MAVEN_REPOS": ["r1", "r2"]}

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_config_file(str(path)) == {}

    @pytest.mark.parametrize("content", ["key: [unclosed", "- just\n- a list\n"])
    def test_invalid_content(self, tmp_path, content):
        path = tmp_path / "bad.yml"
        path.write_text(content)
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_config_file(str(tmp_path / "absent.yml"))


class TestMergeProperties:
    """Layer precedence."""

    def test_precedence(self):
        merged = merge_properties(
            {"TARGET_DIR": "from-file", "USE_JETIFIER": "false", "MAVEN_REPOS": "file-repo"},
            {"DEPFETCH_TARGET_DIR": "from-env", "DEPFETCH_USE_JETIFIER": "true", "HOME": "/root"},
            ["TARGET_DIR=from-property"],
        )
        assert merged == {
            "TARGET_DIR": "from-property",
            "USE_JETIFIER": "true",
            "MAVEN_REPOS": "file-repo",
        }

    def test_unknown_keys_are_dropped(self, caplog):
        with caplog.at_level(logging.WARNING):
            merged = merge_properties({"BOGUS": 1}, {"DEPFETCH_OTHER": "x"}, ["TYPO_DIR=out"])
        assert merged == {}
        assert "BOGUS" in caplog.text
        assert "TYPO_DIR" in caplog.text


class TestLoadResolverConfig:
    """Typed configuration."""

    def test_defaults(self):
        config = load_resolver_config(_args(["TARGET_DIR=out"]), environ={})
        assert config == ResolverConfig(target_dir="out")
        assert config.use_maven_local_repo is True
        assert config.use_remote_maven_repos is True
        assert config.use_jetifier is False

    def test_full_property_map(self):
        config = load_resolver_config(
            _args([
                "TARGET_DIR= out ",
                "PACKAGES_TO_COPY=a:b:1.0;c:d:+",
                "MAVEN_REPOS=file:///tmp/m2;https://maven.example.com",
                "USE_MAVEN_LOCAL_REPO=0",
                "USE_REMOTE_MAVEN_REPOS=no",
                "USE_JETIFIER=1",
                "DATA_BINDING_VERSION=3.2.0",
            ]),
            environ={},
        )
        assert config.target_dir == "out"
        assert config.packages_to_copy == "a:b:1.0;c:d:+"
        assert config.maven_repos == ["file:///tmp/m2", "https://maven.example.com"]
        assert not config.use_maven_local_repo
        assert not config.use_remote_maven_repos
        assert config.use_jetifier
        assert config.data_binding_version == "3.2.0"

    def test_list_packages_from_file(self, tmp_path):
        path = tmp_path / "c.yml"
        path.write_text("TARGET_DIR: out\nPACKAGES_TO_COPY: ['a:b:1.0', 'c:d:+']\n")
        config = load_resolver_config(_args(config=str(path)), environ={})
        assert config.packages_to_copy == "a:b:1.0;c:d:+"

    def test_missing_target_dir(self):
        with pytest.raises(ConfigurationError):
            load_resolver_config(_args(["PACKAGES_TO_COPY=a:b"]), environ={})

    @pytest.mark.parametrize("value", ["perhaps", ""])
    def test_invalid_flag(self, value):
        with pytest.raises(ConfigurationError):
            load_resolver_config(_args(["TARGET_DIR=out", f"USE_JETIFIER={value}"]), environ={})
