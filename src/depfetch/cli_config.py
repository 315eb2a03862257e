"""Resolver configuration layering.

Precedence, lowest first: defaults in ``Constants``, the ``--config`` file
(YAML or JSON, top level or a ``depfetch:`` section), ``DEPFETCH_<KEY>``
environment variables, and ``-P KEY=VALUE`` properties.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import yaml

from depfetch.constants import ConfigKeys, Constants
from depfetch.errors import ConfigurationError

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {key.value for key in ConfigKeys}
_REPO_SEPARATORS = re.compile(r"[;,\s]+")


@dataclass
class ResolverConfig:
    """Typed view of the flat resolver property map."""
    target_dir: str
    packages_to_copy: str = ""
    maven_repos: List[str] = field(default_factory=list)
    use_maven_local_repo: bool = Constants.DEFAULT_USE_MAVEN_LOCAL_REPO
    use_remote_maven_repos: bool = Constants.DEFAULT_USE_REMOTE_MAVEN_REPOS
    use_jetifier: bool = Constants.DEFAULT_USE_JETIFIER
    data_binding_version: Optional[str] = None


def parse_bool(key: str, value: Any) -> bool:
    """Parse ``1/0/true/false/yes/no/on/off``.

    Raises:
        ConfigurationError: For any other value.
    """
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in Constants.TRUE_VALUES:
        return True
    if text in Constants.FALSE_VALUES:
        return False
    raise ConfigurationError(f"{key} must be a boolean, got '{value}'")


def split_repos(value: Any) -> List[str]:
    """Split a repository list given as text or a YAML list."""
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        items: List[str] = []
        for item in value:
            items.extend(split_repos(item))
        return items
    return [part for part in _REPO_SEPARATORS.split(str(value).strip()) if part]


def load_config_file(path: str) -> Dict[str, Any]:
    """Load a YAML or JSON config file into a flat property map.

    Raises:
        ConfigurationError: If the file cannot be read or is not a mapping.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            if path.lower().endswith(".json"):
                data = json.load(fh)
            else:
                data = yaml.safe_load(fh)
    except OSError as exc:
        raise ConfigurationError(f"Cannot read config file {path}: {exc}") from exc
    except (ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Invalid config file {path}: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    section = data.get(Constants.CONFIG_SECTION)
    if isinstance(section, dict):
        return dict(section)
    return dict(data)


def parse_property(text: str) -> tuple:
    """Split ``KEY=VALUE``.

    Raises:
        ConfigurationError: If there is no ``=`` or the key is empty.
    """
    key, sep, value = text.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ConfigurationError(f"Invalid property '{text}', expected KEY=VALUE")
    return key, value


def merge_properties(
    file_values: Mapping[str, Any],
    environ: Mapping[str, str],
    properties: List[str],
) -> Dict[str, Any]:
    """Merge the configuration layers into one flat map."""
    merged: Dict[str, Any] = {}
    for key, value in file_values.items():
        merged[str(key)] = value
    for name, value in environ.items():
        if name.startswith(Constants.ENV_PREFIX):
            key = name[len(Constants.ENV_PREFIX):]
            if key in _KNOWN_KEYS:
                merged[key] = value
    for text in properties:
        key, value = parse_property(text)
        merged[key] = value

    for key in sorted(set(merged) - _KNOWN_KEYS):
        logger.warning("Ignoring unknown property %s", key)
        del merged[key]
    return merged


def load_resolver_config(args: Any, environ: Optional[Mapping[str, str]] = None) -> ResolverConfig:
    """Build the ResolverConfig for a CLI invocation.

    Args:
        args: Parsed CLI namespace (``CONFIG`` and ``PROPERTIES`` are read).
        environ: Environment mapping; defaults to ``os.environ``.

    Raises:
        ConfigurationError: On a missing TARGET_DIR, bad syntax or unreadable file.
    """
    environ = os.environ if environ is None else environ
    config_path = getattr(args, "CONFIG", None)
    file_values = load_config_file(config_path) if config_path else {}
    merged = merge_properties(file_values, environ, list(getattr(args, "PROPERTIES", None) or []))

    target_dir = merged.get(ConfigKeys.TARGET_DIR.value)
    if target_dir is None or not str(target_dir).strip():
        raise ConfigurationError(f"{ConfigKeys.TARGET_DIR.value} must be set")

    packages = merged.get(ConfigKeys.PACKAGES_TO_COPY.value, "")
    if isinstance(packages, (list, tuple)):
        packages = ";".join(str(p) for p in packages)

    data_binding = merged.get(ConfigKeys.DATA_BINDING_VERSION.value)
    data_binding = str(data_binding).strip() if data_binding is not None else ""

    def flag(key: ConfigKeys, default: bool) -> bool:
        if key.value not in merged:
            return default
        return parse_bool(key.value, merged[key.value])

    return ResolverConfig(
        target_dir=str(target_dir).strip(),
        packages_to_copy=str(packages or ""),
        maven_repos=split_repos(merged.get(ConfigKeys.MAVEN_REPOS.value)),
        use_maven_local_repo=flag(ConfigKeys.USE_MAVEN_LOCAL_REPO, Constants.DEFAULT_USE_MAVEN_LOCAL_REPO),
        use_remote_maven_repos=flag(ConfigKeys.USE_REMOTE_MAVEN_REPOS, Constants.DEFAULT_USE_REMOTE_MAVEN_REPOS),
        use_jetifier=flag(ConfigKeys.USE_JETIFIER, Constants.DEFAULT_USE_JETIFIER),
        data_binding_version=data_binding or None,
    )
