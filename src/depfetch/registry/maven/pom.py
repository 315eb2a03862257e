"""POM parsing: packaging and runtime dependencies of a Maven artifact."""
from __future__ import annotations

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from depfetch.constants import Constants
from depfetch.common.logging_utils import extra_context, is_debug_enabled
from depfetch.versioning.models import LATEST, Coordinate, Request
from depfetch.versioning.parser import parse_version_constraint

logger = logging.getLogger(__name__)

_PROPERTY = re.compile(r"\$\{([^}]+)\}")
_MAX_PARENT_DEPTH = 5

# Loads a parent POM given (group, artifact, version).
ParentLoader = Callable[[str, str, str], Optional[bytes]]


@dataclass(frozen=True)
class PomInfo:
    """Facts read from a POM."""
    packaging: Optional[str]
    dependencies: Tuple[Request, ...]


def _strip_namespaces(root: ET.Element) -> ET.Element:
    for elem in root.iter():
        if isinstance(elem.tag, str) and "}" in elem.tag:
            elem.tag = elem.tag.split("}", 1)[1]
    return root


def _text(elem: Optional[ET.Element], path: str) -> Optional[str]:
    if elem is None:
        return None
    found = elem.find(path)
    if found is None or found.text is None:
        return None
    value = found.text.strip()
    return value or None


def _interpolate(value: Optional[str], properties: Dict[str, str]) -> Optional[str]:
    if value is None:
        return None
    for _ in range(10):
        replaced = _PROPERTY.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
        if replaced == value:
            break
        value = replaced
    return value


class _PomModel:
    """Properties and managed versions of one POM, merged with its parents."""

    def __init__(self, root: ET.Element, load_parent: Optional[ParentLoader], depth: int = 0):
        self.root = root
        self.properties: Dict[str, str] = {}
        self.managed: Dict[Tuple[str, str], str] = {}

        parent = root.find("parent")
        parent_group = _text(parent, "groupId")
        parent_artifact = _text(parent, "artifactId")
        parent_version = _text(parent, "version")
        if (
            load_parent is not None
            and parent_group and parent_artifact and parent_version
            and depth < _MAX_PARENT_DEPTH
        ):
            data = load_parent(parent_group, parent_artifact, parent_version)
            if data:
                try:
                    parent_model = _PomModel(
                        _strip_namespaces(ET.fromstring(data)), load_parent, depth + 1
                    )
                    self.properties.update(parent_model.properties)
                    self.managed.update(parent_model.managed)
                except ET.ParseError:
                    logger.warning(
                        "Unparseable parent POM %s:%s:%s", parent_group, parent_artifact, parent_version
                    )

        group = _text(root, "groupId") or parent_group or ""
        version = _text(root, "version") or parent_version or ""
        builtins = {
            "project.groupId": group,
            "pom.groupId": group,
            "groupId": group,
            "project.artifactId": _text(root, "artifactId") or "",
            "project.version": version,
            "pom.version": version,
            "version": version,
            "project.parent.version": parent_version or "",
            "parent.version": parent_version or "",
            "project.parent.groupId": parent_group or "",
        }
        self.properties.update(builtins)
        props = root.find("properties")
        if props is not None:
            for child in props:
                if isinstance(child.tag, str):
                    self.properties[child.tag] = (child.text or "").strip()

        for dep in root.findall("dependencyManagement/dependencies/dependency"):
            g = self.interpolate(_text(dep, "groupId"))
            a = self.interpolate(_text(dep, "artifactId"))
            v = self.interpolate(_text(dep, "version"))
            if g and a and v:
                self.managed[(g, a)] = v

    def interpolate(self, value: Optional[str]) -> Optional[str]:
        return _interpolate(value, self.properties)


def parse_pom(
    data: bytes,
    parent_key: str,
    load_parent: Optional[ParentLoader] = None,
) -> PomInfo:
    """Parse POM bytes into packaging and dependency requests.

    Args:
        data: Raw POM document.
        parent_key: ``group:artifact`` recorded as the requester of each dependency.
        load_parent: Optional callback used to read ``<parent>`` POMs for
            properties and ``dependencyManagement``.

    Returns:
        PomInfo with dependencies in document order. Dependencies with a
        skipped scope or ``<optional>true</optional>`` are left out.

    Raises:
        ET.ParseError: If the document is not XML.
    """
    model = _PomModel(_strip_namespaces(ET.fromstring(data)), load_parent)
    root = model.root

    packaging = model.interpolate(_text(root, "packaging"))
    if packaging == "bundle":
        packaging = Constants.DEFAULT_PACKAGING

    dependencies: List[Request] = []
    for dep in root.findall("dependencies/dependency"):
        group = model.interpolate(_text(dep, "groupId"))
        artifact = model.interpolate(_text(dep, "artifactId"))
        if not group or not artifact:
            continue
        scope = (model.interpolate(_text(dep, "scope")) or "compile").lower()
        optional = (model.interpolate(_text(dep, "optional")) or "false").lower() == "true"
        if scope in Constants.SKIPPED_SCOPES or optional:
            if is_debug_enabled(logger):
                logger.debug(
                    "Skipping dependency",
                    extra=extra_context(
                        event="decision",
                        component="pom",
                        action="skip_dependency",
                        outcome=scope if not optional else "optional",
                        target=f"{group}:{artifact}",
                    ),
                )
            continue

        version = model.interpolate(_text(dep, "version")) or model.managed.get((group, artifact))
        try:
            constraint = parse_version_constraint(version or "")
        except ValueError:
            logger.warning(
                "Unsupported version '%s' for %s:%s in %s; using latest",
                version, group, artifact, parent_key,
            )
            constraint = LATEST

        dep_type = model.interpolate(_text(dep, "type"))
        packaging_hint = dep_type if dep_type and dep_type != Constants.DEFAULT_PACKAGING else None
        dependencies.append(
            Request(
                coordinate=Coordinate(
                    group, artifact, model.interpolate(_text(dep, "classifier")), packaging_hint
                ),
                constraint=constraint,
                requested_by=frozenset({parent_key}),
            )
        )

    return PomInfo(packaging=packaging, dependencies=tuple(dependencies))


def parse_metadata_versions(data: bytes) -> List[str]:
    """Return versions listed in maven-metadata.xml in source order.

    Raises:
        ET.ParseError: If the document is not XML.
    """
    root = _strip_namespaces(ET.fromstring(data))
    versions = []
    for item in root.findall("versioning/versions/version"):
        if isinstance(item.text, str) and item.text.strip():
            versions.append(item.text.strip())
    return versions
