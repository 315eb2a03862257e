"""Tests for POM and maven-metadata.xml parsing."""

import xml.etree.ElementTree as ET
from unittest.mock import MagicMock, patch

import pytest

from depfetch.registry.maven.pom import parse_metadata_versions, parse_pom
from depfetch.versioning.cache import TTLCache
from depfetch.versioning.models import LATEST, Exact, VersionRange, WildcardPrefix

PARENT_POM = b"""<project xmlns="http://maven.apache.org/POM/4.0.0">
  <groupId>com.example</groupId>
  <artifactId>parent</artifactId>
  <version>5</version>
  <properties><lib.version>2.1.0</lib.version></properties>
  <dependencyManagement><dependencies>
    <dependency><groupId>com.example</groupId><artifactId>managed</artifactId><version>${lib.version}</version></dependency>
  </dependencies></dependencyManagement>
</project>"""

CHILD_POM = b"""<project xmlns="http://maven.apache.org/POM/4.0.0">
  <parent><groupId>com.example</groupId><artifactId>parent</artifactId><version>5</version></parent>
  <artifactId>child</artifactId>
  <version>1.0</version>
  <packaging>bundle</packaging>
  <dependencies>
    <dependency><groupId>${project.groupId}</groupId><artifactId>sibling</artifactId><version>${project.version}</version></dependency>
    <dependency><groupId>com.example</groupId><artifactId>managed</artifactId></dependency>
    <dependency><groupId>com.example</groupId><artifactId>ranged</artifactId><version>[1.0,2.0)</version><type>aar</type></dependency>
    <dependency><groupId>com.example</groupId><artifactId>dynamic</artifactId><version>3.+</version><classifier>sources</classifier></dependency>
    <dependency><groupId>junit</groupId><artifactId>junit</artifactId><version>4.12</version><scope>test</scope></dependency>
    <dependency><groupId>com.example</groupId><artifactId>opt</artifactId><version>1</version><optional>true</optional></dependency>
    <dependency><groupId>com.example</groupId><artifactId>weird</artifactId><version>1.+.2</version></dependency>
  </dependencies>
</project>"""


class TestParsePom:
    """Packaging and dependency extraction."""

    def test_dependencies_with_parent(self):
        load_parent = MagicMock(return_value=PARENT_POM)
        info = parse_pom(CHILD_POM, "com.example:child", load_parent)
        load_parent.assert_called_once_with("com.example", "parent", "5")
        assert info.packaging == "jar"

        by_artifact = {d.coordinate.artifact: d for d in info.dependencies}
        assert list(by_artifact) == ["sibling", "managed", "ranged", "dynamic", "weird"]
        assert by_artifact["sibling"].coordinate.group == "com.example"
        assert by_artifact["sibling"].constraint == Exact("1.0")
        assert by_artifact["managed"].constraint == Exact("2.1.0")
        assert by_artifact["ranged"].constraint == VersionRange("1.0", "2.0", True, False)
        assert by_artifact["ranged"].coordinate.packaging == "aar"
        assert by_artifact["dynamic"].constraint == WildcardPrefix("3.")
        assert by_artifact["dynamic"].coordinate.classifier == "sources"
        assert by_artifact["weird"].constraint == LATEST
        assert all(d.requested_by == frozenset({"com.example:child"}) for d in info.dependencies)

    def test_without_parent_loader_managed_version_is_latest(self):
        info = parse_pom(CHILD_POM, "com.example:child")
        managed = [d for d in info.dependencies if d.coordinate.artifact == "managed"][0]
        assert managed.constraint == LATEST

    def test_not_xml(self):
        with pytest.raises(ET.ParseError):
            parse_pom(b"<project", "a:b")

    def test_metadata_versions(self):
        data = (
            b"<metadata><versioning><versions><version>1.0</version><version> </version>"
            b"<version>2.0</version></versions></versioning></metadata>"
        )
        assert parse_metadata_versions(data) == ["1.0", "2.0"]


class TestTTLCache:
    """Repository lookup cache."""

    def test_none_is_a_cached_value(self):
        cache = TTLCache()
        cache.set("missing", None)
        assert cache.lookup("missing") == (True, None)
        assert cache.lookup("other") == (False, None)

    def test_expiry(self):
        cache = TTLCache(default_ttl=10)
        with patch("depfetch.versioning.cache.time.time", return_value=1000.0):
            cache.set("key", "value")
        with patch("depfetch.versioning.cache.time.time", return_value=1011.0):
            assert cache.lookup("key") == (False, None)
        assert len(cache) == 0

    def test_eviction(self):
        cache = TTLCache(max_entries=10)
        for index in range(11):
            cache.set(index, index)
        assert len(cache) == 10
        assert cache.lookup(0) == (False, None)
