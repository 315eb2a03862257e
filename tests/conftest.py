"""Shared fixtures: m2 repositories built on disk."""

import io
import os
import struct
import zipfile
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pytest

from depfetch.common import http_client
from depfetch.registry.maven.local import LocalMavenRepository
from depfetch.registry.repository_set import RepositorySet

Dependency = Union[str, Tuple[str, Dict[str, str]]]


def make_zip(entries: Dict[str, bytes]) -> bytes:
    """Zip ``entries`` with fixed timestamps so output is reproducible."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, data in entries.items():
            info = zipfile.ZipInfo(name, date_time=(2020, 1, 1, 0, 0, 0))
            info.compress_type = zipfile.ZIP_DEFLATED
            archive.writestr(info, data)
    return buffer.getvalue()


def make_class_file(this_class: str, references: Sequence[str]) -> bytes:
    """Build a minimal class file whose constant pool holds ``references``.

    A CONSTANT_Long is placed in the middle of the pool to exercise the
    two-slot entries.
    """
    pool: List[bytes] = []

    def utf8(text: str) -> bytes:
        encoded = text.encode("utf-8")
        return b"\x01" + struct.pack(">H", len(encoded)) + encoded

    pool.append(utf8(this_class))                       # 1
    pool.append(b"\x07" + struct.pack(">H", 1))         # 2
    pool.append(utf8("java/lang/Object"))               # 3
    pool.append(b"\x07" + struct.pack(">H", 3))         # 4
    pool.append(b"\x05" + struct.pack(">q", 42))        # 5, 6
    count = 7
    for reference in references:
        pool.append(utf8(reference))
        count += 1
    header = b"\xca\xfe\xba\xbe" + struct.pack(">HHH", 0, 52, count)
    tail = struct.pack(">HHHHHHH", 0x21, 2, 4, 0, 0, 0, 0)
    return header + b"".join(pool) + tail


def read_utf8_constants(data: bytes) -> List[str]:
    """Return every CONSTANT_Utf8 value of a class file built by make_class_file."""
    (count,) = struct.unpack_from(">H", data, 8)
    pos, index, values = 10, 1, []
    sizes = {3: 4, 4: 4, 5: 8, 6: 8, 7: 2, 8: 2, 9: 4, 10: 4, 11: 4, 12: 4, 15: 3, 16: 2, 17: 4, 18: 4}
    while index < count:
        tag = data[pos]
        if tag == 1:
            (length,) = struct.unpack_from(">H", data, pos + 1)
            values.append(data[pos + 3:pos + 3 + length].decode("utf-8"))
            pos += 3 + length
            index += 1
        else:
            pos += 1 + sizes[tag]
            index += 2 if tag in (5, 6) else 1
    return values


class M2Builder:
    """Writes POMs, binaries and maven-metadata.xml in the m2 layout."""

    def __init__(self, root: str):
        self.root = root
        self._versions: Dict[Tuple[str, str], List[str]] = {}

    def _dir(self, group: str, artifact: str, version: Optional[str] = None) -> str:
        parts = [self.root] + group.split(".") + [artifact]
        if version:
            parts.append(version)
        return os.path.join(*parts)

    def _write_metadata(self, group: str, artifact: str) -> None:
        versions = "".join(f"<version>{v}</version>" for v in self._versions[(group, artifact)])
        xml = (
            "<metadata>"
            f"<groupId>{group}</groupId><artifactId>{artifact}</artifactId>"
            f"<versioning><versions>{versions}</versions></versioning>"
            "</metadata>"
        )
        with open(os.path.join(self._dir(group, artifact), "maven-metadata.xml"), "w", encoding="utf-8") as fh:
            fh.write(xml)

    def add(
        self,
        coordinate: str,
        packaging: str = "jar",
        dependencies: Iterable[Dependency] = (),
        content: Optional[bytes] = None,
        extension: Optional[str] = None,
        classifier: Optional[str] = None,
        listed: bool = True,
    ) -> str:
        """Publish ``group:artifact:version``; returns the binary path."""
        group, artifact, version = coordinate.split(":")
        directory = self._dir(group, artifact, version)
        os.makedirs(directory, exist_ok=True)

        deps_xml = []
        for dep in dependencies:
            extra: Dict[str, str] = {}
            if isinstance(dep, tuple):
                dep, extra = dep
            d_group, d_artifact, d_version = dep.split(":")
            fields = "".join(f"<{k}>{v}</{k}>" for k, v in extra.items())
            deps_xml.append(
                f"<dependency><groupId>{d_group}</groupId><artifactId>{d_artifact}</artifactId>"
                f"<version>{d_version}</version>{fields}</dependency>"
            )
        pom = (
            '<project xmlns="http://maven.apache.org/POM/4.0.0">'
            f"<modelVersion>4.0.0</modelVersion><groupId>{group}</groupId>"
            f"<artifactId>{artifact}</artifactId><version>{version}</version>"
            f"<packaging>{packaging}</packaging>"
            f"<dependencies>{''.join(deps_xml)}</dependencies></project>"
        )
        with open(os.path.join(directory, f"{artifact}-{version}.pom"), "w", encoding="utf-8") as fh:
            fh.write(pom)

        name = f"{artifact}-{version}"
        if classifier:
            name += f"-{classifier}"
        path = os.path.join(directory, f"{name}.{extension or packaging}")
        if content is None:
            content = make_zip({"META-INF/MANIFEST.MF": f"Name: {coordinate}\n".encode("utf-8")})
        with open(path, "wb") as fh:
            fh.write(content)

        if listed:
            versions = self._versions.setdefault((group, artifact), [])
            if version not in versions:
                versions.append(version)
            self._write_metadata(group, artifact)
        return path

    def repository(self) -> LocalMavenRepository:
        return LocalMavenRepository(self.root)

    def repository_set(self) -> RepositorySet:
        return RepositorySet([self.repository()])


def _aar(dep: str) -> Tuple[str, Dict[str, str]]:
    return dep, {"type": "aar"}


LEGACY_FRAGMENT = "android/support/v4/app/Fragment"


def populate(m2: M2Builder) -> M2Builder:
    """Publish the artifact set shared by the resolver scenarios."""
    support = "com.android.support"
    for version in ("23.0.1", "24.0.0", "26.1.0"):
        m2.add(f"{support}:support-annotations:{version}")
    m2.add(f"{support}:support-annotations:23.0.1", extension="magic", packaging="jar")
    m2.add(f"{support}:support-annotations:27.0.2-SNAPSHOT", listed=False)
    for version in ("23.0.1", "24.0.0"):
        m2.add(f"{support}:support-v4:{version}", "aar", [f"{support}:support-annotations:{version}"])
        m2.add(f"{support}:appcompat-v7:{version}", "aar", [_aar(f"{support}:support-v4:{version}")])
    m2.add(f"{support}:multidex:1.0.3", "aar")

    m2.add("android.arch.core:common:1.0.0", dependencies=[f"{support}:support-annotations:26.1.0"])
    m2.add("android.arch.lifecycle:common:1.0.0", dependencies=[f"{support}:support-annotations:26.1.0"])

    for version in ("4.3.0", "9.8.0"):
        m2.add(f"com.google.firebase:firebase-app-unity:{version}", "aar", extension="srcaar",
               content=make_zip({"AndroidManifest.xml": f"<manifest v='{version}'/>".encode("utf-8")}))
    classes = make_zip({
        "com/google/android/gms/common/SupportFragment.class": make_class_file(
            "com/google/android/gms/common/SupportFragment",
            [LEGACY_FRAGMENT, f"L{LEGACY_FRAGMENT};"],
        ),
    })
    m2.add(
        "com.google.android.gms:play-services-basement:9.8.0",
        "aar",
        [_aar(f"{support}:support-v4:24.0.0")],
        content=make_zip({
            "AndroidManifest.xml": b"<manifest package='com.google.android.gms.base'/>",
            "classes.jar": classes,
            "proguard.txt": b"-keep class android.support.v4.app.Fragment { *; }\n",
        }),
    )

    m2.add("androidx.annotation:annotation:1.0.0")
    m2.add("androidx.legacy:legacy-support-v4:1.0.0", "aar", ["androidx.annotation:annotation:1.0.0"])

    psr = "org.test.psr"
    m2.add(f"{psr}:push:2.0.2", "aar", [f"{psr}:common-impl:2.2.+"])
    m2.add(f"{psr}:push:2.0.3", "aar", [f"{psr}:common-impl:2.2.+"])
    m2.add(f"{psr}:push:2.0.4", "aar", [f"{psr}:common-impl:2.3.+", f"{psr}:common:2.4.+"])
    m2.add(f"{psr}:pull:2.0.3", "aar", [f"{psr}:common-impl:2.3.+"])
    m2.add(f"{psr}:common-impl:2.2.0", "aar", [f"{psr}:common:2.3.+"])
    m2.add(f"{psr}:common-impl:2.3.0", "aar", [f"{psr}:common:2.4.+"])
    m2.add(f"{psr}:common-impl:3.0.2", "aar")
    for version in ("2.3.0", "2.4.0"):
        m2.add(f"{psr}:common:{version}", "aar")
    for version in ("3.0.2", "3.0.3"):
        m2.add(f"{psr}:common:{version}", "aar", [f"{psr}:common-impl:3.0.2"])
    m2.add(f"{psr}:classifier:1.0.1", "aar", classifier="foo")
    for version in ("4.0.0", "5.0.0"):
        m2.add(f"{psr}:common-impl:{version}", "aar")
    m2.add(f"{psr}:push:5.0.1", "aar", [f"{psr}:common-impl:[5.0.0]"])
    m2.add(f"{psr}:pull:6.0.1", "aar", [f"{psr}:common-impl:[4.0.0]"])
    m2.add(f"{psr}:pull:7.0.0", "aar", [f"{psr}:common-impl:[5.0.0]"])

    locked = "org.test.psr.locked"
    m2.add(f"{locked}:common:1.2.3", "aar")
    m2.add(f"{locked}:new-common:1.5.0", "aar")
    m2.add(f"{locked}:input:1.2.3", "aar", [f"{locked}:common:[1.2.3]"])
    m2.add(f"{locked}:input:1.5.0", "aar", [f"{locked}:new-common:[1.5.0]"])
    m2.add(f"{locked}:output:1.5.0", "aar", [f"{locked}:input:[1.5.0]", f"{locked}:new-common:[1.5.0]"])

    gms = "com.google.android.gms"
    for version in ("12.0.0", "15.0.0"):
        m2.add(f"{gms}:play-services-basement:{version}", "aar")
        m2.add(f"{gms}:play-services-tasks:{version}", "aar", [f"{gms}:play-services-basement:[{version}]"])
    return m2


@pytest.fixture
def m2(tmp_path):
    """Empty m2 repository under tmp_path."""
    return M2Builder(str(tmp_path / "m2"))


@pytest.fixture
def fixture_repo(m2):
    """m2 repository populated with the shared scenario artifacts."""
    return populate(m2)


@pytest.fixture
def repositories(fixture_repo):
    """RepositorySet over the populated fixture repository."""
    return fixture_repo.repository_set()


@pytest.fixture(autouse=True)
def _clear_http_cache():
    http_client.clear_cache()
    yield
    http_client.clear_cache()
