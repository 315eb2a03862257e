"""Legacy Android support → AndroidX mapping tables."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Pattern, Tuple

from depfetch.versioning.models import Coordinate, Identity, Request
from depfetch.versioning.parser import parse_version_constraint


@dataclass(frozen=True)
class ArtifactMapping:
    """Modern replacement of a legacy artifact."""
    group: str
    artifact: str
    version: str

    @property
    def identity(self) -> Identity:
        return (self.group, self.artifact)


def _same_name(names: Iterable[str], version: str = "1.0.0") -> Dict[str, Tuple[str, str, str]]:
    return {name: (f"androidx.{name}", name, version) for name in names}


_SUPPORT = "com.android.support"

# legacy "group:artifact" -> (modern group, modern artifact, version constraint)
ARTIFACT_TABLE: Dict[str, Tuple[str, str, str]] = {
    f"{_SUPPORT}:support-annotations": ("androidx.annotation", "annotation", "1.0.0"),
    f"{_SUPPORT}:support-compat": ("androidx.core", "core", "1.0.0"),
    f"{_SUPPORT}:support-core-utils": ("androidx.legacy", "legacy-support-core-utils", "1.0.0"),
    f"{_SUPPORT}:support-core-ui": ("androidx.legacy", "legacy-support-core-ui", "1.0.0"),
    f"{_SUPPORT}:support-fragment": ("androidx.fragment", "fragment", "1.0.0"),
    f"{_SUPPORT}:support-v4": ("androidx.legacy", "legacy-support-v4", "1.0.0"),
    f"{_SUPPORT}:support-v13": ("androidx.legacy", "legacy-support-v13", "1.0.0"),
    f"{_SUPPORT}:support-media-compat": ("androidx.media", "media", "1.0.0"),
    f"{_SUPPORT}:support-vector-drawable": ("androidx.vectordrawable", "vectordrawable", "1.0.0"),
    f"{_SUPPORT}:animated-vector-drawable": ("androidx.vectordrawable", "vectordrawable-animated", "1.0.0"),
    f"{_SUPPORT}:support-dynamic-animation": ("androidx.dynamicanimation", "dynamicanimation", "1.0.0"),
    f"{_SUPPORT}:support-emoji": ("androidx.emoji", "emoji", "1.0.0"),
    f"{_SUPPORT}:support-content": ("androidx.contentpager", "contentpager", "1.0.0"),
    f"{_SUPPORT}:collections": ("androidx.collection", "collection", "1.0.0"),
    f"{_SUPPORT}:appcompat-v7": ("androidx.appcompat", "appcompat", "1.0.0"),
    f"{_SUPPORT}:cardview-v7": ("androidx.cardview", "cardview", "1.0.0"),
    f"{_SUPPORT}:gridlayout-v7": ("androidx.gridlayout", "gridlayout", "1.0.0"),
    f"{_SUPPORT}:mediarouter-v7": ("androidx.mediarouter", "mediarouter", "1.0.0"),
    f"{_SUPPORT}:palette-v7": ("androidx.palette", "palette", "1.0.0"),
    f"{_SUPPORT}:preference-v7": ("androidx.preference", "preference", "1.0.0"),
    f"{_SUPPORT}:recyclerview-v7": ("androidx.recyclerview", "recyclerview", "1.0.0"),
    f"{_SUPPORT}:leanback-v17": ("androidx.leanback", "leanback", "1.0.0"),
    f"{_SUPPORT}:customtabs": ("androidx.browser", "browser", "1.0.0"),
    f"{_SUPPORT}:percent": ("androidx.percentlayout", "percentlayout", "1.0.0"),
    f"{_SUPPORT}:design": ("com.google.android.material", "material", "1.0.0"),
    f"{_SUPPORT}:multidex": ("androidx.multidex", "multidex", "2.0.0"),
    f"{_SUPPORT}:multidex-instrumentation": ("androidx.multidex", "multidex-instrumentation", "2.0.0"),
    f"{_SUPPORT}.constraint:constraint-layout": ("androidx.constraintlayout", "constraintlayout", "[1.1.0,2.0.0)"),
    f"{_SUPPORT}.test:runner": ("androidx.test", "runner", "1.1.0"),
    f"{_SUPPORT}.test:rules": ("androidx.test", "rules", "1.1.0"),
    f"{_SUPPORT}.test.espresso:espresso-core": ("androidx.test.espresso", "espresso-core", "3.1.0"),
    "android.arch.core:common": ("androidx.arch.core", "core-common", "2.0.0"),
    "android.arch.core:runtime": ("androidx.arch.core", "core-runtime", "2.0.0"),
    "android.arch.core:core-testing": ("androidx.arch.core", "core-testing", "2.0.0"),
    "android.arch.lifecycle:common": ("androidx.lifecycle", "lifecycle-common", "2.0.0"),
    "android.arch.lifecycle:common-java8": ("androidx.lifecycle", "lifecycle-common-java8", "2.0.0"),
    "android.arch.lifecycle:compiler": ("androidx.lifecycle", "lifecycle-compiler", "2.0.0"),
    "android.arch.lifecycle:extensions": ("androidx.lifecycle", "lifecycle-extensions", "2.0.0"),
    "android.arch.lifecycle:livedata": ("androidx.lifecycle", "lifecycle-livedata", "2.0.0"),
    "android.arch.lifecycle:livedata-core": ("androidx.lifecycle", "lifecycle-livedata-core", "2.0.0"),
    "android.arch.lifecycle:reactivestreams": ("androidx.lifecycle", "lifecycle-reactivestreams", "2.0.0"),
    "android.arch.lifecycle:runtime": ("androidx.lifecycle", "lifecycle-runtime", "2.0.0"),
    "android.arch.lifecycle:viewmodel": ("androidx.lifecycle", "lifecycle-viewmodel", "2.0.0"),
    "android.arch.paging:common": ("androidx.paging", "paging-common", "2.0.0"),
    "android.arch.paging:runtime": ("androidx.paging", "paging-runtime", "2.0.0"),
    "android.arch.paging:rxjava2": ("androidx.paging", "paging-rxjava2", "2.0.0"),
    "android.arch.persistence:db": ("androidx.sqlite", "sqlite", "2.0.0"),
    "android.arch.persistence:db-framework": ("androidx.sqlite", "sqlite-framework", "2.0.0"),
    "android.arch.persistence.room:common": ("androidx.room", "room-common", "2.0.0"),
    "android.arch.persistence.room:compiler": ("androidx.room", "room-compiler", "2.0.0"),
    "android.arch.persistence.room:guava": ("androidx.room", "room-guava", "2.0.0"),
    "android.arch.persistence.room:runtime": ("androidx.room", "room-runtime", "2.0.0"),
    "android.arch.persistence.room:rxjava2": ("androidx.room", "room-rxjava2", "2.0.0"),
    "android.arch.persistence.room:testing": ("androidx.room", "room-testing", "2.0.0"),
}
ARTIFACT_TABLE.update(
    {
        f"{_SUPPORT}:{name}": modern
        for name, modern in _same_name(
            (
                "asynclayoutinflater",
                "coordinatorlayout",
                "cursoradapter",
                "customview",
                "documentfile",
                "drawerlayout",
                "exifinterface",
                "heifwriter",
                "interpolator",
                "loader",
                "localbroadcastmanager",
                "print",
                "recommendation",
                "slidingpanelayout",
                "swiperefreshlayout",
                "transition",
                "versionedparcelable",
                "viewpager",
                "wear",
            ),
        ).items()
    }
)

DATA_BINDING_ARTIFACTS: Dict[str, Tuple[str, str]] = {
    "com.android.databinding:adapters": ("androidx.databinding", "databinding-adapters"),
    "com.android.databinding:baseLibrary": ("androidx.databinding", "databinding-common"),
    "com.android.databinding:library": ("androidx.databinding", "databinding-runtime"),
}

# Slashed package prefixes; longer (class level) prefixes must win over shorter ones.
PACKAGE_TABLE: Dict[str, str] = {
    "android/support/annotation/": "androidx/annotation/",
    "android/support/v4/app/Fragment": "androidx/fragment/app/Fragment",
    "android/support/v4/app/ListFragment": "androidx/fragment/app/ListFragment",
    "android/support/v4/app/DialogFragment": "androidx/fragment/app/DialogFragment",
    "android/support/v4/app/LoaderManager": "androidx/loader/app/LoaderManager",
    "android/support/v4/app/": "androidx/core/app/",
    "android/support/v4/content/LocalBroadcastManager": "androidx/localbroadcastmanager/content/LocalBroadcastManager",
    "android/support/v4/content/Loader": "androidx/loader/content/Loader",
    "android/support/v4/content/": "androidx/core/content/",
    "android/support/v4/graphics/": "androidx/core/graphics/",
    "android/support/v4/os/": "androidx/core/os/",
    "android/support/v4/util/ArrayMap": "androidx/collection/ArrayMap",
    "android/support/v4/util/ArraySet": "androidx/collection/ArraySet",
    "android/support/v4/util/LongSparseArray": "androidx/collection/LongSparseArray",
    "android/support/v4/util/LruCache": "androidx/collection/LruCache",
    "android/support/v4/util/SimpleArrayMap": "androidx/collection/SimpleArrayMap",
    "android/support/v4/util/SparseArrayCompat": "androidx/collection/SparseArrayCompat",
    "android/support/v4/util/": "androidx/core/util/",
    "android/support/v4/view/ViewPager": "androidx/viewpager/widget/ViewPager",
    "android/support/v4/view/PagerAdapter": "androidx/viewpager/widget/PagerAdapter",
    "android/support/v4/view/": "androidx/core/view/",
    "android/support/v4/widget/DrawerLayout": "androidx/drawerlayout/widget/DrawerLayout",
    "android/support/v4/widget/SwipeRefreshLayout": "androidx/swiperefreshlayout/widget/SwipeRefreshLayout",
    "android/support/v4/widget/": "androidx/core/widget/",
    "android/support/v4/media/": "androidx/media/",
    "android/support/v7/app/": "androidx/appcompat/app/",
    "android/support/v7/content/res/": "androidx/appcompat/content/res/",
    "android/support/v7/view/": "androidx/appcompat/view/",
    "android/support/v7/widget/RecyclerView": "androidx/recyclerview/widget/RecyclerView",
    "android/support/v7/widget/CardView": "androidx/cardview/widget/CardView",
    "android/support/v7/widget/": "androidx/appcompat/widget/",
    "android/support/multidex/": "androidx/multidex/",
    "android/support/constraint/": "androidx/constraintlayout/widget/",
    "android/arch/core/": "androidx/arch/core/",
    "android/arch/lifecycle/": "androidx/lifecycle/",
    "android/arch/paging/": "androidx/paging/",
    "android/arch/persistence/db/": "androidx/sqlite/db/",
    "android/arch/persistence/room/": "androidx/room/",
}

DATA_BINDING_PACKAGES: Dict[str, str] = {
    "android/databinding/": "androidx/databinding/",
}


def _alternation(prefixes: Iterable[str]) -> str:
    return "|".join(re.escape(p) for p in sorted(prefixes, key=len, reverse=True))


class JetifierMapping:
    """Artifact and package mappings from legacy support libraries to AndroidX."""

    def __init__(
        self,
        data_binding_version: Optional[str] = None,
        artifacts: Optional[Dict[str, Tuple[str, str, str]]] = None,
        packages: Optional[Dict[str, str]] = None,
    ):
        table = dict(ARTIFACT_TABLE if artifacts is None else artifacts)
        package_table = dict(PACKAGE_TABLE if packages is None else packages)
        if data_binding_version:
            for legacy, (group, artifact) in DATA_BINDING_ARTIFACTS.items():
                table[legacy] = (group, artifact, data_binding_version)
            package_table.update(DATA_BINDING_PACKAGES)

        self._artifacts: Dict[Identity, ArtifactMapping] = {}
        for legacy, (group, artifact, version) in table.items():
            legacy_group, legacy_artifact = legacy.split(":", 1)
            self._artifacts[(legacy_group, legacy_artifact)] = ArtifactMapping(group, artifact, version)

        self.packages = package_table
        self._dotted = {k.replace("/", "."): v.replace("/", ".") for k, v in package_table.items()}
        self._slashed_bytes: Pattern[bytes] = re.compile(_alternation(package_table).encode("ascii"))
        self._slashed_text: Pattern[str] = re.compile(_alternation(package_table))
        # Dotted names must not match inside group ids such as com.android.support
        self._dotted_text: Pattern[str] = re.compile(r"(?<![\w.])(?:" + _alternation(self._dotted) + ")")

    def is_legacy(self, identity: Identity) -> bool:
        return identity in self._artifacts

    def modern(self, identity: Identity) -> Optional[ArtifactMapping]:
        return self._artifacts.get(identity)

    def map_request(self, request: Request) -> Request:
        """Replace a legacy dependency request by its modern counterpart."""
        mapped = self._artifacts.get(request.identity)
        if mapped is None:
            return request
        return Request(
            coordinate=Coordinate(mapped.group, mapped.artifact, request.coordinate.classifier),
            constraint=parse_version_constraint(mapped.version),
            requested_by=request.requested_by,
            raw=request.raw,
        )

    def rewrite_binary_name(self, data: bytes) -> bytes:
        """Rewrite slashed internal names inside raw (modified UTF-8) bytes."""
        return self._slashed_bytes.sub(
            lambda m: self.packages[m.group(0).decode("ascii")].encode("ascii"), data
        )

    def rewrite_text(self, text: str) -> str:
        """Rewrite slashed and dotted references inside a text document."""
        text = self._slashed_text.sub(lambda m: self.packages[m.group(0)], text)
        return self._dotted_text.sub(lambda m: self._dotted[m.group(0)], text)
