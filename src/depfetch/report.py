"""Textual report consumed by build collaborators.

Three sections, each a header line followed by one entry per line, sorted.
Empty sections are omitted and sections are separated by a blank line.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

from depfetch.constants import Constants
from depfetch.materializer import MaterializationOutcome
from depfetch.versioning.models import ResolutionResult

SECTION_HEADERS = (Constants.COPIED_HEADER, Constants.MISSING_HEADER, Constants.MODIFIED_HEADER)


@dataclass(frozen=True)
class Report:
    copied: Tuple[str, ...] = ()
    missing: Tuple[str, ...] = ()
    modified: Tuple[str, ...] = ()

    def sections(self) -> List[str]:
        out = []
        for header, entries in zip(SECTION_HEADERS, (self.copied, self.missing, self.modified)):
            if entries:
                out.append("\n".join((header,) + tuple(sorted(entries))))
        return out

    def render(self) -> str:
        return "\n\n".join(self.sections())


class ReportBuilder:  # pylint: disable=too-few-public-methods
    """Builds a Report from a resolution result and what was written."""

    def build(self, result: ResolutionResult, outcome: Optional[MaterializationOutcome] = None) -> Report:
        copied = outcome.copied if outcome is not None else tuple(a.filename for a in result.artifacts)
        return Report(
            copied=tuple(sorted(copied)),
            missing=tuple(sorted({m.render() for m in result.missing})),
            modified=tuple(sorted({m.render() for m in result.modified})),
        )


def parse_report(text: str) -> List[str]:
    """Split report text into its sections, keeping only recognized headers.

    Each returned section is the header line followed by its entries,
    joined by newlines.
    """
    sections = []
    for block in text.strip().split("\n\n"):
        lines = [line.rstrip() for line in block.strip().splitlines() if line.strip()]
        if lines and lines[0] in SECTION_HEADERS:
            sections.append("\n".join(lines))
    return sections
