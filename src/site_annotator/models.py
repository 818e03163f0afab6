"""
Data models for Site Annotator.

This module defines the core data structures shared by discovery,
metadata derivation, block rendering and the injector.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Literal, Optional


class PageClass(Enum):
    """How the annotator treats a document."""
    SKIP = "skip"
    STRIP_ONLY = "strip_only"  # partials: cleaned, never re-injected
    PROCESS = "process"


class Outcome(Enum):
    """Result of processing a single document."""
    UNCHANGED = "unchanged"
    WRITTEN = "written"
    SKIPPED = "skipped"
    FAILED = "failed"


Anchor = Literal["head", "body"]


@dataclass(frozen=True)
class MarkerKind:
    """
    A kind of tool-owned block, delimited by a start/end comment pair.

    Attributes:
        name: Marker name, e.g. "AUTO-SEO-INJECT".
        version: Current marker version. Older versions are still stripped.
        anchor: Which closing element the block is inserted before.
    """
    name: str
    version: int
    anchor: Anchor

    @property
    def start(self) -> str:
        return f"<!-- {self.name} v{self.version} START -->"

    @property
    def end(self) -> str:
        return f"<!-- {self.name} v{self.version} END -->"

    def wrap(self, body: str) -> str:
        """Wrap rendered content in this kind's marker pair."""
        return f"{self.start}\n{body}\n{self.end}"


SEO_MARKER = MarkerKind("AUTO-SEO-INJECT", 3, "head")
ANALYTICS_MARKER = MarkerKind("AUTO-ANALYTICS-INJECT", 1, "head")
ADS_MARKER = MarkerKind("AUTO-ADS-INJECT", 2, "body")

# Insertion order within a run.
MARKER_KINDS = (SEO_MARKER, ANALYTICS_MARKER, ADS_MARKER)


@dataclass
class Document:
    """An HTML file read once per run and mutated in memory."""
    path: Path
    relative_path: str
    text: str
    page_class: PageClass = PageClass.PROCESS

    @property
    def is_partial(self) -> bool:
        return self.page_class == PageClass.STRIP_ONLY


@dataclass
class PageMetadata:
    """SEO values derived for one page."""
    title: str
    description: str
    canonical_url: str
    has_title: bool = False
    has_description: bool = False
    has_robots: bool = False


@dataclass
class DocumentResult:
    """Outcome of processing one document."""
    relative_path: str
    outcome: Outcome
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.outcome == Outcome.WRITTEN


@dataclass
class RunSummary:
    """Aggregate report of an annotator run."""
    results: list[DocumentResult] = field(default_factory=list)

    @property
    def scanned(self) -> int:
        return len(self.results)

    @property
    def changed(self) -> list[str]:
        return [r.relative_path for r in self.results if r.outcome == Outcome.WRITTEN]

    @property
    def failed(self) -> list[DocumentResult]:
        return [r for r in self.results if r.outcome == Outcome.FAILED]

    @property
    def summary_line(self) -> str:
        return f"Updated {len(self.changed)}/{self.scanned} HTML files."
