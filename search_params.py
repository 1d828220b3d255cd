"""Query and result values passed between the CLI, the source clients and aggregation."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any

from errors import InvalidSearchParams
from models import AcademicPaper, PaperSource

DEFAULT_MAX_RESULTS = 10
ALL_SOURCES: tuple[PaperSource, ...] = (PaperSource.ARXIV, PaperSource.SEMANTIC_SCHOLAR)

_YEAR_RANGE_RE = re.compile(r"^(\d{4})(?:-(\d{4}))?$")


@dataclass(frozen=True, slots=True)
class SearchParams:
    """Read-only query description, built fluently:

        SearchParams().with_query("diffusion").with_category("cs.CV").with_max_results(5)
    """

    query: str | None = None
    title: str | None = None
    author: str | None = None
    abstract_contains: str | None = None
    categories: tuple[str, ...] = ()
    year: str | None = None
    min_citations: int | None = None
    max_results: int = DEFAULT_MAX_RESULTS
    sources: tuple[PaperSource, ...] = ALL_SOURCES

    def with_query(self, query: str) -> SearchParams:
        return replace(self, query=query)

    def with_title(self, title: str) -> SearchParams:
        return replace(self, title=title)

    def with_author(self, author: str) -> SearchParams:
        return replace(self, author=author)

    def with_abstract(self, text: str) -> SearchParams:
        return replace(self, abstract_contains=text)

    def with_category(self, category: str) -> SearchParams:
        return replace(self, categories=(*self.categories, category))

    def with_year(self, year: str) -> SearchParams:
        return replace(self, year=year)

    def with_min_citations(self, count: int) -> SearchParams:
        return replace(self, min_citations=count)

    def with_max_results(self, count: int) -> SearchParams:
        return replace(self, max_results=count)

    def with_sources(self, *sources: PaperSource | str) -> SearchParams:
        return replace(self, sources=tuple(dict.fromkeys(PaperSource(s) for s in sources)))

    def has_search_criteria(self) -> bool:
        return self.has_text_criteria() or bool(self.categories)

    def has_text_criteria(self) -> bool:
        """Free text Semantic Scholar can search on; categories alone only narrow arXiv."""
        return any(part and part.strip() for part in (self.query, self.title, self.author, self.abstract_contains))

    def year_range(self) -> tuple[int, int] | None:
        """Return ``(start, end)`` for "2023" or "2020-2023"; None when no year is set."""
        if not self.year:
            return None
        match = _YEAR_RANGE_RE.match(self.year.strip())
        if not match:
            raise InvalidSearchParams(f"year must look like 2023 or 2020-2023, got {self.year!r}")
        start = int(match.group(1))
        end = int(match.group(2) or start)
        if end < start:
            raise InvalidSearchParams(f"year range is reversed: {self.year!r}")
        return start, end

    def validate(self) -> None:
        if not self.has_search_criteria():
            raise InvalidSearchParams("No search criteria provided (query, title, author, abstract or category)")
        if self.max_results < 1:
            raise InvalidSearchParams(f"max_results must be positive, got {self.max_results}")
        if not self.sources:
            raise InvalidSearchParams("At least one source must be selected")
        if not self.has_text_criteria() and PaperSource.ARXIV not in self.sources:
            raise InvalidSearchParams(
                "Semantic Scholar needs query, title, author or abstract text; category-only searches need arXiv"
            )
        self.year_range()


@dataclass(frozen=True, slots=True)
class SourceReport:
    """Per-source outcome of one search: status plus raw/normalized/dropped counts."""

    source: PaperSource
    ok: bool
    raw_count: int = 0
    normalized_count: int = 0
    dropped_count: int = 0
    dropped_ids: tuple[str, ...] = ()
    error: str | None = None
    skipped_reason: str | None = None

    @classmethod
    def failed(cls, source: PaperSource, error: str) -> SourceReport:
        return cls(source=source, ok=False, error=error)

    @classmethod
    def skipped(cls, source: PaperSource, reason: str) -> SourceReport:
        """Not queried because the params do not apply to this source; not a failure."""
        return cls(source=source, ok=True, skipped_reason=reason)

    @property
    def status(self) -> str:
        if not self.ok:
            return "failed"
        return "skipped" if self.skipped_reason else "ok"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source),
            "status": self.status,
            "raw_count": self.raw_count,
            "normalized_count": self.normalized_count,
            "dropped_count": self.dropped_count,
            "dropped_ids": list(self.dropped_ids),
            "error": self.error,
            "skipped_reason": self.skipped_reason,
        }


@dataclass(frozen=True, slots=True)
class SearchResult:
    papers: tuple[AcademicPaper, ...] = ()
    total_count: int = 0
    source_reports: tuple[SourceReport, ...] = ()
    duplicates_merged: int = 0

    def __len__(self) -> int:
        return len(self.papers)

    def __iter__(self):
        return iter(self.papers)

    def is_empty(self) -> bool:
        return not self.papers

    def report_for(self, source: PaperSource | str) -> SourceReport | None:
        for report in self.source_reports:
            if report.source == source:
                return report
        return None

    @property
    def failed_sources(self) -> list[PaperSource]:
        return [report.source for report in self.source_reports if not report.ok]

    @property
    def dropped_count(self) -> int:
        return sum(report.dropped_count for report in self.source_reports)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_count": self.total_count,
            "returned_count": len(self.papers),
            "duplicates_merged": self.duplicates_merged,
            "sources": [report.to_dict() for report in self.source_reports],
            "papers": [paper.to_dict() for paper in self.papers],
        }
