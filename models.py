"""Shared typed models: the canonical paper shape and its source-specific constructors."""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, date, datetime
from email.utils import parsedate_to_datetime
from enum import StrEnum
from typing import Any

import arxiv

from errors import NormalizationError

UNKNOWN_AUTHOR = "Unknown"
ARXIV_VENUE = "arXiv"

_ARXIV_PREFIXES = (
    "http://arxiv.org/abs/",
    "https://arxiv.org/abs/",
    "http://arxiv.org/pdf/",
    "https://arxiv.org/pdf/",
    "arxiv:",
)
_ARXIV_VERSION_RE = re.compile(r"v\d+$")
_YEAR_RE = re.compile(r"^\d{4}$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")
_NON_ALNUM_RE = re.compile(r"[\W_]+")


class PaperSource(StrEnum):
    ARXIV = "arxiv"
    SEMANTIC_SCHOLAR = "semantic_scholar"

    @property
    def display_name(self) -> str:
        return "arXiv" if self is PaperSource.ARXIV else "Semantic Scholar"


@dataclass(frozen=True, slots=True)
class Author:
    """One author, owned by value by the paper that lists it."""

    name: str
    affiliation: str | None = None
    author_id: str | None = None

    @property
    def surname(self) -> str:
        parts = self.name.split()
        return parts[-1].lower() if parts else ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "affiliation": self.affiliation, "author_id": self.author_id}


@dataclass(frozen=True, slots=True)
class AcademicPaper:
    """Normalized paper record shared by search, export and analysis.

    Built once by ``from_arxiv`` / ``from_semantic_scholar`` and never mutated;
    enrichment returns a new instance.
    """

    id: str
    title: str
    abstract: str
    authors: tuple[Author, ...]
    source: PaperSource
    published_date: date | None = None
    categories: frozenset[str] = frozenset()
    url: str | None = None
    arxiv_id: str | None = None
    ss_id: str | None = None
    doi: str | None = None
    venue: str | None = None
    primary_category: str | None = None
    citation_count: int | None = None
    influential_citation_count: int | None = None
    reference_count: int | None = None
    pdf_url: str | None = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise NormalizationError(self.source, self.id or None, "missing title")

    @classmethod
    def from_arxiv(cls, raw: arxiv.Result) -> AcademicPaper:
        """Map one ``arxiv.Result`` (parsed Atom entry) onto the canonical shape."""
        entry_id = _as_str(getattr(raw, "entry_id", None))
        arxiv_id = clean_arxiv_id(entry_id) if entry_id else None

        title = _clean_text(getattr(raw, "title", None))
        if not title:
            raise NormalizationError(PaperSource.ARXIV, arxiv_id, "missing title")

        authors = tuple(
            Author(name=_clean_text(getattr(author, "name", None)) or UNKNOWN_AUTHOR)
            for author in getattr(raw, "authors", None) or []
        )
        journal_ref = _as_str(getattr(raw, "journal_ref", None))

        return cls(
            id=arxiv_id or "",
            title=title,
            abstract=_clean_text(getattr(raw, "summary", None)),
            authors=authors,
            source=PaperSource.ARXIV,
            published_date=parse_date(getattr(raw, "published", None)),
            categories=normalize_categories(getattr(raw, "categories", None)),
            url=f"https://arxiv.org/abs/{arxiv_id}" if arxiv_id else entry_id,
            arxiv_id=arxiv_id,
            doi=_as_str(getattr(raw, "doi", None)),
            venue=journal_ref or ARXIV_VENUE,
            primary_category=_as_str(getattr(raw, "primary_category", None)),
            pdf_url=_as_str(getattr(raw, "pdf_url", None)),
        )

    @classmethod
    def from_semantic_scholar(cls, raw: Mapping[str, Any]) -> AcademicPaper:
        """Map one Semantic Scholar Graph API paper object onto the canonical shape."""
        if not isinstance(raw, Mapping):
            raise NormalizationError(PaperSource.SEMANTIC_SCHOLAR, None, "expected a JSON object")

        ss_id = _as_str(raw.get("paperId"))
        title = _clean_text(raw.get("title"))
        if not title:
            raise NormalizationError(PaperSource.SEMANTIC_SCHOLAR, ss_id, "missing title")

        external_ids = raw.get("externalIds") if isinstance(raw.get("externalIds"), Mapping) else {}
        raw_arxiv_id = _as_str(external_ids.get("ArXiv"))
        journal = raw.get("journal") if isinstance(raw.get("journal"), Mapping) else {}
        open_access = raw.get("openAccessPdf") if isinstance(raw.get("openAccessPdf"), Mapping) else {}

        categories: list[Any] = list(raw.get("fieldsOfStudy") or [])
        for item in raw.get("s2FieldsOfStudy") or []:
            if isinstance(item, Mapping):
                categories.append(item.get("category"))

        return cls(
            id=ss_id or "",
            title=title,
            abstract=_clean_text(raw.get("abstract")),
            authors=tuple(_semantic_scholar_author(item) for item in raw.get("authors") or []),
            source=PaperSource.SEMANTIC_SCHOLAR,
            published_date=parse_date(raw.get("publicationDate")) or parse_date(raw.get("year")),
            categories=normalize_categories(categories),
            url=_as_str(raw.get("url")),
            arxiv_id=clean_arxiv_id(raw_arxiv_id) if raw_arxiv_id else None,
            ss_id=ss_id,
            doi=_as_str(external_ids.get("DOI")),
            venue=_as_str(journal.get("name")) or _as_str(raw.get("venue")),
            citation_count=_as_int(raw.get("citationCount")),
            influential_citation_count=_as_int(raw.get("influentialCitationCount")),
            reference_count=_as_int(raw.get("referenceCount")),
            pdf_url=_as_str(open_access.get("url")),
        )

    @property
    def first_author(self) -> Author | None:
        return self.authors[0] if self.authors else None

    def with_semantic_scholar(self, other: AcademicPaper) -> AcademicPaper:
        """Return a copy enriched with identifiers and metrics from a Semantic Scholar record."""
        by_name = {author.name.lower(): author for author in other.authors}
        authors = tuple(
            replace(
                author,
                author_id=author.author_id or by_name[author.name.lower()].author_id,
                affiliation=author.affiliation or by_name[author.name.lower()].affiliation,
            )
            if author.name.lower() in by_name
            else author
            for author in self.authors
        )
        venue = self.venue
        if other.venue and venue in (None, ARXIV_VENUE):
            venue = other.venue

        return replace(
            self,
            authors=authors,
            ss_id=other.ss_id or self.ss_id,
            arxiv_id=self.arxiv_id or other.arxiv_id,
            doi=self.doi or other.doi,
            venue=venue,
            citation_count=other.citation_count if other.citation_count is not None else self.citation_count,
            influential_citation_count=(
                other.influential_citation_count
                if other.influential_citation_count is not None
                else self.influential_citation_count
            ),
            reference_count=other.reference_count if other.reference_count is not None else self.reference_count,
            pdf_url=self.pdf_url or other.pdf_url,
        )

    def best_pdf_url(self) -> str | None:
        if self.pdf_url:
            return self.pdf_url
        if self.arxiv_id:
            return f"https://arxiv.org/pdf/{self.arxiv_id}"
        return None

    def to_citation(self) -> str:
        if len(self.authors) > 3:
            names = f"{self.authors[0].name} et al."
        else:
            names = ", ".join(author.name for author in self.authors) or UNKNOWN_AUTHOR
        year = str(self.published_date.year) if self.published_date else "n.d."
        return f"{names} ({year}). {self.title}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": str(self.source),
            "title": self.title,
            "abstract": self.abstract,
            "authors": [author.to_dict() for author in self.authors],
            "published_date": self.published_date.isoformat() if self.published_date else None,
            "categories": sorted(self.categories),
            "url": self.url,
            "arxiv_id": self.arxiv_id,
            "ss_id": self.ss_id,
            "doi": self.doi,
            "venue": self.venue,
            "primary_category": self.primary_category,
            "citation_count": self.citation_count,
            "influential_citation_count": self.influential_citation_count,
            "reference_count": self.reference_count,
            "pdf_url": self.best_pdf_url(),
        }


@dataclass(frozen=True, slots=True)
class PaperAnalysis:
    """LLM analysis of one paper, tied to the paper's id."""

    paper_id: str
    summary: str = ""
    methodology: str = ""
    key_findings: tuple[str, ...] = ()
    limitations: str | None = None
    provider: str = ""
    model: str = ""
    language: str = "en"
    analyzed_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def is_complete(self) -> bool:
        return bool(self.summary) and bool(self.methodology)

    def to_dict(self) -> dict[str, Any]:
        return {
            "paper_id": self.paper_id,
            "summary": self.summary,
            "methodology": self.methodology,
            "key_findings": list(self.key_findings),
            "limitations": self.limitations,
            "provider": self.provider,
            "model": self.model,
            "language": self.language,
            "analyzed_at": self.analyzed_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class TechnicalTerm:
    term: str
    definition: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"term": self.term, "definition": self.definition}


@dataclass(frozen=True, slots=True)
class KeywordsData:
    """Keywords, topics and terms an LLM pulled out of one paper."""

    keywords: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    technical_terms: tuple[TechnicalTerm, ...] = ()
    methods: tuple[str, ...] = ()
    datasets: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "keywords": list(self.keywords),
            "topics": list(self.topics),
            "technical_terms": [term.to_dict() for term in self.technical_terms],
            "methods": list(self.methods),
            "datasets": list(self.datasets),
        }


@dataclass(frozen=True, slots=True)
class ResearchContext:
    """Where a paper sits in its field: primary field, sub-fields, research type, positioning."""

    primary_field: str = ""
    sub_fields: tuple[str, ...] = ()
    research_type: str = ""
    positioning: str = ""
    related_directions: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "primary_field": self.primary_field,
            "sub_fields": list(self.sub_fields),
            "research_type": self.research_type,
            "positioning": self.positioning,
            "related_directions": list(self.related_directions),
        }


@dataclass(frozen=True, slots=True)
class PaperText:
    """Plain text pulled from a paper's PDF, one entry per page."""

    source_url: str
    pages: tuple[str, ...]
    extracted_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def plain_text(self) -> str:
        return "\n\n".join(page for page in self.pages if page)

    def is_valid(self) -> bool:
        return bool(self.plain_text.strip())

    def to_dict(self) -> dict[str, Any]:
        return {
            "source_url": self.source_url,
            "page_count": len(self.pages),
            "plain_text": self.plain_text,
            "extracted_at": self.extracted_at.isoformat(),
        }


def clean_arxiv_id(raw_id: str) -> str:
    """Strip URL prefixes and the version suffix from an arXiv identifier.

    "http://arxiv.org/abs/1706.03762v7" -> "1706.03762"
    "cs.CL/0001001v1" -> "cs.CL/0001001"
    """
    value = raw_id.strip()
    for prefix in _ARXIV_PREFIXES:
        if value.lower().startswith(prefix):
            value = value[len(prefix):]
            break
    if value.lower().endswith(".pdf"):
        value = value[:-4]
    return _ARXIV_VERSION_RE.sub("", value)


def parse_date(value: Any) -> date | None:
    """Parse ISO-8601, RFC 2822, year-month or year-only values. Never raises."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        parsed = value.date()
    elif isinstance(value, date):
        parsed = value
    elif isinstance(value, int):
        parsed = _date_or_none(value, 1, 1)
    elif isinstance(value, str):
        parsed = _parse_date_string(value.strip())
    else:
        return None

    # arxiv.Result uses datetime.min when the feed omits a date.
    if parsed is None or parsed == date.min:
        return None
    return parsed


def _parse_date_string(text: str) -> date | None:
    if not text:
        return None
    if _YEAR_RE.match(text):
        return _date_or_none(int(text), 1, 1)
    year_month = _YEAR_MONTH_RE.match(text)
    if year_month:
        return _date_or_none(int(year_month.group(1)), int(year_month.group(2)), 1)

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return parsedate_to_datetime(text).date()
    except (TypeError, ValueError, IndexError):
        return None


def _date_or_none(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_categories(values: Iterable[Any] | None) -> frozenset[str]:
    """Lower-case and trim categories; blanks and non-strings are dropped."""
    if not values:
        return frozenset()
    return frozenset(
        value.strip().lower() for value in values if isinstance(value, str) and value.strip()
    )


def normalize_title(title: str, ignore_punctuation: bool = False) -> str:
    """Lower-case and collapse whitespace; optionally reduce to letters and digits."""
    text = title.lower()
    if ignore_punctuation:
        text = _NON_ALNUM_RE.sub(" ", text)
    return " ".join(text.split())


def _semantic_scholar_author(item: Any) -> Author:
    if not isinstance(item, Mapping):
        return Author(name=UNKNOWN_AUTHOR)
    affiliations = [a.strip() for a in item.get("affiliations") or [] if isinstance(a, str) and a.strip()]
    return Author(
        name=_clean_text(item.get("name")) or UNKNOWN_AUTHOR,
        affiliation="; ".join(affiliations) or None,
        author_id=_as_str(item.get("authorId")),
    )


def _clean_text(value: Any) -> str:
    return " ".join(value.split()) if isinstance(value, str) else ""


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
