"""Multi-source search aggregation: fan out, normalize, deduplicate, truncate."""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import replace
from typing import Any

from arxiv_client import ArxivClient
from config import Config
from errors import (
    InvalidSearchParams,
    NormalizationError,
    PaperNotFound,
    SearchError,
    SourceRequestError,
    SourceUnavailable,
)
from models import AcademicPaper, PaperSource, normalize_title
from search_params import SearchParams, SearchResult, SourceReport
from semantic_client import SemanticScholarClient

LOGGER = logging.getLogger(__name__)

_NORMALIZERS: dict[PaperSource, Callable[[Any], AcademicPaper]] = {
    PaperSource.ARXIV: AcademicPaper.from_arxiv,
    PaperSource.SEMANTIC_SCHOLAR: AcademicPaper.from_semantic_scholar,
}


class PaperSearcher:
    """Entry point for ``search`` and ``fetch`` across arXiv and Semantic Scholar.

    Holds only read-only collaborators, so concurrent calls share no mutable state.
    ``preferred_source`` decides which record wins when two sources return the same paper.
    """

    def __init__(
        self,
        arxiv_client: ArxivClient | None = None,
        semantic_client: SemanticScholarClient | None = None,
        preferred_source: PaperSource = PaperSource.SEMANTIC_SCHOLAR,
        ignore_title_punctuation: bool = False,
    ) -> None:
        self.arxiv = arxiv_client or ArxivClient()
        self.semantic = semantic_client or SemanticScholarClient()
        self.preferred_source = PaperSource(preferred_source)
        self.ignore_title_punctuation = ignore_title_punctuation

    @classmethod
    def from_config(cls, config: Config) -> PaperSearcher:
        return cls(
            semantic_client=SemanticScholarClient(
                api_key=config.semantic_scholar_api_key,
                timeout=config.request_timeout,
            ),
            preferred_source=config.preferred_source,
            ignore_title_punctuation=config.dedup_ignore_punctuation,
        )

    def search(self, params: SearchParams) -> SearchResult:
        """Query every selected source and merge the results.

        Raises SourceUnavailable only when every queried source failed; a single
        failing source is reported in ``SearchResult.source_reports``. Semantic
        Scholar is skipped, not failed, for a category-only query. Caller errors
        (InvalidSearchParams) propagate unchanged.
        """
        params.validate()

        reports: list[SourceReport] = []
        batches: list[list[AcademicPaper]] = []
        failures: dict[str, str] = {}
        queried = 0

        for source in dict.fromkeys(params.sources):
            if source is PaperSource.SEMANTIC_SCHOLAR and not params.has_text_criteria():
                LOGGER.info("Search: source=%s skipped for a category-only query", source)
                reports.append(SourceReport.skipped(source, "category-only queries are arXiv only"))
                continue

            queried += 1
            try:
                raw_records = self._query_source(source, params)
            except SourceRequestError as exc:
                LOGGER.warning("Search: source=%s failed: %s", source, exc)
                failures[source] = str(exc)
                reports.append(SourceReport.failed(source, str(exc)))
                continue

            papers, dropped = normalize_records(source, raw_records)
            reports.append(
                SourceReport(
                    source=source,
                    ok=True,
                    raw_count=len(raw_records),
                    normalized_count=len(papers),
                    dropped_count=len(dropped),
                    dropped_ids=tuple(err.record_id or "" for err in dropped),
                )
            )
            batches.append(papers)
            LOGGER.info(
                "Search: source=%s raw=%s normalized=%s dropped=%s",
                source,
                len(raw_records),
                len(papers),
                len(dropped),
            )

        if failures and len(failures) == queried:
            raise SourceUnavailable(failures)

        combined = interleave(batches)
        unique = deduplicate(
            combined,
            preferred_source=self.preferred_source,
            ignore_punctuation=self.ignore_title_punctuation,
        )
        papers = unique[: params.max_results]

        LOGGER.info(
            "Search: total_normalized=%s unique=%s returned=%s max_results=%s",
            len(combined),
            len(unique),
            len(papers),
            params.max_results,
        )
        return SearchResult(
            papers=tuple(papers),
            total_count=len(combined),
            source_reports=tuple(reports),
            duplicates_merged=len(combined) - len(unique),
        )

    def fetch(
        self,
        *,
        arxiv_id: str | None = None,
        ss_id: str | None = None,
        enrich: bool = True,
    ) -> SearchResult:
        """Fetch exactly one paper by arXiv or Semantic Scholar id.

        The single-record case of ``search``: same normalization, no dedup.
        arXiv papers are enriched from Semantic Scholar when ``enrich`` is set.
        """
        if bool(arxiv_id) == bool(ss_id):
            raise InvalidSearchParams("fetch needs exactly one of arxiv_id or ss_id")

        if arxiv_id:
            source, identifier = PaperSource.ARXIV, arxiv_id
            fetch_raw: Callable[[str], Any] = self.arxiv.fetch_by_id
        else:
            source, identifier = PaperSource.SEMANTIC_SCHOLAR, ss_id
            fetch_raw = self.semantic.fetch_details

        try:
            raw = fetch_raw(identifier)
        except SourceRequestError as exc:
            raise SourceUnavailable({source: str(exc)}) from exc

        papers, dropped = normalize_records(source, [raw])
        if not papers:
            raise PaperNotFound(source, identifier) from dropped[0]

        paper = papers[0]
        if enrich and source is PaperSource.ARXIV:
            paper = self.enrich_from_semantic_scholar(paper)

        LOGGER.info("Fetch: source=%s id=%s title=%r", source, identifier, paper.title)
        return SearchResult(
            papers=(paper,),
            total_count=1,
            source_reports=(SourceReport(source=source, ok=True, raw_count=1, normalized_count=1),),
        )

    def fetch_paper(self, *, arxiv_id: str | None = None, ss_id: str | None = None, enrich: bool = True) -> AcademicPaper:
        return self.fetch(arxiv_id=arxiv_id, ss_id=ss_id, enrich=enrich).papers[0]

    def enrich_from_semantic_scholar(self, paper: AcademicPaper) -> AcademicPaper:
        """Attach Semantic Scholar ids and metrics by exact title match. Never fails the fetch."""
        try:
            match = self.semantic.search_exact_title(paper.title)
        except SearchError as exc:
            LOGGER.warning("Enrichment skipped for paper_id=%s: %s", paper.id, exc)
            return paper
        if match is None:
            LOGGER.info("Enrichment: no Semantic Scholar match for paper_id=%s", paper.id)
            return paper

        try:
            other = AcademicPaper.from_semantic_scholar(match)
        except NormalizationError as exc:
            LOGGER.warning("Enrichment skipped for paper_id=%s: %s", paper.id, exc)
            return paper

        if normalize_title(other.title) != normalize_title(paper.title):
            LOGGER.info("Enrichment: title mismatch for paper_id=%s (%r)", paper.id, other.title)
            return paper
        return paper.with_semantic_scholar(other)

    def fetch_citations(self, paper: AcademicPaper, limit: int = 50) -> list[AcademicPaper]:
        """Papers citing ``paper``; malformed records are dropped as in search."""
        raw_records = self.semantic.fetch_citations(self._require_ss_id(paper), limit=limit)
        papers, _ = normalize_records(PaperSource.SEMANTIC_SCHOLAR, raw_records)
        return papers

    def fetch_references(self, paper: AcademicPaper, limit: int = 50) -> list[AcademicPaper]:
        raw_records = self.semantic.fetch_references(self._require_ss_id(paper), limit=limit)
        papers, _ = normalize_records(PaperSource.SEMANTIC_SCHOLAR, raw_records)
        return papers

    def _query_source(self, source: PaperSource, params: SearchParams) -> list[Any]:
        if source is PaperSource.ARXIV:
            return list(self.arxiv.search(params))
        return list(self.semantic.search(params))

    @staticmethod
    def _require_ss_id(paper: AcademicPaper) -> str:
        if not paper.ss_id:
            raise InvalidSearchParams(f"paper_id={paper.id} has no Semantic Scholar id")
        return paper.ss_id


def normalize_records(
    source: PaperSource, raw_records: Iterable[Any]
) -> tuple[list[AcademicPaper], list[NormalizationError]]:
    """Normalize raw records, collecting per-record failures instead of raising."""
    normalize = _NORMALIZERS[source]
    papers: list[AcademicPaper] = []
    dropped: list[NormalizationError] = []
    for raw in raw_records:
        try:
            papers.append(normalize(raw))
        except NormalizationError as exc:
            LOGGER.warning("Dropping record: %s", exc)
            dropped.append(exc)
    return papers, dropped


def interleave(batches: Sequence[Sequence[AcademicPaper]]) -> list[AcademicPaper]:
    """Round-robin merge that keeps each source's own ranking order."""
    merged: list[AcademicPaper] = []
    for group in itertools.zip_longest(*batches):
        merged.extend(paper for paper in group if paper is not None)
    return merged


def deduplicate(
    papers: Iterable[AcademicPaper],
    preferred_source: PaperSource = PaperSource.SEMANTIC_SCHOLAR,
    ignore_punctuation: bool = False,
) -> list[AcademicPaper]:
    """Collapse records describing the same paper, keeping first-seen positions.

    Two records match when they share an arXiv id, or when their normalized
    titles and first-author surnames are equal. With ``ignore_punctuation``
    titles are compared on letters and digits only.
    """
    unique: list[AcademicPaper] = []
    by_arxiv_id: dict[str, int] = {}
    by_title: dict[tuple[str, str], int] = {}

    for paper in papers:
        index = None
        if paper.arxiv_id:
            index = by_arxiv_id.get(paper.arxiv_id)
        if index is None:
            index = by_title.get(title_key(paper, ignore_punctuation))

        if index is None:
            index = len(unique)
            unique.append(paper)
        else:
            unique[index] = merge_duplicates(unique[index], paper, preferred_source)

        for record in (paper, unique[index]):
            if record.arxiv_id:
                by_arxiv_id.setdefault(record.arxiv_id, index)
            by_title.setdefault(title_key(record, ignore_punctuation), index)

    return unique


def title_key(paper: AcademicPaper, ignore_punctuation: bool = False) -> tuple[str, str]:
    first = paper.first_author
    return normalize_title(paper.title, ignore_punctuation=ignore_punctuation), first.surname if first else ""


def merge_duplicates(
    existing: AcademicPaper,
    incoming: AcademicPaper,
    preferred_source: PaperSource = PaperSource.SEMANTIC_SCHOLAR,
) -> AcademicPaper:
    """Keep the preferred source's record and fill its gaps from the other one.

    With equal standing the record seen first wins, so merging a record with
    itself returns it unchanged.
    """
    if incoming.source == preferred_source and existing.source != preferred_source:
        winner, loser = incoming, existing
    else:
        winner, loser = existing, incoming

    if winner is loser or winner == loser:
        return winner

    return replace(
        winner,
        arxiv_id=winner.arxiv_id or loser.arxiv_id,
        ss_id=winner.ss_id or loser.ss_id,
        doi=winner.doi or loser.doi,
        abstract=winner.abstract or loser.abstract,
        published_date=winner.published_date or loser.published_date,
        categories=winner.categories | loser.categories,
        primary_category=winner.primary_category or loser.primary_category,
        url=winner.url or loser.url,
        pdf_url=winner.pdf_url or loser.pdf_url,
    )


def search(params: SearchParams, searcher: PaperSearcher | None = None) -> SearchResult:
    """Module-level ``search`` using configuration from the environment."""
    return (searcher or PaperSearcher.from_config(Config.from_env())).search(params)


def fetch(
    *,
    arxiv_id: str | None = None,
    ss_id: str | None = None,
    searcher: PaperSearcher | None = None,
) -> SearchResult:
    return (searcher or PaperSearcher.from_config(Config.from_env())).fetch(arxiv_id=arxiv_id, ss_id=ss_id)
