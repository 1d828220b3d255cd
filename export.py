"""JSON export of one paper with optional analysis, keywords, full text, citations and references."""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

from errors import AnalysisError, ConfigError, SearchError, TextExtractionFailed
from models import AcademicPaper
from paper_analyzer import PaperAnalyzer
from pdf_text import PdfTextExtractor
from search import PaperSearcher

EXPORT_SCHEMA_VERSION = "1.0.0"
TOOL_VERSION = "0.1.0"
DEFAULT_MAX_CITATIONS = 50

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ExportOptions:
    """Recorded in the document so an export can be reproduced."""

    analyzed: bool = False
    text_extracted: bool = False
    citations_included: bool = False
    references_included: bool = False
    keywords_extracted: bool = False
    max_citations: int = DEFAULT_MAX_CITATIONS
    llm_provider: str | None = None
    llm_model: str | None = None


def build_export(
    searcher: PaperSearcher,
    *,
    arxiv_id: str | None = None,
    ss_id: str | None = None,
    analyzer: PaperAnalyzer | None = None,
    include_analysis: bool = True,
    include_keywords: bool = False,
    text_extractor: PdfTextExtractor | None = None,
    include_citations: bool = False,
    include_references: bool = False,
    max_citations: int = DEFAULT_MAX_CITATIONS,
) -> dict[str, Any]:
    """Fetch the paper and assemble the export document.

    With an ``analyzer`` the document gets an ``analysis`` (unless
    ``include_analysis`` is off) and, with ``include_keywords``, ``keywords`` and
    ``research_context``. A ``text_extractor`` adds ``extracted_text``.

    Failing to fetch the paper raises. Failures in the optional parts are
    recorded under ``export_metadata.warnings`` instead.
    """
    if include_keywords and analyzer is None:
        raise ConfigError("keyword extraction needs an LLM analyzer")

    paper = searcher.fetch_paper(arxiv_id=arxiv_id, ss_id=ss_id)
    analyze = analyzer is not None and include_analysis
    options = ExportOptions(
        analyzed=analyze,
        text_extracted=text_extractor is not None,
        citations_included=include_citations,
        references_included=include_references,
        keywords_extracted=include_keywords,
        max_citations=max_citations,
        llm_provider=analyzer.provider.name if analyzer else None,
        llm_model=analyzer.model if analyzer else None,
    )
    warnings: list[str] = []
    document: dict[str, Any] = {
        "schema_version": EXPORT_SCHEMA_VERSION,
        "export_metadata": {
            "exported_at": datetime.now(UTC).isoformat(),
            "tool_version": TOOL_VERSION,
            "options": asdict(options),
            "warnings": warnings,
        },
        "paper": paper.to_dict(),
    }

    if text_extractor is not None:
        try:
            document["extracted_text"] = text_extractor.extract_for_paper(paper).to_dict()
        except TextExtractionFailed as exc:
            LOGGER.warning("Export: text extraction skipped for paper_id=%s: %s", paper.id, exc)
            warnings.append(f"text extraction failed: {exc}")

    if analyze:
        try:
            document["analysis"] = analyzer.analyze(paper).to_dict()
        except AnalysisError as exc:
            LOGGER.warning("Export: analysis skipped for paper_id=%s: %s", paper.id, exc)
            warnings.append(f"analysis failed: {exc}")

    if include_keywords:
        try:
            keywords = analyzer.extract_keywords(paper)
        except AnalysisError as exc:
            LOGGER.warning("Export: keywords skipped for paper_id=%s: %s", paper.id, exc)
            warnings.append(f"keyword extraction failed: {exc}")
        else:
            document["keywords"] = keywords.to_dict()
            try:
                context = analyzer.extract_research_context(paper, keywords.keywords)
                document["research_context"] = context.to_dict()
            except AnalysisError as exc:
                LOGGER.warning("Export: research context skipped for paper_id=%s: %s", paper.id, exc)
                warnings.append(f"research context failed: {exc}")

    if include_citations:
        try:
            citing = searcher.fetch_citations(paper, limit=max_citations)
            document["citations"] = _linked_papers(paper.citation_count, citing)
        except SearchError as exc:
            LOGGER.warning("Export: citations skipped for paper_id=%s: %s", paper.id, exc)
            warnings.append(f"citations unavailable: {exc}")

    if include_references:
        try:
            cited = searcher.fetch_references(paper, limit=max_citations)
            document["references"] = _linked_papers(paper.reference_count, cited)
        except SearchError as exc:
            LOGGER.warning("Export: references skipped for paper_id=%s: %s", paper.id, exc)
            warnings.append(f"references unavailable: {exc}")

    LOGGER.info("Export built for paper_id=%s warnings=%s", paper.id, len(warnings))
    return document


def dump_export(document: dict[str, Any], compact: bool = False) -> str:
    return json.dumps(document, ensure_ascii=False, indent=None if compact else 2)


def write_export(
    document: dict[str, Any],
    path: str | Path | None = None,
    compact: bool = False,
    stream: TextIO | None = None,
) -> None:
    """Write to ``path`` when given, otherwise to ``stream`` (stdout by default)."""
    text = dump_export(document, compact=compact)
    if path is not None:
        Path(path).write_text(text + "\n", encoding="utf-8")
        LOGGER.info("Export written to %s", path)
        return
    out = stream or sys.stdout
    out.write(text + "\n")


def _linked_papers(total: int | None, papers: list[AcademicPaper]) -> dict[str, Any]:
    return {
        "total_count": total if total is not None else len(papers),
        "count": len(papers),
        "papers": [paper.to_dict() for paper in papers],
    }
