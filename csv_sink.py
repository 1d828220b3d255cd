"""CSV output for search results and paper analyses."""

from __future__ import annotations

import csv
import logging
from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

from models import AcademicPaper, PaperAnalysis

LOGGER = logging.getLogger(__name__)

PAPER_COLUMNS = [
    "paper_id",
    "source",
    "title",
    "authors",
    "published_date",
    "venue",
    "categories",
    "citation_count",
    "arxiv_id",
    "ss_id",
    "doi",
    "url",
    "pdf_url",
    "abstract",
]

ANALYSIS_COLUMNS = [
    *PAPER_COLUMNS,
    # Analysis columns; empty when the paper was not analyzed
    "summary",
    "methodology",
    "key_findings",      # " | "-joined
    "limitations",
    "provider",
    "model",
    "language",
    "analyzed_at",
    "created_at",
]


def paper_row(paper: AcademicPaper) -> dict[str, Any]:
    return {
        "paper_id": paper.id,
        "source": str(paper.source),
        "title": paper.title,
        "authors": "; ".join(author.name for author in paper.authors),
        "published_date": paper.published_date.isoformat() if paper.published_date else "",
        "venue": paper.venue or "",
        "categories": ", ".join(sorted(paper.categories)),
        "citation_count": "" if paper.citation_count is None else paper.citation_count,
        "arxiv_id": paper.arxiv_id or "",
        "ss_id": paper.ss_id or "",
        "doi": paper.doi or "",
        "url": paper.url or "",
        "pdf_url": paper.best_pdf_url() or "",
        "abstract": _as_text(paper.abstract, max_len=1000),
    }


def analysis_row(paper: AcademicPaper, analysis: PaperAnalysis | None = None) -> dict[str, Any]:
    row = paper_row(paper)
    row["created_at"] = datetime.now(UTC).isoformat()
    if analysis is None:
        return row
    row.update({
        "summary": _as_text(analysis.summary, max_len=2000),
        "methodology": _as_text(analysis.methodology, max_len=2000),
        "key_findings": " | ".join(analysis.key_findings),
        "limitations": _as_text(analysis.limitations, max_len=1000),
        "provider": analysis.provider,
        "model": analysis.model,
        "language": analysis.language,
        "analyzed_at": analysis.analyzed_at.isoformat(),
    })
    return row


def write_papers(papers: Iterable[AcademicPaper], fh: TextIO) -> int:
    """Write a header plus one row per paper to an open text stream; returns the row count."""
    writer = csv.DictWriter(fh, fieldnames=PAPER_COLUMNS)
    writer.writeheader()
    count = 0
    for paper in papers:
        writer.writerow(paper_row(paper))
        count += 1
    return count


def paper_already_exists(paper_id: str, path: str | Path) -> bool:
    """Return True if a row with ``paper_id`` already exists in the CSV at ``path``."""
    path = Path(path)
    if not path.exists():
        return False

    with path.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        for row in reader:
            if row.get("paper_id") == paper_id:
                return True
    return False


def append_analysis_entry(paper: AcademicPaper, analysis: PaperAnalysis | None, path: str | Path) -> bool:
    """Append a row to the CSV (creating it with a header if needed).

    Returns False without writing when the paper is already present.
    """
    path = Path(path)
    if paper_already_exists(paper.id, path):
        LOGGER.info("Skipping existing paper_id=%s in %s", paper.id, path)
        return False

    write_header = not path.exists() or path.stat().st_size == 0
    with path.open("a", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=ANALYSIS_COLUMNS)
        if write_header:
            writer.writeheader()
        writer.writerow(analysis_row(paper, analysis))

    LOGGER.info("Wrote CSV row for paper_id=%s to %s", paper.id, path)
    return True


def _as_text(value: Any, max_len: int = 500) -> str:
    """Convert value to a stripped string, truncated to max_len chars."""
    s = value.strip() if isinstance(value, str) else ""
    if len(s) > max_len:
        return s[: max_len - 1] + "…"
    return s
