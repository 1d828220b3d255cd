"""Human-readable rendering of papers, search results and analyses.

Two formats:

  text:     plain terminal output for ``search`` / ``fetch`` / ``analyze``.
  markdown: an analysis report that pastes cleanly into notes or a README.
"""

from __future__ import annotations

import textwrap

from models import AcademicPaper, PaperAnalysis
from search_params import SearchResult

WRAP_WIDTH = 88
ABSTRACT_PREVIEW_CHARS = 400
MAX_AUTHORS_SHOWN = 5

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _authors_line(paper: AcademicPaper) -> str:
    names = [author.name for author in paper.authors]
    if not names:
        return "Unknown"
    if len(names) > MAX_AUTHORS_SHOWN:
        return ", ".join(names[:MAX_AUTHORS_SHOWN]) + f" (+{len(names) - MAX_AUTHORS_SHOWN} more)"
    return ", ".join(names)


def _preview(text: str, limit: int = ABSTRACT_PREVIEW_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1].rstrip() + "…"


def _wrap(text: str, indent: str = "    ") -> str:
    paragraphs = [p for p in text.split("\n") if p.strip()]
    return "\n".join(
        textwrap.fill(p.strip(), width=WRAP_WIDTH, initial_indent=indent, subsequent_indent=indent)
        for p in paragraphs
    )


def _meta_lines(paper: AcademicPaper) -> list[str]:
    lines = [f"    Authors:   {_authors_line(paper)}"]
    if paper.published_date:
        lines.append(f"    Published: {paper.published_date.isoformat()}")
    if paper.venue:
        lines.append(f"    Venue:     {paper.venue}")
    if paper.categories:
        lines.append(f"    Categories: {', '.join(sorted(paper.categories))}")
    if paper.citation_count is not None:
        lines.append(f"    Citations: {paper.citation_count}")
    ids = [f"arXiv:{paper.arxiv_id}" if paper.arxiv_id else "", f"S2:{paper.ss_id}" if paper.ss_id else ""]
    if paper.doi:
        ids.append(f"DOI:{paper.doi}")
    if any(ids):
        lines.append(f"    IDs:       {' '.join(i for i in ids if i)}")
    if paper.url:
        lines.append(f"    URL:       {paper.url}")
    pdf = paper.best_pdf_url()
    if pdf:
        lines.append(f"    PDF:       {pdf}")
    return lines


# ---------------------------------------------------------------------------
# Text
# ---------------------------------------------------------------------------


def render_paper_text(paper: AcademicPaper, index: int | None = None, full_abstract: bool = False) -> str:
    prefix = f"[{index}] " if index is not None else ""
    lines = [f"{prefix}{paper.title}  ({paper.source.display_name})", *_meta_lines(paper)]
    if paper.abstract:
        abstract = paper.abstract if full_abstract else _preview(paper.abstract)
        lines.append("")
        lines.append(_wrap(abstract))
    return "\n".join(lines)


def render_search_result_text(result: SearchResult) -> str:
    header = (
        f"Found {len(result)} paper(s) "
        f"(normalized={result.total_count}, duplicates merged={result.duplicates_merged})"
    )
    blocks = [header]
    for report in result.source_reports:
        if report.skipped_reason:
            status = f"skipped: {report.skipped_reason}"
        elif report.ok:
            status = f"ok, {report.normalized_count} record(s)"
            if report.dropped_count:
                status += f", {report.dropped_count} dropped"
        else:
            status = f"FAILED: {report.error}"
        blocks.append(f"  {report.source.display_name}: {status}")

    for index, paper in enumerate(result.papers, 1):
        blocks.append("")
        blocks.append(render_paper_text(paper, index=index))
    return "\n".join(blocks)


def render_analysis_text(paper: AcademicPaper, analysis: PaperAnalysis) -> str:
    lines = [paper.title, "=" * min(len(paper.title), WRAP_WIDTH), paper.to_citation(), ""]
    lines += ["Summary:", _wrap(analysis.summary or "(none)"), ""]
    lines += ["Methodology:", _wrap(analysis.methodology or "(none)"), ""]
    lines.append("Key findings:")
    lines += [f"  - {finding}" for finding in analysis.key_findings] or ["    (none)"]
    if analysis.limitations:
        lines += ["", "Limitations:", _wrap(analysis.limitations)]
    lines += ["", f"[{analysis.provider}/{analysis.model}, {analysis.language}]"]
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Markdown
# ---------------------------------------------------------------------------


def render_analysis_markdown(paper: AcademicPaper, analysis: PaperAnalysis) -> str:
    lines = [f"# {paper.title}", ""]
    lines.append(f"**Authors:** {_authors_line(paper)}  ")
    if paper.published_date:
        lines.append(f"**Published:** {paper.published_date.isoformat()}  ")
    if paper.venue:
        lines.append(f"**Venue:** {paper.venue}  ")
    if paper.url:
        lines.append(f"**URL:** <{paper.url}>  ")
    lines.append("")

    lines += ["## Summary", "", analysis.summary or "_Not provided._", ""]
    lines += ["## Methodology", "", analysis.methodology or "_Not provided._", ""]
    lines += ["## Key Findings", ""]
    lines += [f"- {finding}" for finding in analysis.key_findings] or ["_Not provided._"]
    lines.append("")
    if analysis.limitations:
        lines += ["## Limitations", "", analysis.limitations, ""]
    lines.append(
        f"_Analyzed with {analysis.provider} `{analysis.model}` at {analysis.analyzed_at.isoformat()}_"
    )
    return "\n".join(lines) + "\n"
