from datetime import UTC, date, datetime

from models import AcademicPaper, Author, PaperAnalysis, PaperSource
from report import (
    render_analysis_markdown,
    render_analysis_text,
    render_paper_text,
    render_search_result_text,
)
from search_params import SearchResult, SourceReport

SAMPLE_PAPER = AcademicPaper(
    id="1706.03762",
    title="Attention Is All You Need",
    abstract="We propose a new simple network architecture. " * 20,
    authors=tuple(Author(f"Author {n}") for n in range(7)),
    source=PaperSource.ARXIV,
    published_date=date(2017, 6, 12),
    url="https://arxiv.org/abs/1706.03762",
    arxiv_id="1706.03762",
    ss_id="abc123",
    citation_count=120000,
)

SAMPLE_ANALYSIS = PaperAnalysis(
    paper_id="1706.03762",
    summary="Attention replaces recurrence.",
    methodology="",
    key_findings=("28.4 BLEU on EN-DE",),
    limitations="Quadratic cost.",
    provider="anthropic",
    model="claude-sonnet-4-20250514",
    analyzed_at=datetime(2026, 1, 2, tzinfo=UTC),
)


def test_render_paper_text_preview_and_metadata() -> None:
    text = render_paper_text(SAMPLE_PAPER, index=3)

    assert text.startswith("[3] Attention Is All You Need  (arXiv)")
    assert "Author 0, Author 1, Author 2, Author 3, Author 4 (+2 more)" in text
    assert "Published: 2017-06-12" in text
    assert "Citations: 120000" in text
    assert "IDs:       arXiv:1706.03762 S2:abc123" in text
    assert "PDF:       https://arxiv.org/pdf/1706.03762" in text
    assert "…" in text


def test_render_paper_text_full_abstract() -> None:
    text = render_paper_text(SAMPLE_PAPER, full_abstract=True)

    assert not text.startswith("[")
    assert "…" not in text


def test_render_search_result_text_reports_sources() -> None:
    result = SearchResult(
        papers=(SAMPLE_PAPER,),
        total_count=4,
        source_reports=(
            SourceReport(PaperSource.ARXIV, ok=True, raw_count=3, normalized_count=2, dropped_count=1),
            SourceReport.failed(PaperSource.SEMANTIC_SCHOLAR, "HTTP 429"),
        ),
        duplicates_merged=1,
    )

    text = render_search_result_text(result)

    assert text.splitlines()[0] == "Found 1 paper(s) (normalized=4, duplicates merged=1)"
    assert "  arXiv: ok, 2 record(s), 1 dropped" in text
    assert "  Semantic Scholar: FAILED: HTTP 429" in text
    assert "[1] Attention Is All You Need" in text


def test_render_analysis_text_marks_missing_sections() -> None:
    text = render_analysis_text(SAMPLE_PAPER, SAMPLE_ANALYSIS)

    assert "Author 0 et al. (2017). Attention Is All You Need" in text
    assert "Methodology:\n    (none)" in text
    assert "  - 28.4 BLEU on EN-DE" in text
    assert "Limitations:" in text
    assert text.endswith("[anthropic/claude-sonnet-4-20250514, en]")


def test_render_analysis_markdown_sections() -> None:
    markdown = render_analysis_markdown(SAMPLE_PAPER, SAMPLE_ANALYSIS)

    assert markdown.startswith("# Attention Is All You Need\n")
    assert "## Summary\n\nAttention replaces recurrence.\n" in markdown
    assert "## Methodology\n\n_Not provided._\n" in markdown
    assert "## Key Findings\n\n- 28.4 BLEU on EN-DE\n" in markdown
    assert "## Limitations\n\nQuadratic cost.\n" in markdown
    assert "**URL:** <https://arxiv.org/abs/1706.03762>" in markdown
    assert markdown.endswith("\n")


def test_render_analysis_markdown_omits_empty_limitations() -> None:
    analysis = PaperAnalysis(paper_id="1706.03762", summary="S", methodology="M")

    assert "## Limitations" not in render_analysis_markdown(SAMPLE_PAPER, analysis)


def test_render_search_result_text_marks_skipped_source() -> None:
    result = SearchResult(
        papers=(),
        total_count=0,
        source_reports=(
            SourceReport(PaperSource.ARXIV, ok=True),
            SourceReport.skipped(PaperSource.SEMANTIC_SCHOLAR, "category-only queries are arXiv only"),
        ),
    )

    text = render_search_result_text(result)

    assert "  arXiv: ok, 0 record(s)" in text
    assert "  Semantic Scholar: skipped: category-only queries are arXiv only" in text
