from unittest.mock import MagicMock

import fitz  # pymupdf
import pytest
import requests

from errors import TextExtractionFailed
from models import AcademicPaper, PaperSource
from pdf_text import PdfTextExtractor, read_pdf_pages, try_extract_text

PDF_URL = "https://arxiv.org/pdf/1706.03762"


def _pdf_bytes(*page_texts: str) -> bytes:
    doc = fitz.open()
    for text in page_texts:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text)
    content = doc.tobytes()
    doc.close()
    return content


def _paper(arxiv_id: str | None = "1706.03762", pdf_url: str | None = None) -> AcademicPaper:
    return AcademicPaper(
        id=arxiv_id or "ss-1",
        title="Attention Is All You Need",
        abstract="",
        authors=(),
        source=PaperSource.ARXIV if arxiv_id else PaperSource.SEMANTIC_SCHOLAR,
        arxiv_id=arxiv_id,
        pdf_url=pdf_url,
    )


def _extractor(content: bytes = b"", error: Exception | None = None, max_pages: int | None = None):
    session = MagicMock()
    session.headers = {}
    if error is not None:
        session.get.side_effect = error
    else:
        response = MagicMock()
        response.content = content
        session.get.return_value = response
    return PdfTextExtractor(session=session, timeout=7, max_pages=max_pages), session


def test_extract_for_paper_reads_every_page() -> None:
    extractor, session = _extractor(_pdf_bytes("Attention layers", "Results table"))

    text = extractor.extract_for_paper(_paper())

    session.get.assert_called_once_with(PDF_URL, timeout=7)
    assert "User-Agent" in session.headers
    assert text.source_url == PDF_URL
    assert len(text.pages) == 2
    assert "Attention layers" in text.pages[0]
    assert "Results table" in text.pages[1]
    assert text.to_dict()["page_count"] == 2


def test_explicit_pdf_url_wins_over_arxiv_link() -> None:
    extractor, session = _extractor(_pdf_bytes("Body"))

    extractor.extract_for_paper(_paper(pdf_url="https://example.org/paper.pdf"))

    assert session.get.call_args.args[0] == "https://example.org/paper.pdf"


def test_max_pages_limits_pages_read() -> None:
    extractor, _ = _extractor(_pdf_bytes("First", "Second", "Third"), max_pages=1)

    text = extractor.extract_from_url(PDF_URL)

    assert len(text.pages) == 1
    assert "Second" not in text.plain_text


def test_paper_without_pdf_url_fails() -> None:
    extractor, session = _extractor()

    with pytest.raises(TextExtractionFailed, match="paper_id=ss-1 has no PDF url") as exc_info:
        extractor.extract_for_paper(_paper(arxiv_id=None))

    assert exc_info.value.url is None
    session.get.assert_not_called()


def test_download_error_is_wrapped() -> None:
    extractor, _ = _extractor(error=requests.ConnectionError("connection refused"))

    with pytest.raises(TextExtractionFailed, match="download failed: connection refused") as exc_info:
        extractor.extract_from_url(PDF_URL)

    assert exc_info.value.url == PDF_URL


def test_http_error_status_is_wrapped() -> None:
    extractor, session = _extractor(b"")
    session.get.return_value.raise_for_status.side_effect = requests.HTTPError("404 Client Error")

    with pytest.raises(TextExtractionFailed, match="404 Client Error"):
        extractor.extract_from_url(PDF_URL)


def test_non_pdf_bytes_are_rejected() -> None:
    with pytest.raises(TextExtractionFailed, match="not a readable PDF"):
        read_pdf_pages(b"<html>rate limited</html>", PDF_URL)


def test_pdf_without_text_fails() -> None:
    extractor, _ = _extractor(_pdf_bytes("", ""))

    with pytest.raises(TextExtractionFailed, match="no extractable text"):
        extractor.extract_from_url(PDF_URL)


def test_try_extract_text_returns_none_on_failure(caplog: pytest.LogCaptureFixture) -> None:
    extractor, _ = _extractor(error=requests.Timeout("timed out"))

    assert try_extract_text(_paper(), extractor) is None
    assert "PDF extraction failed" in caplog.text


def test_try_extract_text_returns_text() -> None:
    extractor, _ = _extractor(_pdf_bytes("Hello"))

    text = try_extract_text(_paper(), extractor)

    assert text is not None
    assert "Hello" in text.plain_text
