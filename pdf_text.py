"""Full-text extraction: download a paper's PDF and read its text with PyMuPDF."""

from __future__ import annotations

import logging

import fitz  # pymupdf
import requests

from errors import TextExtractionFailed
from models import AcademicPaper, PaperText
from semantic_client import USER_AGENT

DOWNLOAD_TIMEOUT_SECONDS = 60.0

LOGGER = logging.getLogger(__name__)


class PdfTextExtractor:
    """Fetches a PDF over HTTP and returns its text page by page.

    ``max_pages`` limits how many pages are read; None reads the whole document.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = DOWNLOAD_TIMEOUT_SECONDS,
        max_pages: int | None = None,
    ) -> None:
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        self.timeout = timeout
        self.max_pages = max_pages

    def extract_for_paper(self, paper: AcademicPaper) -> PaperText:
        url = paper.best_pdf_url()
        if not url:
            raise TextExtractionFailed(None, f"paper_id={paper.id} has no PDF url")
        return self.extract_from_url(url)

    def extract_from_url(self, url: str) -> PaperText:
        LOGGER.info("Extracting text from PDF: %s", url)
        content = self._download(url)
        pages = read_pdf_pages(content, url, max_pages=self.max_pages)
        text = PaperText(source_url=url, pages=pages)
        if not text.is_valid():
            raise TextExtractionFailed(url, "PDF contains no extractable text")
        LOGGER.info("Extracted %s page(s), %s chars from %s", len(pages), len(text.plain_text), url)
        return text

    def _download(self, url: str) -> bytes:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise TextExtractionFailed(url, f"download failed: {exc}") from exc
        return response.content


def read_pdf_pages(content: bytes, url: str, max_pages: int | None = None) -> tuple[str, ...]:
    """Text of each page of an in-memory PDF."""
    try:
        doc = fitz.open(stream=content, filetype="pdf")
    except (RuntimeError, ValueError) as exc:
        raise TextExtractionFailed(url, f"not a readable PDF: {exc}") from exc

    pages: list[str] = []
    with doc:
        for index, page in enumerate(doc):
            if max_pages is not None and index >= max_pages:
                break
            pages.append(page.get_text().strip())
    return tuple(pages)


def try_extract_text(paper: AcademicPaper, extractor: PdfTextExtractor | None = None) -> PaperText | None:
    """Like ``extract_for_paper`` but logs and returns None on failure."""
    try:
        return (extractor or PdfTextExtractor()).extract_for_paper(paper)
    except TextExtractionFailed as exc:
        LOGGER.warning("PDF extraction failed for %r: %s", paper.title, exc)
        return None
