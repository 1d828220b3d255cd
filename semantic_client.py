"""Semantic Scholar Graph API client returning raw JSON paper objects."""

from __future__ import annotations

import logging
from typing import Any

import requests

from errors import InvalidSearchParams, PaperNotFound, SourceRequestError
from models import PaperSource
from search_params import SearchParams

API_BASE_URL = "https://api.semanticscholar.org/graph/v1"
REQUEST_TIMEOUT_SECONDS = 30
MAX_PAGE_LIMIT = 100
USER_AGENT = "paper-interpreter/0.1"

PAPER_FIELDS = ",".join([
    "paperId",
    "externalIds",
    "title",
    "abstract",
    "authors",
    "year",
    "publicationDate",
    "venue",
    "journal",
    "url",
    "fieldsOfStudy",
    "s2FieldsOfStudy",
    "citationCount",
    "influentialCitationCount",
    "referenceCount",
    "openAccessPdf",
])
# The detail endpoint can expand author objects; search cannot.
DETAIL_FIELDS = PAPER_FIELDS.replace("authors", "authors.name,authors.affiliations")

# arXiv archive prefix -> Semantic Scholar field of study.
_FIELD_OF_STUDY_BY_ARCHIVE: dict[str, str] = {
    "cs": "Computer Science",
    "math": "Mathematics",
    "stat": "Mathematics",
    "physics": "Physics",
    "quant-ph": "Physics",
    "astro-ph": "Physics",
    "cond-mat": "Physics",
    "gr-qc": "Physics",
    "hep-th": "Physics",
    "hep-ph": "Physics",
    "hep-ex": "Physics",
    "hep-lat": "Physics",
    "nucl-th": "Physics",
    "nucl-ex": "Physics",
    "nlin": "Physics",
    "math-ph": "Physics",
    "q-bio": "Biology",
    "q-fin": "Economics",
    "econ": "Economics",
    "eess": "Engineering",
}

LOGGER = logging.getLogger(__name__)


class SemanticScholarClient:
    """Search, detail, citation and reference lookups against the Graph API.

    An API key is optional; without one the shared public rate limit applies.
    """

    def __init__(
        self,
        api_key: str | None = None,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT})
        if api_key:
            self.session.headers.update({"x-api-key": api_key})

    def __enter__(self) -> SemanticScholarClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    def build_query(self, params: SearchParams) -> dict[str, Any]:
        """Translate SearchParams into ``/paper/search`` query parameters."""
        text = " ".join(
            part.strip()
            for part in (params.query, params.title, params.author, params.abstract_contains)
            if part and part.strip()
        )
        if not text:
            raise InvalidSearchParams("Semantic Scholar query needs query, title, author or abstract text")

        query: dict[str, Any] = {
            "query": text,
            "limit": min(params.max_results, MAX_PAGE_LIMIT),
            "fields": PAPER_FIELDS,
        }
        year_range = params.year_range()
        if year_range:
            start, end = year_range
            query["year"] = str(start) if start == end else f"{start}-{end}"
        if params.min_citations is not None:
            query["minCitationCount"] = params.min_citations

        fields_of_study = list(dict.fromkeys(field_of_study(c) for c in params.categories if c.strip()))
        if fields_of_study:
            query["fieldsOfStudy"] = ",".join(fields_of_study)
        return query

    def search(self, params: SearchParams) -> list[Any]:
        query = self.build_query(params)
        payload = self._get("/paper/search", query)
        records = _data_items(payload)
        LOGGER.info("Semantic Scholar search: query=%r returned=%s", query["query"], len(records))
        return records

    def fetch_details(self, paper_id: str) -> dict[str, Any]:
        payload = self._get(f"/paper/{paper_id}", {"fields": DETAIL_FIELDS})
        if payload is None:
            raise PaperNotFound(PaperSource.SEMANTIC_SCHOLAR, paper_id)
        if not isinstance(payload, dict):
            raise SourceRequestError(PaperSource.SEMANTIC_SCHOLAR, "unexpected detail payload shape")
        return payload

    def search_exact_title(self, title: str) -> dict[str, Any] | None:
        """Return the best title match, or None when Semantic Scholar has no match."""
        payload = self._get("/paper/search/match", {"query": title, "fields": PAPER_FIELDS})
        if payload is None:
            return None
        records = [item for item in _data_items(payload) if isinstance(item, dict)]
        return records[0] if records else None

    def fetch_citations(self, paper_id: str, limit: int = 50) -> list[dict[str, Any]]:
        return self._linked_papers(paper_id, "citations", "citingPaper", limit)

    def fetch_references(self, paper_id: str, limit: int = 50) -> list[dict[str, Any]]:
        return self._linked_papers(paper_id, "references", "citedPaper", limit)

    def _linked_papers(self, paper_id: str, edge: str, key: str, limit: int) -> list[dict[str, Any]]:
        payload = self._get(
            f"/paper/{paper_id}/{edge}",
            {"fields": PAPER_FIELDS, "limit": min(limit, 1000)},
        )
        if payload is None:
            raise PaperNotFound(PaperSource.SEMANTIC_SCHOLAR, paper_id)
        papers = [item.get(key) for item in _data_items(payload) if isinstance(item, dict)]
        papers = [paper for paper in papers if isinstance(paper, dict)]
        LOGGER.info("Semantic Scholar %s: paper_id=%s returned=%s", edge, paper_id, len(papers))
        return papers

    def _get(self, path: str, params: dict[str, Any]) -> Any:
        """GET a Graph API path; returns None on 404 and raises SourceRequestError otherwise."""
        url = f"{API_BASE_URL}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SourceRequestError(PaperSource.SEMANTIC_SCHOLAR, f"request failed: {exc}") from exc

        if response.status_code == 404:
            return None
        if response.status_code == 429:
            raise SourceRequestError(
                PaperSource.SEMANTIC_SCHOLAR,
                "rate limited (429); set SEMANTIC_SCHOLAR_API_KEY for a higher limit",
            )
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise SourceRequestError(PaperSource.SEMANTIC_SCHOLAR, f"HTTP error: {exc}") from exc

        try:
            return response.json()
        except ValueError as exc:
            raise SourceRequestError(PaperSource.SEMANTIC_SCHOLAR, "response was not valid JSON") from exc


def field_of_study(category: str) -> str:
    """Map an arXiv category ("cs.CL") to a Semantic Scholar field of study ("Computer Science")."""
    value = category.strip()
    archive = value.split(".", 1)[0].lower()
    return _FIELD_OF_STUDY_BY_ARCHIVE.get(archive, value)


def _data_items(payload: Any) -> list[Any]:
    if not isinstance(payload, dict):
        raise SourceRequestError(PaperSource.SEMANTIC_SCHOLAR, "unexpected payload shape: expected an object")
    data = payload.get("data") or []
    if not isinstance(data, list):
        raise SourceRequestError(PaperSource.SEMANTIC_SCHOLAR, "unexpected payload shape: 'data' is not a list")
    return data
