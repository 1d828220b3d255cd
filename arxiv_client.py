"""arXiv source client: translates SearchParams into arXiv query syntax and fetches Atom entries."""

from __future__ import annotations

import logging

import arxiv
import requests

from errors import InvalidSearchParams, PaperNotFound, SourceRequestError
from models import PaperSource, clean_arxiv_id
from search_params import SearchParams

# arXiv asks API clients to wait ~3s between requests; the arxiv library
# enforces delay_seconds and its own retries per page.
PAGE_SIZE = 100
DELAY_SECONDS = 3.0
NUM_RETRIES = 3

LOGGER = logging.getLogger(__name__)


class ArxivClient:
    """Thin wrapper around ``arxiv.Client`` returning raw ``arxiv.Result`` records."""

    def __init__(self, client: arxiv.Client | None = None) -> None:
        self.client = client or arxiv.Client(
            page_size=PAGE_SIZE,
            delay_seconds=DELAY_SECONDS,
            num_retries=NUM_RETRIES,
        )

    def build_query(self, params: SearchParams) -> str:
        """Build the native ``search_query`` string, e.g. ``ti:"attention" AND (cat:cs.CL OR cat:cs.LG)``."""
        terms: list[str] = []
        if params.query:
            terms.append(f"all:{_quote(params.query)}")
        if params.title:
            terms.append(f"ti:{_quote(params.title)}")
        if params.author:
            terms.append(f"au:{_quote(params.author)}")
        if params.abstract_contains:
            terms.append(f"abs:{_quote(params.abstract_contains)}")

        categories = [c.strip() for c in params.categories if c.strip()]
        if len(categories) == 1:
            terms.append(f"cat:{categories[0]}")
        elif categories:
            terms.append("(" + " OR ".join(f"cat:{c}" for c in categories) + ")")

        if not terms:
            raise InvalidSearchParams("arXiv query needs a query, title, author, abstract or category")

        year_range = params.year_range()
        if year_range:
            start, end = year_range
            terms.append(f"submittedDate:[{start}01010000 TO {end}12312359]")

        return " AND ".join(terms)

    def search(self, params: SearchParams) -> list[arxiv.Result]:
        query = self.build_query(params)
        search = arxiv.Search(
            query=query,
            max_results=params.max_results,
            sort_by=arxiv.SortCriterion.SubmittedDate,
            sort_order=arxiv.SortOrder.Descending,
        )

        LOGGER.debug("arXiv query=%r max_results=%s", query, params.max_results)
        results = self._collect(search)
        LOGGER.info("arXiv search: query=%r returned=%s", query, len(results))
        return results

    def fetch_by_id(self, arxiv_id: str) -> arxiv.Result:
        clean_id = clean_arxiv_id(arxiv_id)
        results = self._collect(arxiv.Search(id_list=[clean_id], max_results=1))
        if not results:
            raise PaperNotFound(PaperSource.ARXIV, clean_id)
        return results[0]

    def _collect(self, search: arxiv.Search) -> list[arxiv.Result]:
        try:
            return list(self.client.results(search))
        except (arxiv.ArxivError, requests.RequestException) as exc:
            raise SourceRequestError(PaperSource.ARXIV, f"request failed: {exc}") from exc


def _quote(text: str) -> str:
    value = " ".join(text.replace('"', " ").split())
    return f'"{value}"' if " " in value else value
