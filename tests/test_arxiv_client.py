from types import SimpleNamespace
from unittest.mock import MagicMock

import arxiv
import pytest
import requests

from arxiv_client import ArxivClient
from errors import InvalidSearchParams, PaperNotFound, SourceRequestError
from search_params import SearchParams


def _client(results=None, side_effect=None) -> tuple[ArxivClient, MagicMock]:
    mock = MagicMock()
    if side_effect is not None:
        mock.results.side_effect = side_effect
    else:
        mock.results.return_value = iter(results or [])
    return ArxivClient(client=mock), mock


@pytest.mark.parametrize(
    ("params", "expected"),
    [
        (SearchParams(query="transformer"), "all:transformer"),
        (SearchParams(query="large language models"), 'all:"large language models"'),
        (SearchParams(title="attention", author="Vaswani"), "ti:attention AND au:Vaswani"),
        (SearchParams(abstract_contains='"graph" networks'), 'abs:"graph networks"'),
        (SearchParams(categories=("cs.CL",)), "cat:cs.CL"),
        (
            SearchParams(query="rlhf", categories=("cs.CL", "cs.LG")),
            "all:rlhf AND (cat:cs.CL OR cat:cs.LG)",
        ),
        (
            SearchParams(query="rlhf", year="2022-2023"),
            "all:rlhf AND submittedDate:[202201010000 TO 202312312359]",
        ),
    ],
)
def test_build_query(params: SearchParams, expected: str) -> None:
    client, _ = _client()
    assert client.build_query(params) == expected


def test_build_query_needs_a_term() -> None:
    client, _ = _client()
    with pytest.raises(InvalidSearchParams):
        client.build_query(SearchParams(year="2023"))


def test_search_passes_native_query_and_limit() -> None:
    records = [SimpleNamespace(title="One"), SimpleNamespace(title="Two")]
    client, mock = _client(results=records)

    results = client.search(SearchParams(query="diffusion", max_results=2))

    assert results == records
    search = mock.results.call_args.args[0]
    assert isinstance(search, arxiv.Search)
    assert search.query == "all:diffusion"
    assert search.max_results == 2
    assert search.sort_by == arxiv.SortCriterion.SubmittedDate


def test_search_wraps_transport_errors() -> None:
    client, _ = _client(side_effect=requests.ConnectionError("connection reset"))

    with pytest.raises(SourceRequestError, match="arxiv: request failed: connection reset"):
        client.search(SearchParams(query="diffusion"))


def test_fetch_by_id_cleans_identifier() -> None:
    record = SimpleNamespace(title="Attention Is All You Need")
    client, mock = _client(results=[record])

    assert client.fetch_by_id("https://arxiv.org/abs/1706.03762v5") is record
    assert mock.results.call_args.args[0].id_list == ["1706.03762"]


def test_fetch_by_id_raises_when_missing() -> None:
    client, _ = _client(results=[])

    with pytest.raises(PaperNotFound, match="9999.99999"):
        client.fetch_by_id("9999.99999")
