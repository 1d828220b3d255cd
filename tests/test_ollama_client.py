from unittest.mock import MagicMock, patch

import pytest
import requests

from errors import InvalidResponse, NetworkFailure, ProviderError, RateLimited
from llm_client import LlmOptions
from ollama_client import DEFAULT_BASE_URL, DEFAULT_MODEL, OllamaProvider


def _session(status_code: int = 200, payload=None, side_effect=None) -> MagicMock:
    session = MagicMock()
    if side_effect is not None:
        session.post.side_effect = side_effect
        return session
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Server Error")
    session.post.return_value = response
    return session


def test_from_env_needs_no_credential() -> None:
    with patch.dict("os.environ", {}, clear=True):
        provider = OllamaProvider.from_env(session=MagicMock())

    assert provider.default_model == DEFAULT_MODEL
    assert provider.base_url == DEFAULT_BASE_URL


def test_from_env_reads_base_url_and_model() -> None:
    env = {"OLLAMA_BASE_URL": "http://gpu-box:11434/", "OLLAMA_MODEL": "qwen2.5"}
    with patch.dict("os.environ", env, clear=True):
        provider = OllamaProvider.from_env(session=MagicMock())

    assert provider.base_url == "http://gpu-box:11434"
    assert provider.default_model == "qwen2.5"


def test_complete_posts_non_streaming_chat() -> None:
    session = _session(payload={"message": {"role": "assistant", "content": "Summary: fine."}})
    provider = OllamaProvider(session=session)

    text = provider.complete("Analyze", options=LlmOptions(temperature=0.1, max_tokens=300, system="sys"))

    assert text == "Summary: fine."
    url = session.post.call_args.args[0]
    payload = session.post.call_args.kwargs["json"]
    assert url == f"{DEFAULT_BASE_URL}/api/chat"
    assert payload["stream"] is False
    assert payload["model"] == DEFAULT_MODEL
    assert payload["messages"][0] == {"role": "system", "content": "sys"}
    assert payload["options"] == {"num_predict": 300, "temperature": 0.1}


@pytest.mark.parametrize(
    "side_effect",
    [requests.ConnectionError("refused"), requests.Timeout("read timed out")],
)
def test_complete_transport_errors_are_network_failures(side_effect: Exception) -> None:
    provider = OllamaProvider(session=_session(side_effect=side_effect))

    with pytest.raises(NetworkFailure, match="could not reach"):
        provider.complete("hi")


def test_complete_rate_limited() -> None:
    provider = OllamaProvider(session=_session(status_code=429))

    with pytest.raises(RateLimited):
        provider.complete("hi")


def test_complete_http_error() -> None:
    provider = OllamaProvider(session=_session(status_code=404))

    with pytest.raises(ProviderError, match="HTTP error"):
        provider.complete("hi", model="missing-model")


@pytest.mark.parametrize("payload", [{"error": "model not found"}, {"message": {"content": ""}}, ["list"]])
def test_complete_bad_payload_is_invalid_response(payload) -> None:
    provider = OllamaProvider(session=_session(payload=payload))

    with pytest.raises(InvalidResponse):
        provider.complete("hi")
