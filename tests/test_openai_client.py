from unittest.mock import MagicMock, patch

import httpx
import openai
import pytest

from errors import (
    AuthenticationFailed,
    AuthenticationMissing,
    InvalidResponse,
    NetworkFailure,
    ProviderError,
    RateLimited,
)
from llm_client import LlmOptions
from openai_client import DEFAULT_MODEL, OpenAIProvider

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _status_error(cls, status: int):
    return cls(f"Error code: {status}", response=httpx.Response(status, request=_REQUEST), body=None)


def _client_returning(content: str | None) -> MagicMock:
    mock_choice = MagicMock()
    mock_choice.message.content = content
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_client = MagicMock()
    mock_client.chat.completions.create.return_value = mock_response
    return mock_client


def test_from_env_without_key_fails_before_building_client() -> None:
    with patch("openai_client.OpenAI") as mock_openai, patch.dict("os.environ", {}, clear=True):
        with pytest.raises(AuthenticationMissing, match="OPENAI_API_KEY"):
            OpenAIProvider.from_env()

    mock_openai.assert_not_called()


def test_from_env_reads_model_and_base_url() -> None:
    env = {"OPENAI_API_KEY": "test-key", "OPENAI_MODEL": "gpt-4o-mini", "OPENAI_BASE_URL": "http://localhost:8000/v1"}
    with patch("openai_client.OpenAI") as mock_openai, patch.dict("os.environ", env, clear=True):
        provider = OpenAIProvider.from_env()

    assert provider.default_model == "gpt-4o-mini"
    assert mock_openai.call_args.kwargs["api_key"] == "test-key"
    assert mock_openai.call_args.kwargs["base_url"] == "http://localhost:8000/v1"


def test_from_env_model_argument_wins() -> None:
    with patch("openai_client.OpenAI"), patch.dict("os.environ", {"OPENAI_API_KEY": "k"}, clear=True):
        assert OpenAIProvider.from_env().default_model == DEFAULT_MODEL
        assert OpenAIProvider.from_env(model="o3-mini").default_model == "o3-mini"


def test_complete_sends_system_and_user_messages() -> None:
    mock_client = _client_returning("## Summary\nGood paper.")
    provider = OpenAIProvider(api_key="k", client=mock_client)

    text = provider.complete(
        "Analyze this",
        options=LlmOptions(temperature=0.2, max_tokens=512, stop=("END",), system="You are an expert."),
    )

    assert text == "## Summary\nGood paper."
    kwargs = mock_client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == DEFAULT_MODEL
    assert kwargs["messages"] == [
        {"role": "system", "content": "You are an expert."},
        {"role": "user", "content": "Analyze this"},
    ]
    assert kwargs["temperature"] == 0.2
    assert kwargs["max_completion_tokens"] == 512
    assert kwargs["stop"] == ["END"]
    assert "top_p" not in kwargs


def test_complete_model_override() -> None:
    mock_client = _client_returning("ok")
    OpenAIProvider(api_key="k", client=mock_client).complete("hi", model="gpt-4.1")

    assert mock_client.chat.completions.create.call_args.kwargs["model"] == "gpt-4.1"


@pytest.mark.parametrize(
    ("error", "expected"),
    [
        (_status_error(openai.RateLimitError, 429), RateLimited),
        (_status_error(openai.AuthenticationError, 401), AuthenticationFailed),
        (_status_error(openai.PermissionDeniedError, 403), AuthenticationFailed),
        (openai.APIConnectionError(request=_REQUEST), NetworkFailure),
        (openai.APITimeoutError(request=_REQUEST), NetworkFailure),
        (_status_error(openai.InternalServerError, 500), ProviderError),
    ],
)
def test_complete_maps_sdk_errors(error: Exception, expected: type) -> None:
    mock_client = MagicMock()
    mock_client.chat.completions.create.side_effect = error
    provider = OpenAIProvider(api_key="k", client=mock_client)

    with pytest.raises(expected) as exc_info:
        provider.complete("hi")

    assert exc_info.value.provider == "openai"
    assert exc_info.value.__cause__ is error


@pytest.mark.parametrize("content", [None, "", "   "])
def test_complete_empty_content_is_invalid_response(content) -> None:
    provider = OpenAIProvider(api_key="k", client=_client_returning(content))

    with pytest.raises(InvalidResponse, match="empty"):
        provider.complete("hi")
