from unittest.mock import MagicMock, patch

import pytest

from anthropic_client import AnthropicProvider
from errors import AuthenticationMissing, ConfigError
from llm_client import LlmOptions, LlmProvider, ProviderKind, create_provider, parse_provider_kind
from ollama_client import OllamaProvider
from openai_client import OpenAIProvider


@pytest.mark.parametrize(
    ("value", "expected"),
    [("openai", ProviderKind.OPENAI), (" Anthropic ", ProviderKind.ANTHROPIC), (ProviderKind.OLLAMA, ProviderKind.OLLAMA)],
)
def test_parse_provider_kind(value, expected: ProviderKind) -> None:
    assert parse_provider_kind(value) is expected


def test_parse_provider_kind_rejects_unknown() -> None:
    with pytest.raises(ConfigError, match="Unknown LLM provider 'gemini'"):
        parse_provider_kind("gemini")


@pytest.mark.parametrize(
    ("kind", "env_var"),
    [(ProviderKind.OPENAI, "OPENAI_API_KEY"), (ProviderKind.ANTHROPIC, "ANTHROPIC_API_KEY")],
)
def test_create_provider_fails_fast_without_credential(kind: ProviderKind, env_var: str) -> None:
    with patch("openai_client.OpenAI") as mock_openai, \
         patch("anthropic_client.anthropic.Anthropic") as mock_anthropic, \
         patch.dict("os.environ", {}, clear=True):
        with pytest.raises(AuthenticationMissing) as exc_info:
            create_provider(kind)

    assert exc_info.value.env_var == env_var
    mock_openai.assert_not_called()
    mock_anthropic.assert_not_called()


def test_create_provider_builds_each_variant() -> None:
    env = {"OPENAI_API_KEY": "o-key", "ANTHROPIC_API_KEY": "a-key"}
    with patch("openai_client.OpenAI"), \
         patch("anthropic_client.anthropic.Anthropic"), \
         patch.dict("os.environ", env, clear=True):
        assert isinstance(create_provider("openai"), OpenAIProvider)
        assert isinstance(create_provider("anthropic", model="claude-x"), AnthropicProvider)
        ollama = create_provider("ollama", model="mistral")

    assert isinstance(ollama, OllamaProvider)
    assert ollama.default_model == "mistral"


def test_resolve_model_falls_back_to_default() -> None:
    class EchoProvider(LlmProvider):
        name = "echo"

        def complete(self, prompt, model=None, options=None) -> str:
            return f"{self.resolve_model(model)}:{prompt}"

    provider = EchoProvider("base-model")

    assert provider.complete("hi") == "base-model:hi"
    assert provider.complete("hi", model="other") == "other:hi"


def test_llm_options_defaults() -> None:
    options = LlmOptions()
    assert options.max_tokens == 4096
    assert options.temperature is None
    assert options.stop == ()


def test_provider_stub_records_no_call_on_missing_credential() -> None:
    transport = MagicMock()
    with patch("openai_client.OpenAI", transport), patch.dict("os.environ", {}, clear=True):
        with pytest.raises(AuthenticationMissing):
            OpenAIProvider.from_env()

    assert transport.call_count == 0
    assert transport.return_value.chat.completions.create.call_count == 0
