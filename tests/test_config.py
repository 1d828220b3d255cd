from unittest.mock import patch

import pytest

from config import DEFAULT_MAX_RESULTS, DEFAULT_REQUEST_TIMEOUT_SECONDS, Config
from errors import ConfigError
from llm_client import ProviderKind
from models import PaperSource


def test_from_env_defaults() -> None:
    with patch.dict("os.environ", {}, clear=True):
        config = Config.from_env()

    assert config == Config()
    assert config.llm_provider is ProviderKind.OPENAI
    assert config.preferred_source is PaperSource.SEMANTIC_SCHOLAR
    assert config.request_timeout == DEFAULT_REQUEST_TIMEOUT_SECONDS
    assert config.default_max_results == DEFAULT_MAX_RESULTS
    assert config.semantic_scholar_api_key is None


def test_from_env_reads_every_setting() -> None:
    env = {
        "SEMANTIC_SCHOLAR_API_KEY": "s2-key",
        "LLM_PROVIDER": "Ollama",
        "LLM_MODEL": "llama3.2",
        "ANALYSIS_LANGUAGE": "JA",
        "DEDUP_PREFERRED_SOURCE": "arxiv",
        "REQUEST_TIMEOUT_SECONDS": "12.5",
        "DEFAULT_MAX_RESULTS": "25",
        "DEDUP_IGNORE_PUNCTUATION": "yes",
    }
    with patch.dict("os.environ", env, clear=True):
        config = Config.from_env()

    assert config.semantic_scholar_api_key == "s2-key"
    assert config.llm_provider is ProviderKind.OLLAMA
    assert config.llm_model == "llama3.2"
    assert config.language == "ja"
    assert config.preferred_source is PaperSource.ARXIV
    assert config.request_timeout == 12.5
    assert config.default_max_results == 25
    assert config.dedup_ignore_punctuation is True


def test_blank_values_fall_back_to_defaults() -> None:
    env = {"SEMANTIC_SCHOLAR_API_KEY": "", "LLM_MODEL": "", "REQUEST_TIMEOUT_SECONDS": "  "}
    with patch.dict("os.environ", env, clear=True):
        config = Config.from_env()

    assert config.semantic_scholar_api_key is None
    assert config.llm_model is None
    assert config.request_timeout == DEFAULT_REQUEST_TIMEOUT_SECONDS


@pytest.mark.parametrize(
    ("env", "match"),
    [
        ({"ANALYSIS_LANGUAGE": "fr"}, "ANALYSIS_LANGUAGE"),
        ({"DEDUP_PREFERRED_SOURCE": "pubmed"}, "DEDUP_PREFERRED_SOURCE"),
        ({"LLM_PROVIDER": "gemini"}, "Unknown LLM provider"),
        ({"REQUEST_TIMEOUT_SECONDS": "soon"}, "must be a number"),
        ({"DEFAULT_MAX_RESULTS": "0"}, "must be positive"),
        ({"DEFAULT_MAX_RESULTS": "2.5"}, "must be a number"),
        ({"DEDUP_IGNORE_PUNCTUATION": "maybe"}, "must be true or false"),
    ],
)
def test_from_env_rejects_invalid_values(env: dict[str, str], match: str) -> None:
    with patch.dict("os.environ", env, clear=True):
        with pytest.raises(ConfigError, match=match):
            Config.from_env()


def test_config_is_immutable() -> None:
    config = Config()
    with pytest.raises(AttributeError):
        config.language = "ja"  # type: ignore[misc]
