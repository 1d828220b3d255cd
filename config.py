"""Environment configuration, read once at startup and never mutated."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from errors import ConfigError
from llm_client import ProviderKind, parse_provider_kind
from models import PaperSource
from prompts import SUPPORTED_LANGUAGES

DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RESULTS = 10

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Config:
    """Process-wide settings shared by the searcher and the analyzer.

    Provider credentials are not held here; each provider's ``from_env``
    reads its own key so a missing key fails at provider construction.
    """

    semantic_scholar_api_key: str | None = None
    llm_provider: ProviderKind = ProviderKind.OPENAI
    llm_model: str | None = None
    language: str = "en"
    preferred_source: PaperSource = PaperSource.SEMANTIC_SCHOLAR
    dedup_ignore_punctuation: bool = False
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    default_max_results: int = DEFAULT_MAX_RESULTS

    @classmethod
    def from_env(cls) -> Config:
        language = (os.getenv("ANALYSIS_LANGUAGE") or "en").strip().lower()
        if language not in SUPPORTED_LANGUAGES:
            raise ConfigError(f"ANALYSIS_LANGUAGE must be one of {SUPPORTED_LANGUAGES}, got {language!r}")

        preferred = (os.getenv("DEDUP_PREFERRED_SOURCE") or PaperSource.SEMANTIC_SCHOLAR.value).strip().lower()
        try:
            preferred_source = PaperSource(preferred)
        except ValueError as exc:
            raise ConfigError(f"DEDUP_PREFERRED_SOURCE must be arxiv or semantic_scholar, got {preferred!r}") from exc

        config = cls(
            semantic_scholar_api_key=os.getenv("SEMANTIC_SCHOLAR_API_KEY") or None,
            llm_provider=parse_provider_kind(os.getenv("LLM_PROVIDER") or ProviderKind.OPENAI.value),
            llm_model=os.getenv("LLM_MODEL") or None,
            language=language,
            preferred_source=preferred_source,
            dedup_ignore_punctuation=_flag("DEDUP_IGNORE_PUNCTUATION"),
            request_timeout=_positive_number("REQUEST_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS, float),
            default_max_results=_positive_number("DEFAULT_MAX_RESULTS", DEFAULT_MAX_RESULTS, int),
        )
        LOGGER.debug(
            "Loaded config: provider=%s model=%s language=%s preferred_source=%s semantic_scholar_key=%s",
            config.llm_provider,
            config.llm_model,
            config.language,
            config.preferred_source,
            "set" if config.semantic_scholar_api_key else "unset",
        )
        return config


def _flag(name: str, default: bool = False) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE_VALUES:
        return True
    if raw in _FALSE_VALUES:
        return False
    raise ConfigError(f"{name} must be true or false, got {raw!r}")


def _positive_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = cast(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value
