"""LLM provider capability: one ``complete`` operation behind OpenAI, Anthropic and Ollama backends."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from errors import ConfigError

DEFAULT_MAX_TOKENS = 4096

LOGGER = logging.getLogger(__name__)


class ProviderKind(StrEnum):
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


@dataclass(frozen=True, slots=True)
class LlmOptions:
    """Sampling options shared by every backend; ``None`` means backend default."""

    temperature: float | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    top_p: float | None = None
    stop: tuple[str, ...] = ()
    system: str | None = None


class LlmProvider(ABC):
    """A text-completion backend.

    Implementations read credentials once at construction and hold no
    per-call state, so one instance can serve concurrent callers.
    """

    name: str = ""

    def __init__(self, model: str) -> None:
        self.default_model = model

    @abstractmethod
    def complete(self, prompt: str, model: str | None = None, options: LlmOptions | None = None) -> str:
        """Return the generated text or raise a ProviderError subclass."""

    def resolve_model(self, model: str | None) -> str:
        return model or self.default_model

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.default_model!r})"


def parse_provider_kind(value: str | ProviderKind) -> ProviderKind:
    try:
        return ProviderKind(str(value).strip().lower())
    except ValueError as exc:
        choices = ", ".join(kind.value for kind in ProviderKind)
        raise ConfigError(f"Unknown LLM provider {value!r}; expected one of: {choices}") from exc


def create_provider(kind: str | ProviderKind, model: str | None = None, **kwargs: Any) -> LlmProvider:
    """Build a provider from the environment; fails fast when its credential is missing."""
    kind = parse_provider_kind(kind)
    if kind is ProviderKind.OPENAI:
        from openai_client import OpenAIProvider  # noqa: PLC0415

        provider: LlmProvider = OpenAIProvider.from_env(model=model, **kwargs)
    elif kind is ProviderKind.ANTHROPIC:
        from anthropic_client import AnthropicProvider  # noqa: PLC0415

        provider = AnthropicProvider.from_env(model=model, **kwargs)
    else:
        from ollama_client import OllamaProvider  # noqa: PLC0415

        provider = OllamaProvider.from_env(model=model, **kwargs)

    LOGGER.debug("Created provider %r", provider)
    return provider
