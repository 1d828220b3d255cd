"""Thin wrapper around the Anthropic Messages API."""

from __future__ import annotations

import logging
import os
from typing import Any

import anthropic

from errors import (
    AuthenticationFailed,
    AuthenticationMissing,
    InvalidResponse,
    NetworkFailure,
    ProviderError,
    RateLimited,
)
from llm_client import LlmOptions, LlmProvider

DEFAULT_MODEL = "claude-sonnet-4-20250514"

LOGGER = logging.getLogger(__name__)


class AnthropicProvider(LlmProvider):
    name = "anthropic"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        client: anthropic.Anthropic | None = None,
    ) -> None:
        if not api_key:
            raise AuthenticationMissing(self.name, "ANTHROPIC_API_KEY")
        super().__init__(model)
        self.client = client or anthropic.Anthropic(api_key=api_key)

    @classmethod
    def from_env(cls, model: str | None = None, client: anthropic.Anthropic | None = None) -> AnthropicProvider:
        api_key = os.getenv("ANTHROPIC_API_KEY")
        if not api_key:
            raise AuthenticationMissing(cls.name, "ANTHROPIC_API_KEY")
        return cls(
            api_key=api_key,
            model=model or os.getenv("ANTHROPIC_MODEL") or DEFAULT_MODEL,
            client=client,
        )

    def complete(self, prompt: str, model: str | None = None, options: LlmOptions | None = None) -> str:
        """Send one user message and return the joined text blocks of the reply.

        The system prompt goes through the dedicated ``system=`` parameter,
        not as a message.
        """
        options = options or LlmOptions()
        model = self.resolve_model(model)

        kwargs: dict[str, Any] = {
            "model": model,
            "max_tokens": options.max_tokens,
            "messages": [{"role": "user", "content": prompt}],
        }
        if options.system:
            kwargs["system"] = options.system
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.top_p is not None:
            kwargs["top_p"] = options.top_p
        if options.stop:
            kwargs["stop_sequences"] = list(options.stop)

        LOGGER.debug("Calling Claude model=%s max_tokens=%s", model, options.max_tokens)
        try:
            response = self.client.messages.create(**kwargs)
        except anthropic.RateLimitError as exc:
            raise RateLimited(self.name, str(exc)) from exc
        except (anthropic.AuthenticationError, anthropic.PermissionDeniedError) as exc:
            raise AuthenticationFailed(self.name, str(exc)) from exc
        except anthropic.APIConnectionError as exc:
            raise NetworkFailure(self.name, str(exc)) from exc
        except anthropic.APIError as exc:
            raise ProviderError(self.name, str(exc)) from exc

        text = "".join(
            block.text for block in response.content or [] if getattr(block, "type", None) == "text"
        )
        if not text.strip():
            raise InvalidResponse(self.name, "Claude returned no text content")
        return text
