"""OpenAI chat-completions provider."""

from __future__ import annotations

import logging
import os
from typing import Any

import openai
from openai import OpenAI

from errors import (
    AuthenticationFailed,
    AuthenticationMissing,
    InvalidResponse,
    NetworkFailure,
    ProviderError,
    RateLimited,
)
from llm_client import LlmOptions, LlmProvider

DEFAULT_MODEL = "gpt-4o"
REQUEST_TIMEOUT_SECONDS = 120.0

LOGGER = logging.getLogger(__name__)


class OpenAIProvider(LlmProvider):
    """OpenAI (or any OpenAI-compatible ``base_url``) chat completions."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        client: OpenAI | None = None,
        base_url: str | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        if not api_key:
            raise AuthenticationMissing(self.name, "OPENAI_API_KEY")
        super().__init__(model)
        self.client = client or OpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    @classmethod
    def from_env(cls, model: str | None = None, client: OpenAI | None = None) -> OpenAIProvider:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise AuthenticationMissing(cls.name, "OPENAI_API_KEY")
        return cls(
            api_key=api_key,
            model=model or os.getenv("OPENAI_MODEL") or DEFAULT_MODEL,
            client=client,
            base_url=os.getenv("OPENAI_BASE_URL") or None,
        )

    def complete(self, prompt: str, model: str | None = None, options: LlmOptions | None = None) -> str:
        options = options or LlmOptions()
        model = self.resolve_model(model)

        messages: list[dict[str, str]] = []
        if options.system:
            messages.append({"role": "system", "content": options.system})
        messages.append({"role": "user", "content": prompt})

        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "max_completion_tokens": options.max_tokens,
        }
        if options.temperature is not None:
            kwargs["temperature"] = options.temperature
        if options.top_p is not None:
            kwargs["top_p"] = options.top_p
        if options.stop:
            kwargs["stop"] = list(options.stop)

        LOGGER.debug("Calling OpenAI model=%s max_tokens=%s", model, options.max_tokens)
        try:
            response = self.client.chat.completions.create(**kwargs)
        except openai.RateLimitError as exc:
            raise RateLimited(self.name, str(exc)) from exc
        except (openai.AuthenticationError, openai.PermissionDeniedError) as exc:
            raise AuthenticationFailed(self.name, str(exc)) from exc
        except openai.APIConnectionError as exc:
            # APITimeoutError is a subclass of APIConnectionError.
            raise NetworkFailure(self.name, str(exc)) from exc
        except openai.APIError as exc:
            raise ProviderError(self.name, str(exc)) from exc

        if not response.choices:
            raise InvalidResponse(self.name, "response contained no choices")
        content = response.choices[0].message.content
        if not content or not content.strip():
            raise InvalidResponse(self.name, "OpenAI returned an empty response")
        return content
