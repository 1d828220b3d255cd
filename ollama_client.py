"""Local Ollama provider over the ``/api/chat`` HTTP endpoint."""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

from errors import InvalidResponse, NetworkFailure, ProviderError, RateLimited
from llm_client import LlmOptions, LlmProvider

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama3.2"
# Local models can be slow to load on first use.
REQUEST_TIMEOUT_SECONDS = 300

LOGGER = logging.getLogger(__name__)


class OllamaProvider(LlmProvider):
    """Non-streaming chat against a local Ollama server. Needs no credential."""

    name = "ollama"

    def __init__(
        self,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        session: requests.Session | None = None,
        timeout: float = REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        super().__init__(model)
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_env(cls, model: str | None = None, session: requests.Session | None = None) -> OllamaProvider:
        return cls(
            model=model or os.getenv("OLLAMA_MODEL") or DEFAULT_MODEL,
            base_url=os.getenv("OLLAMA_BASE_URL") or DEFAULT_BASE_URL,
            session=session,
        )

    def complete(self, prompt: str, model: str | None = None, options: LlmOptions | None = None) -> str:
        options = options or LlmOptions()
        model = self.resolve_model(model)

        messages: list[dict[str, str]] = []
        if options.system:
            messages.append({"role": "system", "content": options.system})
        messages.append({"role": "user", "content": prompt})

        payload: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": _ollama_options(options),
        }
        url = f"{self.base_url}/api/chat"

        LOGGER.debug("Calling Ollama url=%s model=%s", url, model)
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except (requests.ConnectionError, requests.Timeout) as exc:
            raise NetworkFailure(self.name, f"could not reach {self.base_url}: {exc}") from exc
        except requests.RequestException as exc:
            raise ProviderError(self.name, str(exc)) from exc

        if response.status_code == 429:
            raise RateLimited(self.name, "server returned 429 Too Many Requests")
        try:
            response.raise_for_status()
        except requests.HTTPError as exc:
            raise ProviderError(self.name, f"HTTP error: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise InvalidResponse(self.name, "response was not valid JSON") from exc

        try:
            content = body["message"]["content"]
        except (KeyError, TypeError) as exc:
            raise InvalidResponse(self.name, f"Unexpected Ollama response shape: {body}") from exc
        if not isinstance(content, str) or not content.strip():
            raise InvalidResponse(self.name, "Ollama returned an empty response")
        return content


def _ollama_options(options: LlmOptions) -> dict[str, Any]:
    result: dict[str, Any] = {"num_predict": options.max_tokens}
    if options.temperature is not None:
        result["temperature"] = options.temperature
    if options.top_p is not None:
        result["top_p"] = options.top_p
    if options.stop:
        result["stop"] = list(options.stop)
    return result
