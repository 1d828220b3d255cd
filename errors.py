"""Error taxonomy shared by the search, provider and analysis layers."""

from __future__ import annotations

from collections.abc import Mapping


class PaperInterpreterError(Exception):
    """Root of every error raised by this package."""


class ConfigError(PaperInterpreterError, ValueError):
    """Invalid configuration value (unknown provider, language, ...)."""


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------


class SearchError(PaperInterpreterError):
    """Base class for search and fetch failures."""


class InvalidSearchParams(SearchError, ValueError):
    """The query cannot be translated into any source's native syntax."""


class SourceRequestError(SearchError):
    """A single call to one source failed at the transport or HTTP level."""

    def __init__(self, source: str, message: str) -> None:
        self.source = source
        self.message = message
        super().__init__(f"{source}: {message}")


class SourceUnavailable(SearchError):
    """Every selected source failed; partial failures never raise this."""

    def __init__(self, failures: Mapping[str, str]) -> None:
        self.failures = dict(failures)
        detail = "; ".join(f"{source}: {msg}" for source, msg in self.failures.items())
        super().__init__(f"All sources failed ({detail})")

    @property
    def sources(self) -> list[str]:
        return list(self.failures)


class PaperNotFound(SearchError):
    def __init__(self, source: str, identifier: str) -> None:
        self.source = source
        self.identifier = identifier
        super().__init__(f"{source}: paper not found: {identifier}")


class NormalizationError(PaperInterpreterError):
    """One raw record could not be mapped onto AcademicPaper.

    Aggregation drops the record and counts it; the error never aborts a search.
    """

    def __init__(self, source: str, record_id: str | None, reason: str) -> None:
        self.source = source
        self.record_id = record_id
        self.reason = reason
        super().__init__(f"{source} record {record_id or '<no id>'}: {reason}")


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------


class ProviderError(PaperInterpreterError):
    """An LLM backend call failed. Bare instances cover unclassified HTTP errors."""

    def __init__(self, provider: str, message: str) -> None:
        self.provider = provider
        self.message = message
        super().__init__(f"{provider}: {message}")


class AuthenticationMissing(ProviderError):
    """Required credential env var is absent; raised before any network call."""

    def __init__(self, provider: str, env_var: str) -> None:
        self.env_var = env_var
        super().__init__(provider, f"{env_var} environment variable is required")


class AuthenticationFailed(ProviderError):
    """The backend rejected the configured credential."""


class RateLimited(ProviderError):
    pass


class NetworkFailure(ProviderError):
    """Connection error or transport timeout."""


class InvalidResponse(ProviderError):
    """Malformed or empty payload."""


# ---------------------------------------------------------------------------
# Analysis
# ---------------------------------------------------------------------------


class AnalysisError(PaperInterpreterError):
    def __init__(self, message: str, paper_id: str | None = None) -> None:
        self.paper_id = paper_id
        self.message = message
        target = f"paper_id={paper_id}" if paper_id else "paper"
        super().__init__(f"analysis of {target} failed: {message}")


class ProviderFailed(AnalysisError):
    """Wraps the originating ProviderError unchanged in ``provider_error``."""

    def __init__(self, paper_id: str | None, provider_error: ProviderError) -> None:
        self.provider_error = provider_error
        super().__init__(str(provider_error), paper_id=paper_id)


class TemplateRenderFailed(AnalysisError):
    pass


class ResponseParseFailed(AnalysisError):
    """The reply carried no JSON object where one is required."""


# ---------------------------------------------------------------------------
# Full text
# ---------------------------------------------------------------------------


class TextExtractionFailed(PaperInterpreterError):
    """The PDF could not be downloaded or read."""

    def __init__(self, url: str | None, message: str) -> None:
        self.url = url
        self.message = message
        super().__init__(f"text extraction from {url or '<no pdf url>'} failed: {message}")
