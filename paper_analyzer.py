"""Analysis agent: prompt a provider about one paper and parse the reply into typed records."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import replace
from json import JSONDecodeError
from typing import Any

from config import Config
from errors import ConfigError, ProviderError, ProviderFailed, ResponseParseFailed, TemplateRenderFailed
from llm_client import LlmOptions, LlmProvider, create_provider
from models import AcademicPaper, KeywordsData, PaperAnalysis, ResearchContext, TechnicalTerm
from prompts import SUPPORTED_LANGUAGES, language_name, not_available, render_prompt

DEFAULT_TEMPERATURE = 0.3

LOGGER = logging.getLogger(__name__)

# Header label -> PaperAnalysis field, English and Japanese.
SECTION_ALIASES: dict[str, tuple[str, ...]] = {
    "summary": ("summary", "overview", "tl;dr", "概要", "要約", "サマリー"),
    "methodology": ("methodology", "methods", "method", "approach", "手法", "方法論", "研究手法"),
    "key_findings": (
        "key findings",
        "findings",
        "key contributions",
        "contributions",
        "results",
        "主要な発見",
        "主な発見",
        "主要な貢献",
        "結果",
    ),
    "limitations": (
        "limitations and future work",
        "limitations",
        "limitation",
        "制限事項",
        "限界",
        "課題",
    ),
}

_JSON_KEYS: dict[str, tuple[str, ...]] = {
    "summary": ("summary",),
    "methodology": ("methodology", "methods"),
    "key_findings": ("key_findings", "findings", "key_contributions"),
    "limitations": ("limitations", "advantages_limitations_and_future_work"),
}

_LABEL_TO_FIELD = {label: field for field, labels in SECTION_ALIASES.items() for label in labels}
_LABEL_PATTERN = "|".join(re.escape(label) for label in sorted(_LABEL_TO_FIELD, key=len, reverse=True))
_HEADER_RE = re.compile(
    r"^\s*(?P<hash>#{1,6}\s*)?(?P<bold>\*\*|__)?\s*(?:\d+[.)]\s*)?"
    rf"(?P<label>{_LABEL_PATTERN})"
    r"\s*(?:\*\*|__)?\s*(?P<colon>[:：]\s*(?:\*\*|__)?\s*(?P<rest>.*?))?\s*$",
    re.IGNORECASE,
)
_BULLET_RE = re.compile(r"^\s*(?:[-*]\s+|[•・]\s*|\d+[.)]\s+)")


class PaperAnalyzer:
    """Renders the analysis prompt for a paper, calls the provider once, parses the reply.

    No retries: a ProviderError surfaces as ProviderFailed with the original
    error attached.
    """

    def __init__(
        self,
        provider: LlmProvider,
        model: str | None = None,
        options: LlmOptions | None = None,
        language: str = "en",
    ) -> None:
        if language not in SUPPORTED_LANGUAGES:
            raise ConfigError(f"Unsupported analysis language {language!r}; expected one of {SUPPORTED_LANGUAGES}")
        self.provider = provider
        self.model = model or provider.default_model
        self.options = options or LlmOptions(temperature=DEFAULT_TEMPERATURE)
        self.language = language

    @classmethod
    def from_config(cls, config: Config, provider: LlmProvider | None = None) -> PaperAnalyzer:
        provider = provider or create_provider(config.llm_provider, model=config.llm_model)
        return cls(provider, model=config.llm_model, language=config.language)

    def analyze(self, paper: AcademicPaper) -> PaperAnalysis:
        LOGGER.info(
            "Analyzing paper_id=%s with provider=%s model=%s language=%s",
            paper.id,
            self.provider.name,
            self.model,
            self.language,
        )
        prompt = self._render(
            "analysis",
            paper.id,
            title=paper.title,
            authors=", ".join(author.name for author in paper.authors) or not_available(self.language),
            abstract=paper.abstract or not_available(self.language),
        )
        system = self._render("system", paper.id)
        text = self._complete(paper.id, prompt, system)

        analysis = PaperAnalysis(
            paper_id=paper.id,
            provider=self.provider.name,
            model=self.model,
            language=self.language,
            **parse_analysis(text),
        )
        if not analysis.is_complete():
            LOGGER.warning(
                "Analysis for paper_id=%s is partial: summary=%s methodology=%s",
                paper.id,
                bool(analysis.summary),
                bool(analysis.methodology),
            )
        LOGGER.info("Analysis finished for paper_id=%s findings=%s", paper.id, len(analysis.key_findings))
        return analysis

    def summarize(self, paper: AcademicPaper) -> str:
        """Free-text summary of the paper; no section parsing."""
        prompt = self._render(
            "summary",
            paper.id,
            title=paper.title,
            abstract=paper.abstract or not_available(self.language),
        )
        return self._complete(paper.id, prompt, self._render("system", paper.id)).strip()

    def translate(self, text: str, target_language: str | None = None, paper_id: str | None = None) -> str:
        prompt = self._render(
            "translation",
            paper_id,
            text=text,
            target_language=language_name(target_language or self.language),
        )
        system = self._render("translation_system", paper_id)
        return self._complete(paper_id, prompt, system).strip()

    def extract_keywords(self, paper: AcademicPaper) -> KeywordsData:
        prompt = self._render(
            "keywords",
            paper.id,
            title=paper.title,
            abstract=paper.abstract or not_available(self.language),
        )
        data = self._complete_json(paper.id, prompt, "keywords")
        keywords = KeywordsData(
            keywords=_string_items(data.get("keywords")),
            topics=_string_items(data.get("topics")),
            technical_terms=_technical_terms(data.get("technical_terms")),
            methods=_string_items(data.get("methods")),
            datasets=_string_items(data.get("datasets")),
        )
        LOGGER.info("Keywords for paper_id=%s: %s", paper.id, len(keywords.keywords))
        return keywords

    def extract_research_context(self, paper: AcademicPaper, keywords: Sequence[str] = ()) -> ResearchContext:
        """Positioning of the paper in its field; ``keywords`` come from ``extract_keywords``."""
        prompt = self._render(
            "research_context",
            paper.id,
            title=paper.title,
            abstract=paper.abstract or not_available(self.language),
            keywords=", ".join(keywords) or not_available(self.language),
        )
        data = self._complete_json(paper.id, prompt, "research context")
        return ResearchContext(
            primary_field=_json_text(data.get("primary_field")),
            sub_fields=_string_items(data.get("sub_fields")),
            research_type=_json_text(data.get("research_type")).lower(),
            positioning=_json_text(data.get("positioning")),
            related_directions=_string_items(data.get("related_directions")),
        )

    def _complete_json(self, paper_id: str, prompt: str, what: str) -> dict[str, Any]:
        text = self._complete(paper_id, prompt, self._render("system", paper_id))
        data = _parse_json_object(text)
        if data is None:
            LOGGER.warning("No JSON object in %s reply for paper_id=%s", what, paper_id)
            raise ResponseParseFailed(f"{what} reply contained no JSON object", paper_id=paper_id)
        return data

    def _render(self, name: str, paper_id: str | None, **fields: Any) -> str:
        try:
            return render_prompt(name, self.language, **fields)
        except TemplateRenderFailed as exc:
            raise TemplateRenderFailed(exc.message, paper_id=paper_id) from exc

    def _complete(self, paper_id: str | None, prompt: str, system: str) -> str:
        try:
            return self.provider.complete(prompt, model=self.model, options=replace(self.options, system=system))
        except ProviderError as exc:
            LOGGER.warning("Provider %s failed for paper_id=%s: %s", exc.provider, paper_id, exc)
            raise ProviderFailed(paper_id, exc) from exc


def analyze(
    paper: AcademicPaper,
    provider: LlmProvider,
    model: str | None = None,
    language: str = "en",
) -> PaperAnalysis:
    return PaperAnalyzer(provider, model=model, language=language).analyze(paper)


def parse_analysis(text: str) -> dict[str, Any]:
    """Split a model reply into PaperAnalysis fields.

    A JSON object with any known key wins. Otherwise the text is split on
    recognised section headers (``## Summary``, ``**Summary**``, ``Summary:``
    and the Japanese equivalents). Missing sections come back empty; a reply
    with no recognised header is taken as the summary.
    """
    parsed = _parse_json_object(text)
    if parsed is not None:
        fields = _fields_from_json(parsed)
        if fields is not None:
            return fields
    return _fields_from_sections(text)


def parse_bullets(text: str) -> tuple[str, ...]:
    """One item per non-empty line, with list markers ("-", "*", "1.") removed."""
    items = (_BULLET_RE.sub("", line).strip() for line in text.splitlines())
    return tuple(item for item in items if item)


def _fields_from_sections(text: str) -> dict[str, Any]:
    sections: dict[str, list[str]] = {}
    preamble: list[str] = []
    current: list[str] = preamble
    # Inside a "## Header" section a bare "Label: ..." line only opens a new
    # section when it starts a paragraph; otherwise it is prose.
    in_marked_section = False
    previous_blank = True

    for line in text.splitlines():
        match = _HEADER_RE.match(line)
        if match and _is_section_header(match, in_marked_section, previous_blank):
            field = _LABEL_TO_FIELD[match.group("label").lower()]
            current = sections.setdefault(field, [])
            in_marked_section = not _is_plain_colon_header(match)
            if match.group("rest"):
                current.append(match.group("rest"))
        else:
            current.append(line)
        previous_blank = not line.strip()

    if not sections:
        return _build_fields(summary=text.strip())

    summary = "\n".join(sections.get("summary", [])).strip() or "\n".join(preamble).strip()
    return _build_fields(
        summary=summary,
        methodology="\n".join(sections.get("methodology", [])).strip(),
        key_findings=parse_bullets("\n".join(sections.get("key_findings", []))),
        limitations="\n".join(sections.get("limitations", [])).strip(),
    )


def _is_plain_colon_header(match: re.Match[str]) -> bool:
    return match.group("colon") is not None and not (match.group("hash") or match.group("bold"))


def _is_section_header(match: re.Match[str], in_marked_section: bool, previous_blank: bool) -> bool:
    if not _is_plain_colon_header(match):
        return True
    return previous_blank or not in_marked_section


def _fields_from_json(data: dict[str, Any]) -> dict[str, Any] | None:
    values = {field: _first_present(data, keys) for field, keys in _JSON_KEYS.items()}
    if all(value is None for value in values.values()):
        return None

    findings = values["key_findings"]
    if isinstance(findings, list):
        key_findings = tuple(str(item).strip() for item in findings if str(item).strip())
    else:
        key_findings = parse_bullets(_json_text(findings))

    return _build_fields(
        summary=_json_text(values["summary"]),
        methodology=_json_text(values["methodology"]),
        key_findings=key_findings,
        limitations=_json_text(values["limitations"]),
    )


def _build_fields(
    summary: str = "",
    methodology: str = "",
    key_findings: tuple[str, ...] = (),
    limitations: str = "",
) -> dict[str, Any]:
    return {
        "summary": summary,
        "methodology": methodology,
        "key_findings": key_findings,
        "limitations": limitations or None,
    }


def _first_present(data: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def _json_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, list):
        return "\n".join(str(item).strip() for item in value if str(item).strip())
    return str(value).strip()


def _string_items(value: Any) -> tuple[str, ...]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return ()
    items = (str(item).strip() for item in value if item is not None)
    return tuple(item for item in items if item)


def _technical_terms(value: Any) -> tuple[TechnicalTerm, ...]:
    terms: list[TechnicalTerm] = []
    for item in value if isinstance(value, list) else []:
        if isinstance(item, dict):
            term = _json_text(item.get("term"))
            definition = _json_text(item.get("definition")) or None
        else:
            term, definition = _json_text(item), None
        if term:
            terms.append(TechnicalTerm(term, definition))
    return tuple(terms)


def _parse_json_object(content: str) -> dict[str, Any] | None:
    """Parse possibly noisy model output into a JSON object, or None when there is none."""
    try:
        parsed = json.loads(content)
    except JSONDecodeError:
        parsed = _extract_first_json_object(content)
    return parsed if isinstance(parsed, dict) else None


def _extract_first_json_object(content: str) -> dict[str, Any] | None:
    """Extract the first decodable JSON object from an arbitrary string."""
    decoder = json.JSONDecoder()
    for index, char in enumerate(content):
        if char != "{":
            continue
        try:
            candidate, _ = decoder.raw_decode(content[index:])
        except JSONDecodeError:
            continue
        if isinstance(candidate, dict):
            return candidate
    return None
