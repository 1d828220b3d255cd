"""Prompt templates for analysis, summaries, keywords, research context and translation (English and Japanese)."""

from __future__ import annotations

from errors import TemplateRenderFailed

SUPPORTED_LANGUAGES: tuple[str, ...] = ("en", "ja")

LANGUAGE_NAMES = {"en": "English", "ja": "Japanese"}

_EN_SYSTEM = """You are an expert in academic paper analysis with deep knowledge across scientific fields.
Your job is to analyze research papers and extract structured information.

Guidelines:
- Be concise and precise
- Focus on the main contributions and what is novel
- Use technical terms appropriately
- Stay objective
- If the abstract does not contain some information, say "Not stated in the abstract"."""

_EN_ANALYSIS = """Analyze this academic paper and provide a structured analysis.

Title: {title}

Authors: {authors}

Abstract: {abstract}

Respond with a JSON object with exactly these keys:
{{
  "summary": "2-3 paragraph summary of the paper",
  "methodology": "technical approach, methods and techniques used",
  "key_findings": ["finding 1", "finding 2", "..."],
  "limitations": "weaknesses and open problems, or an empty string if none are stated"
}}

If you cannot produce JSON, use these section headers instead:
## Summary
## Methodology
## Key Findings
## Limitations"""

_EN_SUMMARY = """Analyze this academic paper and write a concise summary (2-3 paragraphs).

Title: {title}

Abstract: {abstract}

Focus on:
1. The main problem or research question
2. The proposed solution, method or approach
3. The key findings and contributions

Provide a clear, structured summary that captures the essence of the paper."""

_EN_TRANSLATION_SYSTEM = """You are a translator specializing in academic papers.
Preserve technical terminology and an academic tone."""

_EN_TRANSLATION = """Translate the following academic text into {target_language}.

Requirements:
- Keep technical terms accurate
- Keep the academic tone and style
- Keep the same paragraph structure

Text to translate:
{text}

Provide only the translation, without explanations."""

_EN_KEYWORDS = """Extract keywords, topics and technical terms from this academic paper.

Title: {title}

Abstract: {abstract}

Respond with a JSON object with this structure:
{{
  "keywords": ["keyword 1", "keyword 2", "..."],
  "topics": ["research topic 1", "research topic 2", "..."],
  "technical_terms": [
    {{"term": "technical term 1", "definition": "short definition"}},
    {{"term": "technical term 2", "definition": "short definition"}}
  ],
  "methods": ["method 1", "method 2", "..."],
  "datasets": ["dataset 1", "dataset 2", "..."]
}}

Guidelines:
- keywords: the main search keywords for the paper (5-10)
- topics: research fields and topics (3-5)
- technical_terms: important technical terms with a definition (about 5)
- methods: every method or technique used
- datasets: every dataset mentioned, or an empty list"""

_EN_RESEARCH_CONTEXT = """Analyze how this academic paper is positioned within its research field.

Title: {title}

Abstract: {abstract}

Keywords: {keywords}

Respond with a JSON object with this structure:
{{
  "primary_field": "main research field",
  "sub_fields": ["sub-field 1", "sub-field 2", "..."],
  "research_type": "one of: empirical, theoretical, survey, methodology, application",
  "positioning": "2-3 sentences on how the work fits into and advances the field",
  "related_directions": ["direction 1", "direction 2", "..."]
}}

Guidelines:
- sub_fields: 2-4 more specific sub-fields
- related_directions: 3-5 research directions this work could lead to"""

_JA_SYSTEM = """あなたは複数の科学分野に深い知識を持つ学術論文分析の専門家です。研究論文を分析し、構造化された情報を抽出することがあなたの役割です。

ガイドライン:
- 簡潔かつ正確に記述してください
- 主要な貢献と新規性のある点に焦点を当ててください
- 専門用語を適切に使用してください
- 分析において客観性を保ってください
- アブストラクトに情報がない場合は「アブストラクトに記載なし」と示してください"""

_JA_ANALYSIS = """この学術論文を包括的に分析し、構造化された分析結果を提供してください。

タイトル: {title}

著者: {authors}

アブストラクト: {abstract}

以下のキーを持つJSONオブジェクトとして回答してください:
{{
  "summary": "論文の2〜3段落のサマリー",
  "methodology": "技術的アプローチ、使用された手法と技術",
  "key_findings": ["発見1", "発見2", "..."],
  "limitations": "短所と今後の課題（記載がない場合は空文字）"
}}

JSONで回答できない場合は、次の見出しを使ってください:
## 概要
## 手法
## 主要な発見
## 制限事項"""

_JA_SUMMARY = """この学術論文を分析し、簡潔なサマリーを作成してください（2〜3段落）。

タイトル: {title}

アブストラクト: {abstract}

以下の点に焦点を当ててください:
1. 取り組んでいる主要な問題または研究課題
2. 提案されている解決策、手法、またはアプローチ
3. 主要な発見と貢献

論文の本質を捉えた、明確で構造化されたサマリーを提供してください。"""

_JA_TRANSLATION_SYSTEM = """あなたは英語の学術論文を日本語に翻訳する専門の翻訳者です。専門用語の正確性と学術的なトーンを維持してください。"""

_JA_TRANSLATION = """以下の学術テキストを{target_language}に翻訳してください。

要件:
- 専門用語の正確性を維持
- 学術的なトーンとスタイルを保持
- 同じ段落構造を維持

翻訳するテキスト:
{text}

翻訳のみを提供し、説明は不要です。"""

_JA_KEYWORDS = """以下の学術論文からキーワード、トピック、技術用語を抽出してください。

タイトル: {title}

アブストラクト: {abstract}

以下の構造のJSONオブジェクトとして出力してください:
{{
  "keywords": ["主要キーワード1", "主要キーワード2", "..."],
  "topics": ["研究トピック1", "研究トピック2", "..."],
  "technical_terms": [
    {{"term": "技術用語1", "definition": "簡潔な定義"}},
    {{"term": "技術用語2", "definition": "簡潔な定義"}}
  ],
  "methods": ["手法1", "手法2", "..."],
  "datasets": ["データセット1", "データセット2", "..."]
}}

ガイドライン:
- keywords: 論文の主要な検索キーワード（5〜10個）
- topics: 研究分野・トピック（3〜5個）
- technical_terms: 重要な技術用語と定義（5個程度）
- methods: 使用されている手法・技術（該当するものすべて）
- datasets: 言及されているデータセット（該当するものすべて、なければ空配列）"""

_JA_RESEARCH_CONTEXT = """以下の学術論文の研究分野における位置づけを分析してください。

タイトル: {title}

アブストラクト: {abstract}

キーワード: {keywords}

以下の構造のJSONオブジェクトとして出力してください:
{{
  "primary_field": "主要研究分野",
  "sub_fields": ["サブ分野1", "サブ分野2", "..."],
  "research_type": "empirical, theoretical, survey, methodology, application のいずれか",
  "positioning": "この研究の分野における位置づけの説明（2〜3文）",
  "related_directions": ["関連研究方向1", "関連研究方向2", "..."]
}}

ガイドライン:
- sub_fields: より具体的なサブ分野（2〜4個）
- related_directions: この研究から発展しうる関連研究方向（3〜5個）"""

TEMPLATES: dict[str, dict[str, str]] = {
    "en": {
        "system": _EN_SYSTEM,
        "analysis": _EN_ANALYSIS,
        "summary": _EN_SUMMARY,
        "translation_system": _EN_TRANSLATION_SYSTEM,
        "translation": _EN_TRANSLATION,
        "keywords": _EN_KEYWORDS,
        "research_context": _EN_RESEARCH_CONTEXT,
    },
    "ja": {
        "system": _JA_SYSTEM,
        "analysis": _JA_ANALYSIS,
        "summary": _JA_SUMMARY,
        "translation_system": _JA_TRANSLATION_SYSTEM,
        "translation": _JA_TRANSLATION,
        "keywords": _JA_KEYWORDS,
        "research_context": _JA_RESEARCH_CONTEXT,
    },
}

_NOT_AVAILABLE = {"en": "Not available.", "ja": "記載なし"}


def render_prompt(name: str, language: str = "en", **fields: object) -> str:
    """Fill template ``name`` in ``language``.

    Raises TemplateRenderFailed for an unknown language or template, or when a
    placeholder has no value in ``fields``.
    """
    templates = TEMPLATES.get(language)
    if templates is None:
        raise TemplateRenderFailed(f"unsupported prompt language {language!r}")
    template = templates.get(name)
    if template is None:
        raise TemplateRenderFailed(f"unknown prompt template {name!r}")
    try:
        return template.format(**fields)
    except (KeyError, IndexError) as exc:
        raise TemplateRenderFailed(f"template {language}/{name} is missing a value for {exc}") from exc


def not_available(language: str) -> str:
    return _NOT_AVAILABLE.get(language, _NOT_AVAILABLE["en"])


def language_name(code: str) -> str:
    """Map "ja" to "Japanese"; unknown codes pass through unchanged."""
    return LANGUAGE_NAMES.get(code, code)
