"""CLI entrypoint: search, fetch, analyze and export academic papers."""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from dotenv import load_dotenv

from config import Config
from csv_sink import append_analysis_entry, write_papers
from errors import PaperInterpreterError
from export import DEFAULT_MAX_CITATIONS, build_export, write_export
from llm_client import ProviderKind, create_provider
from models import PaperSource
from paper_analyzer import PaperAnalyzer
from pdf_text import PdfTextExtractor, try_extract_text
from prompts import SUPPORTED_LANGUAGES
from report import render_analysis_markdown, render_analysis_text, render_paper_text, render_search_result_text
from search import PaperSearcher
from search_params import SearchParams

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _add_id_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--arxiv-id", help="arXiv identifier, e.g. 1706.03762 or an arxiv.org URL")
    group.add_argument("--ss-id", help="Semantic Scholar paper id")


def _add_provider_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--provider", choices=[kind.value for kind in ProviderKind], help="LLM provider (default: LLM_PROVIDER)")
    parser.add_argument("--model", help="Model override (default: LLM_MODEL or the provider's default)")
    parser.add_argument("--language", choices=SUPPORTED_LANGUAGES, help="Analysis language (default: ANALYSIS_LANGUAGE)")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(
        prog="paper-interpreter",
        description="Search arXiv and Semantic Scholar, then analyze papers with an LLM",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=(os.getenv("LOG_LEVEL") or "WARNING").upper(),
        help="Logging verbosity (default: LOG_LEVEL or WARNING)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    search = subparsers.add_parser("search", help="Search papers across sources")
    search.add_argument("query", nargs="?", help="Free-text query")
    search.add_argument("--title", help="Title must contain this text")
    search.add_argument("--author", help="Author name filter")
    search.add_argument("--abstract", help="Abstract must contain this text")
    search.add_argument("--category", action="append", default=[], help="arXiv category, e.g. cs.CL (repeatable)")
    search.add_argument("--year", help="Year or range, e.g. 2023 or 2020-2023")
    search.add_argument("--min-citations", type=int, help="Minimum citation count (Semantic Scholar only)")
    search.add_argument("--max-results", type=int, help="Maximum number of papers (default: DEFAULT_MAX_RESULTS)")
    search.add_argument(
        "--source",
        choices=["all", *(source.value for source in PaperSource)],
        default="all",
        help="Restrict the search to one source",
    )
    search.add_argument("--format", choices=["text", "json", "csv"], default="text")
    search.set_defaults(handler=run_search)

    fetch = subparsers.add_parser("fetch", help="Fetch one paper by id")
    _add_id_arguments(fetch)
    fetch.add_argument("--no-enrich", action="store_true", help="Skip Semantic Scholar enrichment of arXiv papers")
    fetch.add_argument("--extract-text", action="store_true", help="Also download the PDF and extract its full text")
    fetch.add_argument("--format", choices=["text", "json"], default="text")
    fetch.set_defaults(handler=run_fetch)

    analyze = subparsers.add_parser("analyze", help="Fetch one paper and analyze it with an LLM")
    _add_id_arguments(analyze)
    _add_provider_arguments(analyze)
    analyze.add_argument("--summary-only", action="store_true", help="Only produce a free-text summary")
    analyze.add_argument("--format", choices=["text", "json", "markdown"], default="text")
    analyze.add_argument("--csv-out", help="Also append the analysis as a row to this CSV file")
    analyze.set_defaults(handler=run_analyze)

    export = subparsers.add_parser("export", help="Export one paper as a JSON document")
    _add_id_arguments(export)
    _add_provider_arguments(export)
    export.add_argument("--analyze", action="store_true", help="Include an LLM analysis")
    export.add_argument("--extract-keywords", action="store_true", help="Include LLM keywords and research context")
    export.add_argument("--extract-text", action="store_true", help="Include the PDF full text")
    export.add_argument("--citations", action="store_true", help="Include citing papers")
    export.add_argument("--references", action="store_true", help="Include referenced papers")
    export.add_argument("--max-citations", type=int, default=DEFAULT_MAX_CITATIONS)
    export.add_argument("-o", "--output", help="Write to this file instead of stdout")
    export.add_argument("--compact", action="store_true", help="Disable JSON indentation")
    export.set_defaults(handler=run_export)

    return parser.parse_args(argv)


def build_params(args: argparse.Namespace, config: Config) -> SearchParams:
    max_results = args.max_results if args.max_results is not None else config.default_max_results
    params = SearchParams(max_results=max_results)
    if args.query:
        params = params.with_query(args.query)
    if args.title:
        params = params.with_title(args.title)
    if args.author:
        params = params.with_author(args.author)
    if args.abstract:
        params = params.with_abstract(args.abstract)
    for category in args.category:
        params = params.with_category(category)
    if args.year:
        params = params.with_year(args.year)
    if args.min_citations is not None:
        params = params.with_min_citations(args.min_citations)
    if args.source != "all":
        params = params.with_sources(args.source)
    return params


def build_analyzer(args: argparse.Namespace, config: Config) -> PaperAnalyzer:
    """Construct the provider first so a missing credential fails before any search request."""
    model = args.model or config.llm_model
    provider = create_provider(args.provider or config.llm_provider, model=model)
    return PaperAnalyzer(provider, model=model, language=args.language or config.language)


def run_search(args: argparse.Namespace, config: Config) -> int:
    params = build_params(args, config)
    result = PaperSearcher.from_config(config).search(params)
    logging.info("Search complete: returned=%s total=%s", len(result), result.total_count)

    if args.format == "json":
        print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    elif args.format == "csv":
        write_papers(result.papers, sys.stdout)
    else:
        print(render_search_result_text(result))
    return 0


def run_fetch(args: argparse.Namespace, config: Config) -> int:
    paper = PaperSearcher.from_config(config).fetch_paper(
        arxiv_id=args.arxiv_id,
        ss_id=args.ss_id,
        enrich=not args.no_enrich,
    )
    text = try_extract_text(paper, PdfTextExtractor(timeout=config.request_timeout)) if args.extract_text else None

    if args.format == "json":
        payload = paper.to_dict()
        if args.extract_text:
            payload = {"paper": payload, "extracted_text": text.to_dict() if text else None}
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        print(render_paper_text(paper, full_abstract=True))
        if text is not None:
            print(f"\nFull text ({len(text.pages)} page(s)):\n")
            print(text.plain_text)
    return 0


def run_analyze(args: argparse.Namespace, config: Config) -> int:
    analyzer = build_analyzer(args, config)
    paper = PaperSearcher.from_config(config).fetch_paper(arxiv_id=args.arxiv_id, ss_id=args.ss_id)

    if args.summary_only:
        summary = analyzer.summarize(paper)
        if args.format == "json":
            print(json.dumps({"paper_id": paper.id, "summary": summary}, ensure_ascii=False, indent=2))
        else:
            print(summary)
        return 0

    analysis = analyzer.analyze(paper)
    if args.csv_out:
        append_analysis_entry(paper, analysis, args.csv_out)

    if args.format == "json":
        print(json.dumps({"paper": paper.to_dict(), "analysis": analysis.to_dict()}, ensure_ascii=False, indent=2))
    elif args.format == "markdown":
        print(render_analysis_markdown(paper, analysis), end="")
    else:
        print(render_analysis_text(paper, analysis))
    return 0


def run_export(args: argparse.Namespace, config: Config) -> int:
    analyzer = build_analyzer(args, config) if args.analyze or args.extract_keywords else None
    document = build_export(
        PaperSearcher.from_config(config),
        arxiv_id=args.arxiv_id,
        ss_id=args.ss_id,
        analyzer=analyzer,
        include_analysis=args.analyze,
        include_keywords=args.extract_keywords,
        text_extractor=PdfTextExtractor(timeout=config.request_timeout) if args.extract_text else None,
        include_citations=args.citations,
        include_references=args.references,
        max_citations=args.max_citations,
    )
    write_export(document, path=args.output, compact=args.compact)
    for warning in document["export_metadata"]["warnings"]:
        logging.warning("Export warning: %s", warning)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Initialize config and dispatch to the selected subcommand."""
    load_dotenv()
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(message)s")

    try:
        config = Config.from_env()
        return args.handler(args, config)
    except PaperInterpreterError as exc:
        logging.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
