"""Offline batch build of the scripture index snapshots.

Walks the XML corpus once, writes the search and concordance snapshots and,
when topical cross-reference data is supplied, the cross-reference snapshot.
Chapters that cannot be read are reported and skipped; the build still
succeeds.
"""

# ruff: noqa: T201  # CLI intentionally prints operator feedback

from __future__ import annotations

import argparse
import asyncio
from collections.abc import Sequence
from pathlib import Path
import sys
import textwrap

from scripture_index.adapters.xml_source import XmlDocumentSource
from scripture_index.config import Settings
from scripture_index.observability.context import bind_index_context
from scripture_index.observability.logging import configure_logging
from scripture_index.search.cross_reference import CrossReferenceIndex, read_cross_reference_file
from scripture_index.search.indexer import (
    DEFAULT_FIRST_FAMILY_LAST_DOCUMENT,
    CorpusBuildResult,
    CorpusIndexer,
    write_corpus_snapshots,
)


DEFAULT_OUTPUT_DIR = Path("indexes")
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="scripture-index-build",
        description="Build search, concordance and cross-reference snapshots",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent(
            """
            Examples:
              scripture-index-build --corpus-dir ./corpus
              scripture-index-build --corpus-dir ./corpus --tagged-corpus-dir ./tagged --output-dir ./indexes
              scripture-index-build --corpus-dir ./corpus --cross-references ./tsk.tsv
            """
        ).strip(),
    )
    parser.add_argument("--corpus-dir", type=Path, required=True, help="Directory of plain per-chapter XML files")
    parser.add_argument(
        "--tagged-corpus-dir",
        type=Path,
        default=None,
        help="Directory of word-tagged per-chapter XML files (enables the concordance)",
    )
    parser.add_argument(
        "--cross-references",
        type=Path,
        default=None,
        help="Tab separated topical cross-reference data to convert into a snapshot",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=DEFAULT_OUTPUT_DIR,
        help=f"Directory where snapshots are written (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "--first-family-last-document",
        type=int,
        default=DEFAULT_FIRST_FAMILY_LAST_DOCUMENT,
        help=f"Last document id whose bare identifiers are H-family (default: {DEFAULT_FIRST_FAMILY_LAST_DOCUMENT})",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level for build diagnostics (default: SCRIPTURE_INDEX_LOG_LEVEL or info)",
    )
    parser.add_argument(
        "--log-json",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Emit structured JSON logs (default: SCRIPTURE_INDEX_LOG_JSON or true)",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)
    settings = Settings()
    configure_logging(
        args.log_level or settings.log_level,
        json_output=settings.log_json if args.log_json is None else args.log_json,
    )

    if not args.corpus_dir.is_dir():
        print(f"Corpus directory not found: {args.corpus_dir}", file=sys.stderr)
        return EXIT_USAGE
    if args.tagged_corpus_dir is not None and not args.tagged_corpus_dir.is_dir():
        print(f"Tagged corpus directory not found: {args.tagged_corpus_dir}", file=sys.stderr)
        return EXIT_USAGE
    if args.first_family_last_document < 1:
        print("--first-family-last-document must be >= 1", file=sys.stderr)
        return EXIT_USAGE

    cross_references: CrossReferenceIndex | None = None
    if args.cross_references is not None:
        try:
            cross_references = read_cross_reference_file(args.cross_references)
        except OSError as exc:
            print(f"Cross reference data unreadable: {exc}", file=sys.stderr)
            return EXIT_FAILURE

    print("=== Scripture Index Build ===")
    print(f"Corpus: {args.corpus_dir}")
    print(f"Tagged corpus: {args.tagged_corpus_dir or '(none)'}")
    print(f"Output: {args.output_dir}")
    print()

    source = XmlDocumentSource(args.corpus_dir, tagged_dir=args.tagged_corpus_dir)
    indexer = CorpusIndexer(source, first_family_last_document=args.first_family_last_document)
    with bind_index_context("corpus"):
        result = asyncio.run(indexer.build())
    paths = write_corpus_snapshots(result, args.output_dir, cross_references=cross_references)

    _print_result(result, cross_references)
    print()
    for name, path in paths.items():
        print(f"Wrote {name:<17} {path}")
    return EXIT_OK


def _print_result(result: CorpusBuildResult, cross_references: CrossReferenceIndex | None) -> None:
    report = result.report
    search_stats = result.search.stats
    concordance_stats = result.concordance.stats
    print(f"Chapters indexed:   {report.chapters_indexed}")
    print(f"Chapters skipped:   {report.chapters_skipped}")
    print(f"Verses:             {search_stats.total_verses}")
    print(f"Unique words:       {search_stats.unique_words}")
    print(f"Prefixes:           {search_stats.prefix_count}")
    print(f"Tagged verses:      {concordance_stats.total_verses}")
    print(f"Identifiers:        {concordance_stats.unique_identifiers}")
    families = ", ".join(f"{family}={count}" for family, count in concordance_stats.family_counts.items())
    print(f"Families:           {families or '(none)'}")
    if cross_references is not None:
        print(f"Cross references:   {cross_references.stats.total_entries} entries")
    print(f"Duration:           {report.duration_s:.2f}s")
    if report.errors:
        print()
        print(f"Skipped chapters ({len(report.errors)}):")
        for error in report.errors[:20]:
            print(f"  - {error}")
        if len(report.errors) > 20:
            print(f"  ... {len(report.errors) - 20} more")


if __name__ == "__main__":
    sys.exit(main())
