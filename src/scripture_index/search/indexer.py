"""Corpus walking and index building.

One walk over the document source feeds any number of chapter writers. The
offline batch build feeds the search and concordance writers together; the
runtime managers reuse ``walk_corpus`` with a single writer, a cancellation
token and a yield between chapters. Sharing the walk and the writers is what
makes a runtime-built index equivalent to a snapshot built offline.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
import logging
from pathlib import Path
import time
from typing import Protocol

from scripture_index.adapters.document_source import AbstractDocumentSource
from scripture_index.domain.errors import BuildCancelledError, DocumentSourceError
from scripture_index.domain.model import ChapterContent
from scripture_index.search.cross_reference import CrossReferenceIndex
from scripture_index.search.index_data import (
    ConcordanceIndex,
    ConcordanceIndexWriter,
    SearchIndex,
    SearchIndexWriter,
)
from scripture_index.search.snapshots import utc_timestamp
from scripture_index.search.storage import (
    CONCORDANCE_SNAPSHOT_FILENAME,
    CROSS_REFERENCE_SNAPSHOT_FILENAME,
    SEARCH_SNAPSHOT_FILENAME,
    write_snapshot,
)


logger = logging.getLogger(__name__)

DEFAULT_FIRST_FAMILY_LAST_DOCUMENT = 39


class CancellationToken:
    """Cooperative cancellation flag checked at chapter boundaries."""

    def __init__(self) -> None:
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> bool:
        """Request cancellation; returns ``False`` if it was already requested."""
        if self._cancelled:
            return False
        self._cancelled = True
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise BuildCancelledError("build cancelled")


class ChapterWriter(Protocol):
    def add_chapter(self, chapter: ChapterContent) -> int: ...  # pragma: no cover - interface definition


@dataclass(frozen=True)
class WalkReport:
    """Outcome of a corpus walk."""

    chapters_indexed: int
    chapters_skipped: int
    errors: tuple[str, ...]
    duration_s: float


async def walk_corpus(
    source: AbstractDocumentSource,
    writers: Sequence[ChapterWriter],
    *,
    token: CancellationToken | None = None,
    yield_every: int = 1,
    on_chapter: Callable[[int, int], None] | None = None,
) -> WalkReport:
    """Feed every chapter of ``source`` to ``writers`` in canonical order.

    A chapter the source fails to produce, for any reason, is logged and
    skipped. Cancellation is checked before
    each chapter and once more at the end, raising ``BuildCancelledError``.
    """

    start = time.perf_counter()
    indexed = 0
    skipped = 0
    errors: list[str] = []

    for document_id, chapter_number in source.iter_chapter_refs():
        if token is not None:
            token.raise_if_cancelled()
        try:
            chapter = await source.get_chapter(document_id, chapter_number)
        except Exception as exc:  # noqa: BLE001 - an unreadable chapter is skipped, never fatal
            logger.warning("Skipping chapter %s:%s: %s", document_id, chapter_number, exc)
            if isinstance(exc, DocumentSourceError):
                errors.append(str(exc))
            else:
                errors.append(f"{document_id}:{chapter_number}: {exc!r}")
            skipped += 1
            continue

        for writer in writers:
            writer.add_chapter(chapter)
        indexed += 1
        if on_chapter is not None:
            on_chapter(document_id, chapter_number)
        if yield_every > 0 and indexed % yield_every == 0:
            await asyncio.sleep(0)

    if token is not None:
        token.raise_if_cancelled()

    return WalkReport(
        chapters_indexed=indexed,
        chapters_skipped=skipped,
        errors=tuple(errors),
        duration_s=time.perf_counter() - start,
    )


@dataclass(frozen=True)
class CorpusBuildResult:
    """Indexes produced by one batch walk."""

    search: SearchIndex
    concordance: ConcordanceIndex
    report: WalkReport


class CorpusIndexer:
    """Build search and concordance indexes from a document source."""

    def __init__(
        self,
        source: AbstractDocumentSource,
        *,
        first_family_last_document: int = DEFAULT_FIRST_FAMILY_LAST_DOCUMENT,
        yield_every_chapters: int = 1,
    ) -> None:
        self.source = source
        self.first_family_last_document = first_family_last_document
        self.yield_every_chapters = yield_every_chapters

    async def build(self, *, token: CancellationToken | None = None) -> CorpusBuildResult:
        """Walk the corpus once and produce both indexes."""

        search_writer = SearchIndexWriter()
        concordance_writer = ConcordanceIndexWriter(first_family_last_document=self.first_family_last_document)
        report = await walk_corpus(
            self.source,
            [search_writer, concordance_writer],
            token=token,
            yield_every=self.yield_every_chapters,
        )
        generated_at = utc_timestamp()
        result = CorpusBuildResult(
            search=search_writer.build(generated_at=generated_at),
            concordance=concordance_writer.build(generated_at=generated_at),
            report=report,
        )
        logger.info(
            "Built corpus indexes: %d chapters (%d skipped), %d verses, %d words, %d identifiers in %.2fs",
            report.chapters_indexed,
            report.chapters_skipped,
            result.search.stats.total_verses,
            result.search.stats.unique_words,
            result.concordance.stats.unique_identifiers,
            report.duration_s,
        )
        return result

    async def build_search_index(self, *, token: CancellationToken | None = None) -> SearchIndex:
        writer = SearchIndexWriter()
        report = await walk_corpus(self.source, [writer], token=token, yield_every=self.yield_every_chapters)
        index = writer.build()
        logger.info(
            "Built search index: %d chapters (%d skipped), %d words in %.2fs",
            report.chapters_indexed,
            report.chapters_skipped,
            index.stats.unique_words,
            report.duration_s,
        )
        return index

    async def build_concordance_index(self, *, token: CancellationToken | None = None) -> ConcordanceIndex:
        writer = ConcordanceIndexWriter(first_family_last_document=self.first_family_last_document)
        report = await walk_corpus(self.source, [writer], token=token, yield_every=self.yield_every_chapters)
        index = writer.build()
        logger.info(
            "Built concordance index: %d chapters (%d skipped), %d identifiers in %.2fs",
            report.chapters_indexed,
            report.chapters_skipped,
            index.stats.unique_identifiers,
            report.duration_s,
        )
        return index


def write_corpus_snapshots(
    result: CorpusBuildResult,
    output_dir: Path,
    *,
    cross_references: CrossReferenceIndex | None = None,
) -> dict[str, Path]:
    """Persist the build artifacts under ``output_dir``; returns name -> path."""

    paths = {
        "search": write_snapshot(output_dir / SEARCH_SNAPSHOT_FILENAME, result.search.to_snapshot()),
        "concordance": write_snapshot(output_dir / CONCORDANCE_SNAPSHOT_FILENAME, result.concordance.to_snapshot()),
    }
    if cross_references is not None:
        paths["cross_references"] = write_snapshot(
            output_dir / CROSS_REFERENCE_SNAPSHOT_FILENAME, cross_references.to_snapshot()
        )
    return paths
