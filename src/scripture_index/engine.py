"""Scripture search engine facade.

Wires one ``IndexManager`` per index (search, concordance, cross references)
to the services that read them. Everything is constructed explicitly; there is
no module-level index state.

Interface:
- warm_up() -> load or build the indexes, awaitable at startup
- search(query, max_results) / search_all(query) -> SearchResponse
- lookup_by_identifier(identifier) -> list[ResultEntry]
- cross_references(location) / chapter_cross_references(document_id, chapter)
- cancel_builds() / status()
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from scripture_index.adapters.document_source import AbstractDocumentSource
from scripture_index.adapters.xml_source import XmlDocumentSource
from scripture_index.config import Settings
from scripture_index.domain.model import CrossReferenceGroup, Location, ResultEntry, SearchResponse
from scripture_index.search.cross_reference import CrossReferenceIndex, read_cross_reference_file
from scripture_index.search.index_data import ConcordanceIndex, SearchIndex
from scripture_index.search.indexer import CancellationToken, CorpusIndexer
from scripture_index.search.snapshots import ConcordanceSnapshot, CrossReferenceSnapshot, SearchSnapshot
from scripture_index.search.storage import load_snapshot
from scripture_index.service_layer.concordance_service import ConcordanceLookup
from scripture_index.service_layer.cross_reference_service import CrossReferenceLookup
from scripture_index.service_layer.index_manager import IndexManager
from scripture_index.service_layer.search_service import QueryEngine


logger = logging.getLogger(__name__)


class ScriptureSearchEngine:
    """Search, concordance and cross-reference access over one corpus."""

    def __init__(self, source: AbstractDocumentSource, settings: Settings | None = None):
        """Initialize the engine.

        Args:
            source: Document source for lazy rebuilds and the fallback scan
            settings: Snapshot paths and indexing options (defaults when omitted)
        """
        self.settings = settings or Settings()
        self.source = source
        self._snapshot_paths = self.settings.snapshot_paths()
        self.indexer = CorpusIndexer(
            source,
            first_family_last_document=self.settings.first_family_last_document,
            yield_every_chapters=self.settings.yield_every_chapters,
        )

        self.search_manager: IndexManager[SearchIndex] = IndexManager(
            "search",
            load_snapshot=self._load_search_snapshot,
            build_index=self._build_search_index,
        )
        self.concordance_manager: IndexManager[ConcordanceIndex] = IndexManager(
            "concordance",
            load_snapshot=self._load_concordance_snapshot,
            build_index=self._build_concordance_index,
        )
        self.cross_reference_manager: IndexManager[CrossReferenceIndex] = IndexManager(
            "cross_references",
            load_snapshot=self._load_cross_reference_snapshot,
            build_index=self._build_cross_reference_index,
        )

        document_names = source.document_names()
        self.query_engine = QueryEngine(
            self.search_manager,
            source,
            default_max_results=self.settings.default_max_results,
        )
        self.concordance = ConcordanceLookup(self.concordance_manager, document_names=document_names)
        self.cross_reference_lookup = CrossReferenceLookup(self.cross_reference_manager)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        source: AbstractDocumentSource | None = None,
    ) -> ScriptureSearchEngine:
        """Build an engine, creating an ``XmlDocumentSource`` from settings when needed."""
        if source is None:
            if settings.corpus_dir is None:
                raise ValueError("corpus_dir must be configured when no document source is supplied")
            source = XmlDocumentSource(settings.corpus_dir, tagged_dir=settings.tagged_corpus_dir)
        return cls(source, settings)

    @property
    def managers(self) -> tuple[IndexManager[Any], ...]:
        return (self.search_manager, self.concordance_manager, self.cross_reference_manager)

    async def warm_up(
        self,
        *,
        search: bool = True,
        concordance: bool = True,
        cross_references: bool = True,
    ) -> dict[str, str]:
        """Load or build the selected indexes concurrently; returns name -> status."""
        selected = [
            manager
            for manager, enabled in zip(self.managers, (search, concordance, cross_references), strict=True)
            if enabled
        ]
        await asyncio.gather(*(manager.ensure_ready() for manager in selected))
        return {manager.name: manager.status.value for manager in selected}

    async def search(self, query: str, max_results: int | None = None) -> SearchResponse:
        return await self.query_engine.search(query, max_results)

    async def search_all(self, query: str) -> SearchResponse:
        return await self.query_engine.search_all(query)

    async def lookup_by_identifier(self, identifier: str) -> list[ResultEntry]:
        return await self.concordance.lookup_by_identifier(identifier)

    async def cross_references(self, location: Location) -> list[CrossReferenceGroup]:
        return await self.cross_reference_lookup.lookup(location)

    async def chapter_cross_references(self, document_id: int, chapter: int) -> dict[int, list[CrossReferenceGroup]]:
        return await self.cross_reference_lookup.lookup_chapter(document_id, chapter)

    def cancel_builds(self) -> dict[str, bool]:
        """Cancel every in-flight build; returns which managers were signalled."""
        return {manager.name: manager.cancel() for manager in self.managers}

    def status(self) -> dict[str, dict[str, Any]]:
        return {manager.name: manager.status_snapshot() for manager in self.managers}

    # --- loaders and builders handed to the managers ------------------------

    def _load_search_snapshot(self) -> SearchIndex | None:
        snapshot = load_snapshot(self._snapshot_paths["search"], SearchSnapshot)
        return SearchIndex.from_snapshot(snapshot) if snapshot is not None else None

    def _load_concordance_snapshot(self) -> ConcordanceIndex | None:
        snapshot = load_snapshot(self._snapshot_paths["concordance"], ConcordanceSnapshot)
        return ConcordanceIndex.from_snapshot(snapshot) if snapshot is not None else None

    def _load_cross_reference_snapshot(self) -> CrossReferenceIndex | None:
        snapshot = load_snapshot(self._snapshot_paths["cross_references"], CrossReferenceSnapshot)
        return CrossReferenceIndex.from_snapshot(snapshot) if snapshot is not None else None

    async def _build_search_index(self, token: CancellationToken) -> SearchIndex:
        return await self.indexer.build_search_index(token=token)

    async def _build_concordance_index(self, token: CancellationToken) -> ConcordanceIndex:
        return await self.indexer.build_concordance_index(token=token)

    async def _build_cross_reference_index(self, token: CancellationToken) -> CrossReferenceIndex:
        path: Path | None = self.settings.cross_reference_source_path
        if path is None:
            logger.info("No cross reference data configured; using an empty index")
            return CrossReferenceIndex.empty()
        try:
            index = await asyncio.to_thread(read_cross_reference_file, path)
        except OSError as exc:
            logger.warning("Cross reference data %s unreadable (%s); using an empty index", path, exc)
            return CrossReferenceIndex.empty()
        token.raise_if_cancelled()
        return index
