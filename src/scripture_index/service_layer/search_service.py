"""Free-text query engine.

Indexed path: tokenize the query the same way the builder does, widen each
token to every indexed word containing it, intersect the per-token match sets
(AND semantics), verify survivors against the verse cache, then sort
canonically and paginate. Without an index the engine scans the document
source directly; results are identical, only slower.
"""

import asyncio
from collections.abc import Iterable
import logging

from scripture_index.adapters.document_source import AbstractDocumentSource
from scripture_index.domain.model import Location, ResultEntry, SearchResponse
from scripture_index.search.analyzers import normalize_query, tokenize
from scripture_index.search.index_data import SearchIndex
from scripture_index.service_layer.index_manager import IndexManager


logger = logging.getLogger(__name__)


class QueryEngine:
    """Answer AND queries against the search index or the fallback scan.

    The engine never starts a build itself: it waits for an in-flight build,
    reads a ready index, or falls back to scanning the source when the manager
    is idle.
    """

    def __init__(
        self,
        manager: IndexManager[SearchIndex],
        source: AbstractDocumentSource,
        *,
        default_max_results: int = 100,
    ):
        """Initialize the engine.

        Args:
            manager: Lifecycle owner of the search index
            source: Document source used by the fallback scan
            default_max_results: Page size when callers pass no ``max_results`` (0 = unlimited)
        """
        self.manager = manager
        self.source = source
        self.default_max_results = default_max_results
        self._document_names = source.document_names()

    async def search(self, query: str, max_results: int | None = None) -> SearchResponse:
        """Search for verses matching every word of ``query``.

        Args:
            query: Free-text query; case and punctuation are ignored
            max_results: Maximum results to materialize, ``0`` for all

        Returns:
            SearchResponse with canonical-order results and the exact total count
        """
        if max_results is None:
            max_results = self.default_max_results
        if max_results < 0:
            raise ValueError(f"max_results must be >= 0, got {max_results}")

        normalized = normalize_query(query)
        if not normalized:
            return SearchResponse.empty()

        index = await self.manager.wait_for_index()
        if index is None:
            logger.debug("Search index unavailable; scanning the document source for %r", normalized)
            return await self._fallback_scan(normalized, max_results)
        return self._search_index(index, normalized, max_results)

    async def search_all(self, query: str) -> SearchResponse:
        """Return every match for ``query``."""
        return await self.search(query, 0)

    def _search_index(self, index: SearchIndex, normalized: str, max_results: int) -> SearchResponse:
        tokens = list(dict.fromkeys(tokenize(normalized)))
        if not tokens:
            return SearchResponse.empty()

        match_sets = sorted((index.matches_for(token) for token in tokens), key=len)
        candidates = match_sets[0]
        for matches in match_sets[1:]:
            candidates &= matches
            if not candidates:
                return SearchResponse.empty()

        verified: list[tuple[Location, str]] = []
        for location in sorted(candidates):
            text = index.text_for(location)
            if text is None:
                continue
            lowered = text.lower()
            if normalized in lowered or all(token in lowered for token in tokens):
                verified.append((location, text))

        logger.debug("Query %r: %d candidates, %d verified", normalized, len(candidates), len(verified))
        return self._paginate(verified, len(verified), max_results)

    async def _fallback_scan(self, normalized: str, max_results: int) -> SearchResponse:
        matches: list[tuple[Location, str]] = []
        total = 0
        for document_id, chapter_number in self.source.iter_chapter_refs():
            try:
                chapter = await self.source.get_chapter(document_id, chapter_number)
            except Exception as exc:  # noqa: BLE001 - an unreadable chapter is skipped, never fatal
                logger.warning("Fallback scan skipping %s:%s: %s", document_id, chapter_number, exc)
                continue
            for verse in sorted(chapter.verses, key=lambda verse: verse.verse_number):
                if normalized not in verse.text.lower():
                    continue
                total += 1
                if max_results == 0 or len(matches) < max_results:
                    matches.append((chapter.location_of(verse), verse.text))
            await asyncio.sleep(0)
        return self._paginate(matches, total, max_results)

    def _paginate(
        self,
        matches: Iterable[tuple[Location, str]],
        total: int,
        max_results: int,
    ) -> SearchResponse:
        page = list(matches)
        if max_results > 0:
            page = page[:max_results]
        results = [
            ResultEntry.at(location, text, self._document_names.get(location.document_id)) for location, text in page
        ]
        return SearchResponse(results=results, total_count=total, has_more=total > len(results))
