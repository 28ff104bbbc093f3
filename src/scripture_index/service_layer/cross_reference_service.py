"""Topical cross-reference lookups."""

import logging

from scripture_index.domain.model import CrossReferenceGroup, Location
from scripture_index.search.cross_reference import CrossReferenceIndex
from scripture_index.service_layer.index_manager import IndexManager


logger = logging.getLogger(__name__)


class CrossReferenceLookup:
    """Map a location to its topic-grouped related locations."""

    def __init__(self, manager: IndexManager[CrossReferenceIndex]):
        self.manager = manager

    async def lookup(self, location: Location) -> list[CrossReferenceGroup]:
        index = await self._index()
        return list(index.groups_for(location))

    async def lookup_chapter(self, document_id: int, chapter: int) -> dict[int, list[CrossReferenceGroup]]:
        """Groups for every verse of a chapter that has any, keyed by verse."""
        index = await self._index()
        return index.chapter_groups(document_id, chapter)

    async def _index(self) -> CrossReferenceIndex:
        index = await self.manager.ensure_ready()
        if index is None:
            logger.warning("Cross reference index unavailable; returning no references")
            return CrossReferenceIndex.empty()
        return index
