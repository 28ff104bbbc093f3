"""Lexical identifier (concordance) lookups."""

import logging

from scripture_index.domain.model import Location, ResultEntry
from scripture_index.search.analyzers import lookup_keys
from scripture_index.search.index_data import ConcordanceIndex
from scripture_index.service_layer.index_manager import IndexManager


logger = logging.getLogger(__name__)


class ConcordanceLookup:
    """Resolve identifiers such as ``H430`` or a bare ``430`` to verses.

    Unlike free-text search, a lookup loads (or builds) the concordance index
    on first use. Text always comes from the concordance's own verse cache.
    """

    def __init__(
        self,
        manager: IndexManager[ConcordanceIndex],
        *,
        document_names: dict[int, str] | None = None,
    ):
        self.manager = manager
        self.document_names = dict(document_names or {})
        self._memo: dict[tuple[str, ...], list[ResultEntry]] = {}

    async def lookup_by_identifier(self, identifier: str) -> list[ResultEntry]:
        """Return every verse tagged with ``identifier`` in canonical order.

        A bare number matches both tag families. Unknown identifiers give an
        empty list.
        """
        keys = tuple(lookup_keys(identifier))
        if not keys:
            return []
        cached = self._memo.get(keys)
        if cached is not None:
            return list(cached)

        index = await self.manager.ensure_ready()
        if index is None:
            logger.warning("Concordance index unavailable; lookup for %r returns no results", identifier)
            return []

        locations: set[Location] = set()
        for key in keys:
            locations.update(index.locations_for(key))

        results = [
            ResultEntry.at(location, index.text_for(location) or "", self.document_names.get(location.document_id))
            for location in sorted(locations)
        ]
        if results:
            self._memo[keys] = results
        return list(results)
