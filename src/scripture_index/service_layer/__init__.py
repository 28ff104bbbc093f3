"""Service layer - index lifecycle and query orchestration.

- index_manager: ``none -> building -> ready`` lifecycle with cancellation
- search_service: AND queries with pagination and the fallback scan
- concordance_service: lexical identifier lookups
- cross_reference_service: topical cross-reference lookups
"""

from .concordance_service import ConcordanceLookup
from .cross_reference_service import CrossReferenceLookup
from .index_manager import IndexManager
from .search_service import QueryEngine


__all__ = [
    "ConcordanceLookup",
    "CrossReferenceLookup",
    "IndexManager",
    "QueryEngine",
]
