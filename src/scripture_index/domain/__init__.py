"""Domain layer - value objects and errors with no infrastructure dependencies."""

from scripture_index.domain.errors import (
    BuildCancelledError,
    ChapterUnavailableError,
    DocumentSourceError,
    ScriptureIndexError,
    SnapshotInvalidError,
)
from scripture_index.domain.model import (
    ChapterContent,
    CrossReference,
    CrossReferenceGroup,
    DocumentInfo,
    IndexStatus,
    Location,
    ResultEntry,
    SearchResponse,
    TaggedSpan,
    VerseContent,
)


__all__ = [
    "BuildCancelledError",
    "ChapterContent",
    "ChapterUnavailableError",
    "CrossReference",
    "CrossReferenceGroup",
    "DocumentInfo",
    "DocumentSourceError",
    "IndexStatus",
    "Location",
    "ResultEntry",
    "ScriptureIndexError",
    "SearchResponse",
    "SnapshotInvalidError",
    "TaggedSpan",
    "VerseContent",
]
