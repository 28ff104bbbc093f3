"""Exception hierarchy for the scripture index.

None of these are meant to escape the public services: chapter failures are
skipped, invalid snapshots are treated as absent and cancelled builds reset the
owning manager. They exist so each layer can signal the condition precisely.
"""


class ScriptureIndexError(Exception):
    """Base error for the package."""


class DocumentSourceError(ScriptureIndexError):
    """Raised by document sources when corpus content cannot be produced."""


class ChapterUnavailableError(DocumentSourceError):
    """Raised when a single chapter is missing or unreadable."""

    def __init__(self, document_id: int, chapter: int, reason: str) -> None:
        super().__init__(f"Chapter {document_id}:{chapter} unavailable: {reason}")
        self.document_id = document_id
        self.chapter = chapter
        self.reason = reason


class SnapshotInvalidError(ScriptureIndexError):
    """Raised when a serialized snapshot is malformed or has the wrong version."""


class BuildCancelledError(ScriptureIndexError):
    """Raised inside a corpus walk once cancellation has been requested."""
