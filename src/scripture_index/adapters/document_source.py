"""Document source abstractions.

The index engine consumes the corpus through ``AbstractDocumentSource`` and
never assumes where chapters come from. A source lists its documents in
canonical order and serves one chapter at a time; a chapter that cannot be
produced raises ``ChapterUnavailableError`` and the engine skips it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
import logging

from scripture_index.domain.errors import ChapterUnavailableError
from scripture_index.domain.model import ChapterContent, DocumentInfo, TaggedSpan, VerseContent


logger = logging.getLogger(__name__)


CANONICAL_DOCUMENTS: tuple[DocumentInfo, ...] = tuple(
    DocumentInfo(document_id, name, chapters)
    for document_id, (name, chapters) in enumerate(
        [
            ("Genesis", 50), ("Exodus", 40), ("Leviticus", 27), ("Numbers", 36), ("Deuteronomy", 34),
            ("Joshua", 24), ("Judges", 21), ("Ruth", 4), ("1 Samuel", 31), ("2 Samuel", 24),
            ("1 Kings", 22), ("2 Kings", 25), ("1 Chronicles", 29), ("2 Chronicles", 36), ("Ezra", 10),
            ("Nehemiah", 13), ("Esther", 10), ("Job", 42), ("Psalms", 150), ("Proverbs", 31),
            ("Ecclesiastes", 12), ("Song of Solomon", 8), ("Isaiah", 66), ("Jeremiah", 52),
            ("Lamentations", 5), ("Ezekiel", 48), ("Daniel", 12), ("Hosea", 14), ("Joel", 3),
            ("Amos", 9), ("Obadiah", 1), ("Jonah", 4), ("Micah", 7), ("Nahum", 3), ("Habakkuk", 3),
            ("Zephaniah", 3), ("Haggai", 2), ("Zechariah", 14), ("Malachi", 4),
            ("Matthew", 28), ("Mark", 16), ("Luke", 24), ("John", 21), ("Acts", 28), ("Romans", 16),
            ("1 Corinthians", 16), ("2 Corinthians", 13), ("Galatians", 6), ("Ephesians", 6),
            ("Philippians", 4), ("Colossians", 4), ("1 Thessalonians", 5), ("2 Thessalonians", 3),
            ("1 Timothy", 6), ("2 Timothy", 4), ("Titus", 3), ("Philemon", 1), ("Hebrews", 13),
            ("James", 5), ("1 Peter", 5), ("2 Peter", 3), ("1 John", 5), ("2 John", 1), ("3 John", 1),
            ("Jude", 1), ("Revelation", 22),
        ],
        start=1,
    )
)  # fmt: skip


class AbstractDocumentSource(ABC):
    """Read-only, side-effect free access to the corpus."""

    @abstractmethod
    def documents(self) -> Sequence[DocumentInfo]:
        """Documents in canonical order."""
        raise NotImplementedError

    @abstractmethod
    async def get_chapter(self, document_id: int, chapter: int) -> ChapterContent:
        """Return one chapter or raise ``ChapterUnavailableError``."""
        raise NotImplementedError

    def iter_chapter_refs(self) -> Iterator[tuple[int, int]]:
        """Yield ``(document_id, chapter)`` for every chapter in canonical order."""

        for document in sorted(self.documents(), key=lambda info: info.document_id):
            for chapter in range(1, document.chapter_count + 1):
                yield document.document_id, chapter

    def document_names(self) -> dict[int, str]:
        """Map of document id to display name."""
        return {document.document_id: document.name for document in self.documents()}


VerseData = str | tuple[str, Sequence[tuple[str, str | None]]]


class InMemoryDocumentSource(AbstractDocumentSource):
    """Dict-backed source for tests and small embedded corpora.

    ``chapters`` maps ``(document_id, chapter)`` to ``{verse_number: data}`` where
    ``data`` is either the plain verse text or ``(text, [(span_text, identifier), ...])``.
    """

    def __init__(
        self,
        documents: Sequence[DocumentInfo],
        chapters: Mapping[tuple[int, int], Mapping[int, VerseData]],
        *,
        fail_on: set[tuple[int, int]] | None = None,
    ) -> None:
        self._documents = tuple(documents)
        self._chapters = {key: dict(value) for key, value in chapters.items()}
        self.fail_on = set(fail_on or ())
        self.calls: list[tuple[int, int]] = []

    def documents(self) -> Sequence[DocumentInfo]:
        return self._documents

    async def get_chapter(self, document_id: int, chapter: int) -> ChapterContent:
        self.calls.append((document_id, chapter))
        key = (document_id, chapter)
        if key in self.fail_on:
            raise ChapterUnavailableError(document_id, chapter, "simulated failure")
        verses = self._chapters.get(key)
        if verses is None:
            raise ChapterUnavailableError(document_id, chapter, "not present")
        return ChapterContent(
            document_id=document_id,
            chapter=chapter,
            verses=tuple(_verse_from_data(number, data) for number, data in sorted(verses.items())),
        )


def _verse_from_data(number: int, data: VerseData) -> VerseContent:
    if isinstance(data, str):
        return VerseContent(verse_number=number, text=data)
    text, spans = data
    return VerseContent(
        verse_number=number,
        text=text,
        tagged_spans=tuple(TaggedSpan(text=span_text, identifier=identifier) for span_text, identifier in spans),
    )
