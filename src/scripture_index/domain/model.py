"""Core value objects for the scripture index.

Following the same Cosmic Python split as the rest of the package:
- ``Location`` is a tiny hashable coordinate used as a dictionary key in every
  index, so it is a slotted frozen dataclass rather than a pydantic model.
- Result objects handed to callers are immutable pydantic models that serialize
  to the camelCase wire shape (``documentId``, ``totalCount``...).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class IndexStatus(str, Enum):
    """Lifecycle of a runtime index."""

    NONE = "none"
    BUILDING = "building"
    READY = "ready"


@dataclass(frozen=True, slots=True, order=True)
class Location:
    """A ``(document_id, chapter, verse)`` coordinate.

    Field order defines canonical order, so ``sorted()`` on locations sorts by
    document, then chapter, then verse.
    """

    document_id: int
    chapter: int
    verse: int

    @property
    def key(self) -> str:
        """Verse cache key (``"document:chapter:verse"``)."""
        return f"{self.document_id}:{self.chapter}:{self.verse}"

    @classmethod
    def from_key(cls, key: str) -> Location:
        parts = key.split(":")
        if len(parts) != 3:
            raise ValueError(f"Malformed location key: {key!r}")
        document_id, chapter, verse = (int(part) for part in parts)
        return cls(document_id, chapter, verse)

    def to_list(self) -> list[int]:
        return [self.document_id, self.chapter, self.verse]

    @classmethod
    def from_sequence(cls, values: tuple[int, int, int] | list[int]) -> Location:
        document_id, chapter, verse = values
        return cls(int(document_id), int(chapter), int(verse))


@dataclass(frozen=True, slots=True)
class DocumentInfo:
    """A document (book) known to a document source."""

    document_id: int
    name: str
    chapter_count: int


@dataclass(frozen=True, slots=True)
class TaggedSpan:
    """A sub-span of a verse in the word-tagged edition.

    ``identifier`` is the raw tag as found in the source (``"430"``,
    ``"H0430"``...) or ``None`` for untagged text.
    """

    text: str
    identifier: str | None = None


@dataclass(frozen=True, slots=True)
class VerseContent:
    verse_number: int
    text: str
    tagged_spans: tuple[TaggedSpan, ...] = ()

    @property
    def tagged_text(self) -> str:
        """Span texts joined by single spaces, or the plain text when spans are empty."""
        joined = " ".join(span.text for span in self.tagged_spans if span.text).strip()
        return joined or self.text


@dataclass(frozen=True, slots=True)
class ChapterContent:
    document_id: int
    chapter: int
    verses: tuple[VerseContent, ...] = ()

    def location_of(self, verse: VerseContent) -> Location:
        return Location(self.document_id, self.chapter, verse.verse_number)


class _WireModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> dict:
        """Serialize with camelCase keys."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ResultEntry(_WireModel):
    """A single matching verse with its resolved text."""

    document_id: int
    chapter: int
    verse: int
    text: str
    document_name: str | None = None

    @property
    def location(self) -> Location:
        return Location(self.document_id, self.chapter, self.verse)

    @classmethod
    def at(cls, location: Location, text: str, document_name: str | None = None) -> ResultEntry:
        return cls(
            document_id=location.document_id,
            chapter=location.chapter,
            verse=location.verse,
            text=text,
            document_name=document_name,
        )


class SearchResponse(_WireModel):
    """Paginated search outcome.

    ``total_count`` is the number of verified matches before truncation, so it
    is identical for bounded and unbounded calls with the same query.
    """

    results: list[ResultEntry] = Field(default_factory=list)
    total_count: int = 0
    has_more: bool = False

    @classmethod
    def empty(cls) -> SearchResponse:
        return cls(results=[], total_count=0, has_more=False)


class CrossReference(_WireModel):
    """A referenced location, optionally spanning ``verse..verse_end``."""

    document_id: int
    chapter: int
    verse: int
    verse_end: int | None = None

    @property
    def location(self) -> Location:
        return Location(self.document_id, self.chapter, self.verse)

    def to_list(self) -> list[int]:
        values = [self.document_id, self.chapter, self.verse]
        if self.verse_end is not None:
            values.append(self.verse_end)
        return values

    @classmethod
    def from_sequence(cls, values: list[int]) -> CrossReference:
        if len(values) not in (3, 4):
            raise ValueError(f"Cross reference must have 3 or 4 parts, got {values!r}")
        verse_end = int(values[3]) if len(values) == 4 else None
        return cls(
            document_id=int(values[0]),
            chapter=int(values[1]),
            verse=int(values[2]),
            verse_end=verse_end,
        )


class CrossReferenceGroup(_WireModel):
    """Related locations grouped under a topic label for one source verse."""

    order: int
    topic: str
    references: list[CrossReference] = Field(default_factory=list)
