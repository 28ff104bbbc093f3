"""In-memory index structures and the writers that produce them.

Writers accept one chapter at a time so the same code drives both the offline
batch build and the incremental runtime rebuild; this is what keeps the two
paths equivalent. ``build()`` freezes a writer's state into an immutable index
object that readers can share freely.

* ``SearchIndexWriter`` -> ``SearchIndex`` (word index, verse cache, prefix index)
* ``ConcordanceIndexWriter`` -> ``ConcordanceIndex`` (identifier -> locations)
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
import logging

from scripture_index.domain.model import ChapterContent, Location
from scripture_index.search.analyzers import (
    build_prefix_index,
    canonical_identifier,
    family_for_document,
    tokenize,
)
from scripture_index.search.snapshots import (
    CONCORDANCE_FORMAT_VERSION,
    SEARCH_FORMAT_VERSION,
    ConcordanceSnapshot,
    ConcordanceStats,
    SearchSnapshot,
    SearchStats,
    utc_timestamp,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SearchIndex:
    """Immutable word/prefix index with its verse cache.

    ``word_index`` keeps every occurrence (a token repeated in one verse lists
    that verse twice); ``postings`` is the distinct-location view used for
    query matching.
    """

    word_index: dict[str, list[Location]]
    verse_cache: dict[Location, str]
    prefix_index: dict[str, list[str]]
    stats: SearchStats
    generated_at: str
    postings: dict[str, frozenset[Location]] = field(init=False, repr=False)
    vocabulary: tuple[str, ...] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        postings = {token: frozenset(locations) for token, locations in self.word_index.items()}
        object.__setattr__(self, "postings", postings)
        object.__setattr__(self, "vocabulary", tuple(self.word_index))

    def matches_for(self, token: str) -> set[Location]:
        """Distinct locations of every indexed token containing ``token``.

        The exact entry is always included (a token contains itself); the scan
        widens recall to longer words such as ``"cathedral"`` for ``"cat"``.
        Cost is bounded by the vocabulary size, not the corpus size.
        """

        matches: set[Location] = set(self.postings.get(token, ()))
        for term in self.vocabulary:
            if token in term and term != token:
                matches.update(self.postings[term])
        return matches

    def text_for(self, location: Location) -> str | None:
        return self.verse_cache.get(location)

    def to_snapshot(self) -> SearchSnapshot:
        return SearchSnapshot(
            format_version=SEARCH_FORMAT_VERSION,
            generated_at=self.generated_at,
            stats=self.stats,
            word_index={
                token: [location.to_list() for location in locations]
                for token, locations in self.word_index.items()
            },
            verse_cache={location.key: text for location, text in self.verse_cache.items()},
            prefix_index={prefix: list(tokens) for prefix, tokens in self.prefix_index.items()},
        )

    @classmethod
    def from_snapshot(cls, snapshot: SearchSnapshot) -> SearchIndex:
        return cls(
            word_index={
                token: [Location.from_sequence(triple) for triple in triples]
                for token, triples in snapshot.word_index.items()
            },
            verse_cache={Location.from_key(key): text for key, text in snapshot.verse_cache.items()},
            prefix_index={prefix: list(tokens) for prefix, tokens in snapshot.prefix_index.items()},
            stats=snapshot.stats,
            generated_at=snapshot.generated_at,
        )


class SearchIndexWriter:
    """Accumulates tokens chapter by chapter."""

    def __init__(self) -> None:
        self._word_index: dict[str, list[Location]] = {}
        self._verse_cache: dict[Location, str] = {}
        self._total_chapters = 0

    def add_chapter(self, chapter: ChapterContent) -> int:
        """Index every verse of ``chapter``; returns the number of verses added."""

        added = 0
        for verse in chapter.verses:
            location = chapter.location_of(verse)
            if location in self._verse_cache:
                logger.debug("Duplicate verse %s ignored", location.key)
                continue
            self._verse_cache[location] = verse.text
            added += 1
            for token in tokenize(verse.text):
                self._word_index.setdefault(token, []).append(location)
        self._total_chapters += 1
        return added

    def build(self, *, generated_at: str | None = None) -> SearchIndex:
        prefix_index = build_prefix_index(self._word_index)
        stats = SearchStats(
            total_verses=len(self._verse_cache),
            total_chapters=self._total_chapters,
            unique_words=len(self._word_index),
            prefix_count=len(prefix_index),
        )
        return SearchIndex(
            word_index={token: list(locations) for token, locations in self._word_index.items()},
            verse_cache=dict(self._verse_cache),
            prefix_index=prefix_index,
            stats=stats,
            generated_at=generated_at or utc_timestamp(),
        )


@dataclass(frozen=True)
class ConcordanceIndex:
    """Immutable lexical-identifier index with its own verse cache."""

    entries: dict[str, list[Location]]
    verse_cache: dict[Location, str]
    stats: ConcordanceStats
    generated_at: str

    def locations_for(self, identifier: str) -> list[Location]:
        return self.entries.get(identifier, [])

    def text_for(self, location: Location) -> str | None:
        return self.verse_cache.get(location)

    def to_snapshot(self) -> ConcordanceSnapshot:
        return ConcordanceSnapshot(
            format_version=CONCORDANCE_FORMAT_VERSION,
            generated_at=self.generated_at,
            stats=self.stats,
            concordance_index={
                identifier: [location.to_list() for location in locations]
                for identifier, locations in self.entries.items()
            },
            verse_cache={location.key: text for location, text in self.verse_cache.items()},
        )

    @classmethod
    def from_snapshot(cls, snapshot: ConcordanceSnapshot) -> ConcordanceIndex:
        return cls(
            entries={
                identifier: sorted(Location.from_sequence(triple) for triple in triples)
                for identifier, triples in snapshot.concordance_index.items()
            },
            verse_cache={Location.from_key(key): text for key, text in snapshot.verse_cache.items()},
            stats=snapshot.stats,
            generated_at=snapshot.generated_at,
        )


class ConcordanceIndexWriter:
    """Accumulates identifier occurrences from the tagged view of each chapter.

    Bare numeric identifiers take the tag family of the verse's document:
    documents up to ``first_family_last_document`` are ``H``, later ones ``G``.
    """

    def __init__(self, *, first_family_last_document: int) -> None:
        self.first_family_last_document = first_family_last_document
        self._entries: dict[str, list[Location]] = {}
        self._seen: set[tuple[str, Location]] = set()
        self._verse_cache: dict[Location, str] = {}
        self._total_entries = 0

    def add_chapter(self, chapter: ChapterContent) -> int:
        """Record identifiers for ``chapter``; returns the number of tagged verses."""

        default_family = family_for_document(chapter.document_id, self.first_family_last_document)
        tagged_verses = 0
        for verse in chapter.verses:
            location = chapter.location_of(verse)
            identifiers: list[str] = []
            for span in verse.tagged_spans:
                if not span.identifier:
                    continue
                identifier = canonical_identifier(span.identifier, default_family)
                if identifier is None:
                    logger.debug("Ignoring unparseable identifier %r at %s", span.identifier, location.key)
                    continue
                identifiers.append(identifier)
            if not identifiers:
                continue

            if location not in self._verse_cache:
                self._verse_cache[location] = verse.tagged_text
                tagged_verses += 1
            for identifier in identifiers:
                if (identifier, location) in self._seen:
                    continue
                self._seen.add((identifier, location))
                self._entries.setdefault(identifier, []).append(location)
                self._total_entries += 1
        return tagged_verses

    def build(self, *, generated_at: str | None = None) -> ConcordanceIndex:
        family_counts = Counter(identifier[0] for identifier in self._entries)
        stats = ConcordanceStats(
            total_verses=len(self._verse_cache),
            total_entries=self._total_entries,
            unique_identifiers=len(self._entries),
            family_counts=dict(sorted(family_counts.items())),
        )
        return ConcordanceIndex(
            entries={identifier: sorted(locations) for identifier, locations in self._entries.items()},
            verse_cache=dict(self._verse_cache),
            stats=stats,
            generated_at=generated_at or utc_timestamp(),
        )
