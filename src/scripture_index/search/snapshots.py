"""Versioned snapshot records for the three serialized indexes.

Snapshots are produced offline by the batch builder and loaded at runtime in
lieu of rebuilding. Each record validates its own invariants; any validation
failure surfaces as a pydantic ``ValidationError`` which the storage layer
turns into "snapshot absent".
"""

from __future__ import annotations

from datetime import datetime, timezone
import re

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from scripture_index.search.analyzers import build_prefix_index


SEARCH_FORMAT_VERSION = 1
CONCORDANCE_FORMAT_VERSION = 1
CROSS_REFERENCE_FORMAT_VERSION = 1

_LOCATION_KEY_PATTERN = re.compile(r"^\d+:\d+:\d+$")
_IDENTIFIER_KEY_PATTERN = re.compile(r"^[A-Z]\d+$")

LocationTriple = tuple[int, int, int]


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def location_key(triple: LocationTriple | list[int]) -> str:
    return f"{triple[0]}:{triple[1]}:{triple[2]}"


class SnapshotModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, mode="json")


def _require_version(value: int, expected: int) -> int:
    if value != expected:
        raise ValueError(f"unsupported formatVersion {value} (expected {expected})")
    return value


def _check_verse_cache_keys(verse_cache: dict[str, str]) -> None:
    for key in verse_cache:
        if not _LOCATION_KEY_PATTERN.match(key):
            raise ValueError(f"malformed verse cache key {key!r}")


def _check_locations_cached(postings: dict[str, list[LocationTriple]], verse_cache: dict[str, str]) -> None:
    for term, locations in postings.items():
        for triple in locations:
            if location_key(triple) not in verse_cache:
                raise ValueError(f"location {location_key(triple)} for {term!r} has no verse cache entry")


# --- search ----------------------------------------------------------------


class SearchStats(SnapshotModel):
    total_verses: int = Field(ge=0)
    total_chapters: int = Field(ge=0)
    unique_words: int = Field(ge=0)
    prefix_count: int = Field(ge=0)


class SearchSnapshot(SnapshotModel):
    """``{formatVersion, generatedAt, stats, wordIndex, verseCache, prefixIndex}``."""

    format_version: int
    generated_at: str
    stats: SearchStats
    word_index: dict[str, list[LocationTriple]]
    verse_cache: dict[str, str]
    prefix_index: dict[str, list[str]]

    @field_validator("format_version")
    @classmethod
    def _check_version(cls, value: int) -> int:
        return _require_version(value, SEARCH_FORMAT_VERSION)

    @model_validator(mode="after")
    def _check_invariants(self) -> SearchSnapshot:
        if self.stats.unique_words != len(self.word_index):
            raise ValueError(
                f"stats.uniqueWords={self.stats.unique_words} but wordIndex has {len(self.word_index)} keys"
            )
        if self.stats.prefix_count != len(self.prefix_index):
            raise ValueError(
                f"stats.prefixCount={self.stats.prefix_count} but prefixIndex has {len(self.prefix_index)} keys"
            )
        _check_verse_cache_keys(self.verse_cache)
        _check_locations_cached(self.word_index, self.verse_cache)

        derived = build_prefix_index(self.word_index.keys())
        if derived.keys() != self.prefix_index.keys():
            raise ValueError("prefixIndex keys are not derivable from wordIndex")
        for prefix, tokens in self.prefix_index.items():
            if set(tokens) != set(derived[prefix]):
                raise ValueError(f"prefixIndex[{prefix!r}] does not match wordIndex vocabulary")
        return self


# --- concordance -----------------------------------------------------------


class ConcordanceStats(SnapshotModel):
    total_verses: int = Field(ge=0)
    total_entries: int = Field(ge=0)
    unique_identifiers: int = Field(ge=0)
    family_counts: dict[str, int] = Field(default_factory=dict)


class ConcordanceSnapshot(SnapshotModel):
    """``{formatVersion, generatedAt, stats, concordanceIndex, verseCache}``."""

    format_version: int
    generated_at: str
    stats: ConcordanceStats
    concordance_index: dict[str, list[LocationTriple]]
    verse_cache: dict[str, str]

    @field_validator("format_version")
    @classmethod
    def _check_version(cls, value: int) -> int:
        return _require_version(value, CONCORDANCE_FORMAT_VERSION)

    @model_validator(mode="after")
    def _check_invariants(self) -> ConcordanceSnapshot:
        if self.stats.unique_identifiers != len(self.concordance_index):
            raise ValueError(
                f"stats.uniqueIdentifiers={self.stats.unique_identifiers} "
                f"but concordanceIndex has {len(self.concordance_index)} keys"
            )
        for identifier, locations in self.concordance_index.items():
            if not _IDENTIFIER_KEY_PATTERN.match(identifier):
                raise ValueError(f"malformed identifier key {identifier!r}")
            if len(set(locations)) != len(locations):
                raise ValueError(f"duplicate locations under {identifier!r}")
        _check_verse_cache_keys(self.verse_cache)
        _check_locations_cached(self.concordance_index, self.verse_cache)
        return self


# --- cross references ------------------------------------------------------


class CrossReferenceStats(SnapshotModel):
    total_entries: int = Field(ge=0)
    total_references: int = Field(ge=0)
    verses_with_references: int = Field(ge=0)


class CrossReferenceGroupRecord(SnapshotModel):
    order: int
    topic: str = ""
    refs: list[list[int]] = Field(default_factory=list)

    @field_validator("refs")
    @classmethod
    def _check_refs(cls, value: list[list[int]]) -> list[list[int]]:
        for ref in value:
            if len(ref) not in (3, 4):
                raise ValueError(f"reference {ref!r} must have 3 or 4 parts")
        return value


class CrossReferenceSnapshot(SnapshotModel):
    """``{formatVersion, generatedAt, stats, crossReferences}``."""

    format_version: int
    generated_at: str
    stats: CrossReferenceStats
    cross_references: dict[str, list[CrossReferenceGroupRecord]]

    @field_validator("format_version")
    @classmethod
    def _check_version(cls, value: int) -> int:
        return _require_version(value, CROSS_REFERENCE_FORMAT_VERSION)

    @model_validator(mode="after")
    def _check_invariants(self) -> CrossReferenceSnapshot:
        for key in self.cross_references:
            if not _LOCATION_KEY_PATTERN.match(key):
                raise ValueError(f"malformed cross reference key {key!r}")
        if self.stats.verses_with_references != len(self.cross_references):
            raise ValueError("stats.versesWithReferences does not match crossReferences")
        return self
