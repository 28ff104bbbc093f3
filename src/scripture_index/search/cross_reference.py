"""Topical cross-reference index.

Source data is a tab separated file with one line per (verse, topic word)::

    document<TAB>chapter<TAB>verse<TAB>sortOrder<TAB>word<TAB>ge 1:1; ps 119:105; ro 8:28,29

Reference lists use short book abbreviations; verse parts may be single verses
or ``start-end`` ranges. Lines that cannot be parsed are skipped.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
import logging
from pathlib import Path
import re

from scripture_index.domain.model import CrossReference, CrossReferenceGroup, Location
from scripture_index.search.snapshots import (
    CROSS_REFERENCE_FORMAT_VERSION,
    CrossReferenceGroupRecord,
    CrossReferenceSnapshot,
    CrossReferenceStats,
    utc_timestamp,
)


logger = logging.getLogger(__name__)

ABBREVIATION_TO_DOCUMENT_ID: dict[str, int] = {
    "ge": 1, "ex": 2, "le": 3, "nu": 4, "de": 5,
    "jos": 6, "jud": 7, "ru": 8, "1sa": 9, "2sa": 10,
    "1ki": 11, "2ki": 12, "1ch": 13, "2ch": 14, "ezr": 15,
    "ne": 16, "es": 17, "job": 18, "ps": 19, "pr": 20,
    "ec": 21, "so": 22, "isa": 23, "jer": 24, "la": 25,
    "eze": 26, "da": 27, "ho": 28, "joe": 29, "am": 30,
    "ob": 31, "jon": 32, "mic": 33, "na": 34, "hab": 35,
    "zep": 36, "hag": 37, "zec": 38, "mal": 39,
    "mt": 40, "mr": 41, "lu": 42, "joh": 43, "ac": 44,
    "ro": 45, "1co": 46, "2co": 47, "ga": 48, "eph": 49,
    "php": 50, "col": 51, "1th": 52, "2th": 53, "1ti": 54,
    "2ti": 55, "tit": 56, "phm": 57, "heb": 58, "jas": 59,
    "1pe": 60, "2pe": 61, "1jo": 62, "2jo": 63, "3jo": 64,
    "jude": 65, "re": 66,
}  # fmt: skip

_REFERENCE_PATTERN = re.compile(r"^([a-z0-9]+)\s+(\d+):(.+)$")


def parse_reference(text: str) -> list[CrossReference]:
    """Parse ``"ro 8:28,29"`` / ``"isa 40:26-28"`` into references."""

    match = _REFERENCE_PATTERN.match(text.strip().lower())
    if not match:
        return []
    abbreviation, chapter_text, verses_text = match.groups()
    document_id = ABBREVIATION_TO_DOCUMENT_ID.get(abbreviation)
    if document_id is None:
        return []

    chapter = int(chapter_text)
    references: list[CrossReference] = []
    for part in verses_text.split(","):
        part = part.strip()
        if "-" in part:
            start_text, _, end_text = part.partition("-")
            try:
                start, end = int(start_text.strip()), int(end_text.strip())
            except ValueError:
                continue
            references.append(CrossReference(document_id=document_id, chapter=chapter, verse=start, verse_end=end))
        else:
            try:
                verse = int(part)
            except ValueError:
                continue
            references.append(CrossReference(document_id=document_id, chapter=chapter, verse=verse))
    return references


def parse_reference_list(text: str) -> list[CrossReference]:
    references: list[CrossReference] = []
    for part in text.split(";"):
        if part.strip():
            references.extend(parse_reference(part))
    return references


@dataclass(frozen=True)
class CrossReferenceIndex:
    """Immutable ``Location -> [CrossReferenceGroup]`` mapping."""

    groups: dict[Location, list[CrossReferenceGroup]]
    stats: CrossReferenceStats
    generated_at: str

    def groups_for(self, location: Location) -> list[CrossReferenceGroup]:
        return self.groups.get(location, [])

    def chapter_groups(self, document_id: int, chapter: int) -> dict[int, list[CrossReferenceGroup]]:
        return {
            location.verse: groups
            for location, groups in sorted(self.groups.items())
            if location.document_id == document_id and location.chapter == chapter
        }

    def to_snapshot(self) -> CrossReferenceSnapshot:
        return CrossReferenceSnapshot(
            format_version=CROSS_REFERENCE_FORMAT_VERSION,
            generated_at=self.generated_at,
            stats=self.stats,
            cross_references={
                location.key: [
                    CrossReferenceGroupRecord(
                        order=group.order,
                        topic=group.topic,
                        refs=[reference.to_list() for reference in group.references],
                    )
                    for group in groups
                ]
                for location, groups in self.groups.items()
            },
        )

    @classmethod
    def from_snapshot(cls, snapshot: CrossReferenceSnapshot) -> CrossReferenceIndex:
        groups = {
            Location.from_key(key): [
                CrossReferenceGroup(
                    order=record.order,
                    topic=record.topic,
                    references=[CrossReference.from_sequence(ref) for ref in record.refs],
                )
                for record in sorted(records, key=lambda record: record.order)
            ]
            for key, records in snapshot.cross_references.items()
        }
        return cls(groups=groups, stats=snapshot.stats, generated_at=snapshot.generated_at)

    @classmethod
    def empty(cls) -> CrossReferenceIndex:
        stats = CrossReferenceStats(total_entries=0, total_references=0, verses_with_references=0)
        return cls(groups={}, stats=stats, generated_at=utc_timestamp())


def build_cross_reference_index(lines: Iterable[str]) -> CrossReferenceIndex:
    """Build an index from raw tab separated lines."""

    groups: dict[Location, list[CrossReferenceGroup]] = {}
    total_entries = 0
    total_references = 0
    for line_number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        parts = line.rstrip("\r\n").split("\t")
        if len(parts) < 6:
            logger.debug("Skipping cross reference line %d: expected 6 columns", line_number)
            continue
        try:
            location = Location(int(parts[0]), int(parts[1]), int(parts[2]))
            order = int(parts[3])
        except ValueError:
            logger.debug("Skipping cross reference line %d: non-numeric coordinates", line_number)
            continue

        references = parse_reference_list(parts[5])
        groups.setdefault(location, []).append(
            CrossReferenceGroup(order=order, topic=parts[4], references=references)
        )
        total_entries += 1
        total_references += len(references)

    for entries in groups.values():
        entries.sort(key=lambda group: group.order)

    stats = CrossReferenceStats(
        total_entries=total_entries,
        total_references=total_references,
        verses_with_references=len(groups),
    )
    return CrossReferenceIndex(groups=groups, stats=stats, generated_at=utc_timestamp())


def read_cross_reference_file(path: Path) -> CrossReferenceIndex:
    """Parse a cross-reference data file; raises ``OSError`` when unreadable."""

    with path.open(encoding="utf-8-sig") as handle:
        index = build_cross_reference_index(handle)
    logger.info(
        "Parsed %d cross reference entries (%d references) from %s",
        index.stats.total_entries,
        index.stats.total_references,
        path,
    )
    return index
