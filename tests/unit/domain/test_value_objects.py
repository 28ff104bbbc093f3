"""Unit tests for domain value objects."""

import pytest

from scripture_index.domain.model import (
    CrossReference,
    Location,
    ResultEntry,
    SearchResponse,
    TaggedSpan,
    VerseContent,
)


def test_locations_sort_canonically():
    locations = [Location(2, 1, 1), Location(1, 10, 1), Location(1, 2, 30), Location(1, 2, 4)]
    assert sorted(locations) == [Location(1, 2, 4), Location(1, 2, 30), Location(1, 10, 1), Location(2, 1, 1)]


def test_location_key_round_trip():
    location = Location(43, 3, 16)
    assert location.key == "43:3:16"
    assert Location.from_key("43:3:16") == location
    assert location.to_list() == [43, 3, 16]


@pytest.mark.parametrize("key", ["1:2", "a:b:c", "1:2:3:4"])
def test_malformed_location_key(key):
    with pytest.raises(ValueError):
        Location.from_key(key)


def test_tagged_text_falls_back_to_plain_text():
    assert VerseContent(1, "plain").tagged_text == "plain"
    spans = (TaggedSpan("In the beginning", "7225"), TaggedSpan("", "430"), TaggedSpan("God", "430"))
    assert VerseContent(1, "plain", spans).tagged_text == "In the beginning God"


def test_result_entry_wire_shape():
    entry = ResultEntry.at(Location(1, 1, 1), "In the beginning")
    assert entry.to_dict() == {"documentId": 1, "chapter": 1, "verse": 1, "text": "In the beginning"}
    named = ResultEntry.at(Location(1, 1, 1), "In the beginning", "Genesis")
    assert named.to_dict()["documentName"] == "Genesis"


def test_search_response_wire_shape():
    response = SearchResponse(results=[ResultEntry.at(Location(2, 1, 1), "God is love")], total_count=3, has_more=True)
    payload = response.to_dict()
    assert payload["totalCount"] == 3
    assert payload["hasMore"] is True
    assert payload["results"][0]["documentId"] == 2
    assert SearchResponse.empty().to_dict() == {"results": [], "totalCount": 0, "hasMore": False}


def test_cross_reference_sequences():
    assert CrossReference.from_sequence([43, 1, 1, 3]).to_list() == [43, 1, 1, 3]
    assert CrossReference.from_sequence([43, 1, 1]).verse_end is None
    with pytest.raises(ValueError):
        CrossReference.from_sequence([43, 1])
