"""Unit tests for the in-memory and XML document sources."""

import pytest

from scripture_index.adapters.document_source import CANONICAL_DOCUMENTS, InMemoryDocumentSource
from scripture_index.adapters.xml_source import (
    XmlDocumentSource,
    chapter_filename,
    document_folder,
    parse_plain_chapter,
    parse_tagged_chapter,
)
from scripture_index.domain.errors import ChapterUnavailableError
from scripture_index.domain.model import DocumentInfo, TaggedSpan


GENESIS = DocumentInfo(1, "Genesis", 2)

PLAIN_CHAPTER = b"""<?xml version="1.0" encoding="utf-8"?>
<chapter>
  <verse num="2">And the earth was without form,
     and void.</verse>
  <verse num="1">In the beginning God created the heaven and the earth.</verse>
  <verse>no number</verse>
</chapter>
"""

TAGGED_CHAPTER = b"""<chapter>
  <verse num="1">
    <phrase strongs="7225">In the beginning</phrase>
    <phrase strongs="H0430">God</phrase>
    <phrase strongs="8737% created">{H1254%</phrase>
    <phrase>the heaven</phrase>
  </verse>
</chapter>
"""


def test_canonical_documents_cover_the_canon():
    assert len(CANONICAL_DOCUMENTS) == 66
    assert CANONICAL_DOCUMENTS[0] == DocumentInfo(1, "Genesis", 50)
    assert CANONICAL_DOCUMENTS[38].name == "Malachi"
    assert CANONICAL_DOCUMENTS[-1] == DocumentInfo(66, "Revelation", 22)


def test_file_layout_names():
    assert document_folder(GENESIS) == "01-Genesis"
    assert chapter_filename(7) == "chapter-007.xml"


class TestInMemoryDocumentSource:
    @pytest.mark.asyncio
    async def test_serves_plain_and_tagged_verses(self, small_source):
        chapter = await small_source.get_chapter(1, 1)
        assert [verse.verse_number for verse in chapter.verses] == [1, 2, 3]
        assert chapter.verses[0].tagged_spans[1] == TaggedSpan("God", "H0430")
        assert chapter.verses[2].tagged_spans == ()

    @pytest.mark.asyncio
    async def test_missing_and_failing_chapters_raise(self, small_documents, small_chapters):
        source = InMemoryDocumentSource(small_documents, small_chapters, fail_on={(1, 1)})
        with pytest.raises(ChapterUnavailableError):
            await source.get_chapter(1, 1)
        with pytest.raises(ChapterUnavailableError):
            await source.get_chapter(2, 5)
        assert source.calls == [(1, 1), (2, 5)]

    def test_chapter_refs_and_names(self, small_source):
        assert list(small_source.iter_chapter_refs()) == [(1, 1), (1, 2), (2, 1), (40, 1)]
        assert small_source.document_names() == {1: "Genesis", 2: "Exodus", 40: "Matthew"}


class TestXmlParsing:
    def test_plain_chapter_collapses_whitespace(self):
        verses = parse_plain_chapter(PLAIN_CHAPTER)
        assert verses == {
            1: "In the beginning God created the heaven and the earth.",
            2: "And the earth was without form, and void.",
        }

    def test_tagged_chapter_repairs_corrupted_attributes(self):
        spans = parse_tagged_chapter(TAGGED_CHAPTER)[1]
        assert spans == (
            TaggedSpan("In the beginning", "7225"),
            TaggedSpan("God", "H0430"),
            TaggedSpan("created", "8737%"),
            TaggedSpan("the heaven", None),
        )


class TestXmlDocumentSource:
    @pytest.fixture
    def corpus(self, tmp_path):
        plain_root = tmp_path / "plain"
        tagged_root = tmp_path / "tagged"
        (plain_root / "01-Genesis").mkdir(parents=True)
        (tagged_root / "01-Genesis").mkdir(parents=True)
        (plain_root / "01-Genesis" / "chapter-001.xml").write_bytes(b"\xef\xbb\xbf" + PLAIN_CHAPTER)
        (tagged_root / "01-Genesis" / "chapter-001.xml").write_bytes(TAGGED_CHAPTER)
        (plain_root / "01-Genesis" / "chapter-002.xml").write_bytes(b"<chapter><verse num='1'>broken")
        return plain_root, tagged_root

    @pytest.mark.asyncio
    async def test_reads_plain_and_tagged_editions(self, corpus):
        plain_root, tagged_root = corpus
        source = XmlDocumentSource(plain_root, tagged_dir=tagged_root, documents=[GENESIS])
        chapter = await source.get_chapter(1, 1)
        assert [verse.verse_number for verse in chapter.verses] == [1, 2]
        assert chapter.verses[0].tagged_text == "In the beginning God created the heaven"
        assert chapter.verses[1].tagged_spans == ()

    @pytest.mark.asyncio
    async def test_missing_tagged_edition_is_not_an_error(self, corpus, tmp_path):
        plain_root, _ = corpus
        source = XmlDocumentSource(plain_root, tagged_dir=tmp_path / "nowhere", documents=[GENESIS])
        chapter = await source.get_chapter(1, 1)
        assert all(verse.tagged_spans == () for verse in chapter.verses)

    @pytest.mark.asyncio
    async def test_malformed_chapter_is_unavailable(self, corpus):
        plain_root, _ = corpus
        source = XmlDocumentSource(plain_root, documents=[GENESIS])
        with pytest.raises(ChapterUnavailableError):
            await source.get_chapter(1, 2)

    @pytest.mark.asyncio
    async def test_missing_chapter_and_unknown_document(self, corpus):
        plain_root, _ = corpus
        source = XmlDocumentSource(plain_root, documents=[GENESIS])
        with pytest.raises(ChapterUnavailableError):
            await source.get_chapter(1, 3)
        with pytest.raises(ChapterUnavailableError):
            await source.get_chapter(2, 1)
