"""Shared test fixtures and configuration."""

import os

import pytest

from scripture_index.adapters.document_source import InMemoryDocumentSource
from scripture_index.domain.model import DocumentInfo


TWO_BOOKS = (
    DocumentInfo(1, "Genesis", 1),
    DocumentInfo(2, "Exodus", 1),
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep ``SCRIPTURE_INDEX_*`` variables from the host out of every test."""
    for key in list(os.environ):
        if key.upper().startswith("SCRIPTURE_INDEX_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(os.path.dirname(__file__))


@pytest.fixture
def scenario_source():
    """Two toy books, one verse each."""
    return InMemoryDocumentSource(
        TWO_BOOKS,
        {
            (1, 1): {1: "In the beginning God created"},
            (2, 1): {1: "God is love"},
        },
    )


@pytest.fixture
def small_documents():
    return (
        DocumentInfo(1, "Genesis", 2),
        DocumentInfo(2, "Exodus", 1),
        DocumentInfo(40, "Matthew", 1),
    )


@pytest.fixture
def small_chapters():
    """A slightly larger corpus with repeated words, punctuation and tagged spans."""
    return {
        (1, 1): {
            1: (
                "In the beginning God created the heaven and the earth.",
                [("In the beginning", "7225"), ("God", "H0430"), ("created", "1254"), ("the heaven", "8064")],
            ),
            2: (
                "And the Spirit of God moved upon the face of the waters.",
                [("And the Spirit", "7307"), ("of God", "430"), ("moved", "7363"), ("God", "430")],
            ),
            3: "And God said, Let there be light: and there was light.",
        },
        (1, 2): {
            1: "Thus the heavens and the earth were finished.",
            2: "The cathedral cat sat; the concatenate cat slept.",
        },
        (2, 1): {
            1: "Now these are the names of the children of Israel.",
        },
        (40, 1): {
            1: (
                "The book of the generation of Jesus Christ.",
                [("The book", "976"), ("of the generation", "1078"), ("of Jesus", "G2424"), ("Christ", "5547")],
            ),
            2: ("God is love.", [("God", "2316"), ("is love", "26")]),
        },
    }


@pytest.fixture
def small_source(small_documents, small_chapters):
    return InMemoryDocumentSource(small_documents, small_chapters)


class DiskErrorSource(InMemoryDocumentSource):
    """In-memory source whose reads of some chapters fail with ``OSError``."""

    def __init__(self, *args, disk_errors=(), **kwargs):
        super().__init__(*args, **kwargs)
        self.disk_errors = set(disk_errors)

    async def get_chapter(self, document_id, chapter):
        if (document_id, chapter) in self.disk_errors:
            self.calls.append((document_id, chapter))
            raise OSError("disk read error")
        return await super().get_chapter(document_id, chapter)


@pytest.fixture
def disk_error_source(small_documents, small_chapters):
    """``small_source`` with chapter 1:2 failing at the storage layer."""
    return DiskErrorSource(small_documents, small_chapters, disk_errors={(1, 2)})
