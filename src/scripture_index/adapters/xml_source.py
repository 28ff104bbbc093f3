"""Filesystem document source for per-chapter XML files.

Layout (one directory per document, one file per chapter)::

    <corpus_dir>/01-Genesis/chapter-001.xml          <verse num="1">In the beginning...</verse>
    <tagged_dir>/01-Genesis/chapter-001.xml          <verse num="1"><phrase strongs="7225">In the beginning</phrase>...</verse>

The tagged directory is optional; when present, its phrases become the
verse's tagged spans. Missing tagged files are normal (not every chapter has a
tagged edition) and only the plain file is required.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
from pathlib import Path
import re

import anyio
from lxml import etree  # type: ignore[import-untyped]

from scripture_index.adapters.document_source import CANONICAL_DOCUMENTS, AbstractDocumentSource
from scripture_index.domain.errors import ChapterUnavailableError
from scripture_index.domain.model import ChapterContent, DocumentInfo, TaggedSpan, VerseContent


logger = logging.getLogger(__name__)

_EMBEDDED_TEXT_PATTERN = re.compile(r"^(\d+%)\s+(.+)$")
_STRAY_MARKER_PATTERN = re.compile(r"\{[HG]\d+%")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def document_folder(document: DocumentInfo) -> str:
    return f"{document.document_id:02d}-{document.name}"


def chapter_filename(chapter: int) -> str:
    return f"chapter-{chapter:03d}.xml"


def _collapse(text: str) -> str:
    return _WHITESPACE_PATTERN.sub(" ", text).strip()


def parse_plain_chapter(content: bytes) -> dict[int, str]:
    """Return ``{verse_number: text}`` from a plain chapter file."""

    root = etree.fromstring(content)
    verses: dict[int, str] = {}
    for element in root.iter("verse"):
        number = element.get("num")
        if number is None or not number.strip().isdigit():
            continue
        verses[int(number)] = _collapse("".join(element.itertext()))
    return verses


def parse_tagged_chapter(content: bytes) -> dict[int, tuple[TaggedSpan, ...]]:
    """Return ``{verse_number: spans}`` from a tagged chapter file.

    Some tag attributes are corrupted as ``"8737% spirit"``: the text after the
    marker belongs to the span. Stray ``{H1234%`` markers are removed from span
    text.
    """

    root = etree.fromstring(content)
    tagged: dict[int, tuple[TaggedSpan, ...]] = {}
    for element in root.iter("verse"):
        number = element.get("num")
        if number is None or not number.strip().isdigit():
            continue
        spans: list[TaggedSpan] = []
        for phrase in element.iter("phrase"):
            identifier = (phrase.get("strongs") or "").strip()
            text = "".join(phrase.itertext())
            embedded = _EMBEDDED_TEXT_PATTERN.match(identifier)
            if embedded:
                identifier = embedded.group(1)
                text = f"{embedded.group(2)} {text}" if text.strip() else embedded.group(2)
            text = _collapse(_STRAY_MARKER_PATTERN.sub("", text))
            spans.append(TaggedSpan(text=text, identifier=identifier or None))
        tagged[int(number)] = tuple(spans)
    return tagged


class XmlDocumentSource(AbstractDocumentSource):
    """Serve chapters from the XML directory layout described above."""

    def __init__(
        self,
        corpus_dir: Path,
        *,
        tagged_dir: Path | None = None,
        documents: Sequence[DocumentInfo] = CANONICAL_DOCUMENTS,
    ) -> None:
        self.corpus_dir = corpus_dir
        self.tagged_dir = tagged_dir
        self._documents = tuple(documents)
        self._by_id = {document.document_id: document for document in self._documents}

    def documents(self) -> Sequence[DocumentInfo]:
        return self._documents

    def chapter_path(self, root: Path, document_id: int, chapter: int) -> Path:
        document = self._by_id[document_id]
        return root / document_folder(document) / chapter_filename(chapter)

    async def get_chapter(self, document_id: int, chapter: int) -> ChapterContent:
        if document_id not in self._by_id:
            raise ChapterUnavailableError(document_id, chapter, "unknown document")

        plain_path = self.chapter_path(self.corpus_dir, document_id, chapter)
        try:
            plain = parse_plain_chapter(await _read_bytes(plain_path))
        except OSError as exc:
            raise ChapterUnavailableError(document_id, chapter, f"{plain_path}: {exc.strerror or exc}") from exc
        except etree.XMLSyntaxError as exc:
            raise ChapterUnavailableError(document_id, chapter, f"{plain_path}: {exc}") from exc

        tagged: dict[int, tuple[TaggedSpan, ...]] = {}
        if self.tagged_dir is not None:
            tagged_path = self.chapter_path(self.tagged_dir, document_id, chapter)
            try:
                tagged = parse_tagged_chapter(await _read_bytes(tagged_path))
            except FileNotFoundError:
                logger.debug("No tagged edition for %s", tagged_path)
            except (OSError, etree.XMLSyntaxError) as exc:
                logger.warning("Ignoring unreadable tagged chapter %s: %s", tagged_path, exc)

        verses = tuple(
            VerseContent(verse_number=number, text=text, tagged_spans=tagged.get(number, ()))
            for number, text in sorted(plain.items())
        )
        return ChapterContent(document_id=document_id, chapter=chapter, verses=verses)


async def _read_bytes(path: Path) -> bytes:
    async with await anyio.open_file(path, "rb") as handle:
        content = await handle.read()
    if content.startswith(b"\xef\xbb\xbf"):
        content = content[3:]
    return content
