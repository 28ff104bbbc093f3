"""Unit tests for the corpus walk and the batch builder."""

import asyncio

import pytest

from scripture_index.adapters.document_source import InMemoryDocumentSource
from scripture_index.domain.errors import BuildCancelledError
from scripture_index.domain.model import Location
from scripture_index.search.index_data import SearchIndexWriter
from scripture_index.search.indexer import CancellationToken, CorpusIndexer, walk_corpus, write_corpus_snapshots
from scripture_index.search.storage import (
    CONCORDANCE_SNAPSHOT_FILENAME,
    SEARCH_SNAPSHOT_FILENAME,
    load_snapshot,
)
from scripture_index.search.snapshots import ConcordanceSnapshot, SearchSnapshot


def _location_sets(index):
    return {token: set(locations) for token, locations in index.word_index.items()}


class TestCancellationToken:
    def test_cancel_is_idempotent(self):
        token = CancellationToken()
        assert token.cancel() is True
        assert token.cancel() is False
        assert token.cancelled

    def test_raise_if_cancelled(self):
        token = CancellationToken()
        token.raise_if_cancelled()
        token.cancel()
        with pytest.raises(BuildCancelledError):
            token.raise_if_cancelled()


class TestWalkCorpus:
    @pytest.mark.asyncio
    async def test_unreadable_chapters_are_skipped(self, small_documents, small_chapters):
        source = InMemoryDocumentSource(small_documents, small_chapters, fail_on={(1, 2)})
        writer = SearchIndexWriter()
        report = await walk_corpus(source, [writer])
        assert report.chapters_indexed == 3
        assert report.chapters_skipped == 1
        assert "1:2" in report.errors[0]
        index = writer.build()
        assert Location(1, 2, 1) not in index.verse_cache
        assert Location(40, 1, 2) in index.verse_cache

    @pytest.mark.asyncio
    async def test_storage_errors_are_skipped_like_missing_chapters(self, disk_error_source):
        writer = SearchIndexWriter()
        report = await walk_corpus(disk_error_source, [writer])
        assert report.chapters_indexed == 3
        assert report.chapters_skipped == 1
        assert report.errors == ("1:2: OSError('disk read error')",)
        assert Location(1, 2, 1) not in writer.build().verse_cache

    @pytest.mark.asyncio
    async def test_walk_visits_chapters_in_canonical_order(self, small_source):
        visited = []
        await walk_corpus(small_source, [], on_chapter=lambda document_id, chapter: visited.append((document_id, chapter)))
        assert visited == [(1, 1), (1, 2), (2, 1), (40, 1)]

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_before_next_chapter(self, small_source):
        token = CancellationToken()

        def cancel_after_first(document_id, chapter):
            token.cancel()

        with pytest.raises(BuildCancelledError):
            await walk_corpus(small_source, [SearchIndexWriter()], token=token, on_chapter=cancel_after_first)
        assert small_source.calls == [(1, 1)]


class TestCorpusIndexer:
    @pytest.mark.asyncio
    async def test_batch_build_produces_both_indexes(self, small_source):
        result = await CorpusIndexer(small_source).build()
        assert result.report.chapters_indexed == 4
        assert result.search.stats.total_verses == 8
        assert result.search.generated_at == result.concordance.generated_at
        assert result.concordance.locations_for("H430") == [Location(1, 1, 1), Location(1, 1, 2)]
        assert result.concordance.locations_for("G2424") == [Location(40, 1, 1)]
        assert result.concordance.locations_for("G2316") == [Location(40, 1, 2)]

    @pytest.mark.asyncio
    async def test_single_index_builds_match_batch_build(self, small_source):
        indexer = CorpusIndexer(small_source)
        batch = await indexer.build()
        search = await indexer.build_search_index()
        concordance = await indexer.build_concordance_index()
        assert _location_sets(search) == _location_sets(batch.search)
        assert search.verse_cache == batch.search.verse_cache
        assert concordance.entries == batch.concordance.entries

    @pytest.mark.asyncio
    async def test_yield_every_chapters_controls_event_loop_yields(self, small_source, monkeypatch):
        sleeps = []
        real_sleep = asyncio.sleep

        async def counting_sleep(delay, *args, **kwargs):
            sleeps.append(delay)
            await real_sleep(delay, *args, **kwargs)

        monkeypatch.setattr("scripture_index.search.indexer.asyncio.sleep", counting_sleep)
        await CorpusIndexer(small_source, yield_every_chapters=2).build_search_index()
        assert sleeps == [0, 0]

    @pytest.mark.asyncio
    async def test_write_corpus_snapshots(self, small_source, tmp_path):
        result = await CorpusIndexer(small_source).build()
        paths = write_corpus_snapshots(result, tmp_path)
        assert paths["search"] == tmp_path / SEARCH_SNAPSHOT_FILENAME
        assert paths["concordance"] == tmp_path / CONCORDANCE_SNAPSHOT_FILENAME
        assert "cross_references" not in paths
        search = load_snapshot(paths["search"], SearchSnapshot)
        concordance = load_snapshot(paths["concordance"], ConcordanceSnapshot)
        assert search is not None
        assert search.stats.unique_words == result.search.stats.unique_words
        assert concordance is not None
        assert concordance.stats.family_counts == result.concordance.stats.family_counts
