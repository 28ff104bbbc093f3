"""Unit tests for the ScriptureSearchEngine facade and Settings wiring."""

import pytest

from scripture_index.adapters.xml_source import XmlDocumentSource
from scripture_index.config import Settings
from scripture_index.domain.model import Location
from scripture_index.engine import ScriptureSearchEngine
from scripture_index.search.cross_reference import build_cross_reference_index
from scripture_index.search.indexer import CorpusIndexer, write_corpus_snapshots


TSK_LINES = "1\t1\t1\t1\tbeginning\tjoh 1:1\n40\t1\t2\t1\tlove\t1jo 4:8\n"


@pytest.fixture
def snapshot_dir(tmp_path):
    return tmp_path / "indexes"


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.first_family_last_document == 39
        assert settings.yield_every_chapters == 1
        assert settings.default_max_results == 100
        assert settings.snapshot_paths() == {"search": None, "concordance": None, "cross_references": None}

    def test_environment_overrides(self, monkeypatch, tmp_path):
        monkeypatch.setenv("SCRIPTURE_INDEX_SEARCH_SNAPSHOT_PATH", str(tmp_path / "search-index.json"))
        monkeypatch.setenv("SCRIPTURE_INDEX_DEFAULT_MAX_RESULTS", "0")
        settings = Settings()
        assert settings.search_snapshot_path == tmp_path / "search-index.json"
        assert settings.default_max_results == 0

    def test_invalid_values_are_rejected(self):
        with pytest.raises(ValueError):
            Settings(first_family_last_document=0)
        with pytest.raises(ValueError):
            Settings(default_max_results=-1)


class TestEngineLazyRebuild:
    @pytest.mark.asyncio
    async def test_search_before_warm_up_uses_fallback(self, small_source):
        engine = ScriptureSearchEngine(small_source, Settings())
        response = await engine.search("god is love", 10)
        assert [entry.location for entry in response.results] == [Location(40, 1, 2)]
        assert engine.status()["search"]["status"] == "none"

    @pytest.mark.asyncio
    async def test_warm_up_builds_every_index(self, small_source):
        engine = ScriptureSearchEngine(small_source, Settings())
        statuses = await engine.warm_up()
        assert statuses == {"search": "ready", "concordance": "ready", "cross_references": "ready"}

        response = await engine.search("god", 10)
        assert response.total_count == 4
        assert [entry.location for entry in await engine.lookup_by_identifier("430")] == [
            Location(1, 1, 1),
            Location(1, 1, 2),
        ]
        assert await engine.cross_references(Location(1, 1, 1)) == []

        status = engine.status()
        assert status["search"]["source"] == "rebuild"
        assert status["search"]["stats"]["uniqueWords"] > 0

    @pytest.mark.asyncio
    async def test_warm_up_survives_storage_errors(self, disk_error_source):
        engine = ScriptureSearchEngine(disk_error_source, Settings())
        assert await engine.warm_up(concordance=False, cross_references=False) == {"search": "ready"}
        assert engine.status()["search"]["builds_failed"] == 0
        assert (await engine.search("god", 10)).total_count == 4
        assert (await engine.search("cat", 10)).total_count == 0

    @pytest.mark.asyncio
    async def test_warm_up_selected_indexes(self, small_source):
        engine = ScriptureSearchEngine(small_source, Settings())
        assert await engine.warm_up(concordance=False, cross_references=False) == {"search": "ready"}
        assert engine.status()["concordance"]["status"] == "none"

    def test_cancel_builds_when_idle(self, small_source):
        engine = ScriptureSearchEngine(small_source, Settings())
        assert engine.cancel_builds() == {"search": False, "concordance": False, "cross_references": False}

    @pytest.mark.asyncio
    async def test_cross_reference_source_file(self, small_source, tmp_path):
        path = tmp_path / "tsk.tsv"
        path.write_text(TSK_LINES, encoding="utf-8")
        engine = ScriptureSearchEngine(small_source, Settings(cross_reference_source_path=path))
        groups = await engine.cross_references(Location(40, 1, 2))
        assert [group.topic for group in groups] == ["love"]
        assert list(await engine.chapter_cross_references(1, 1)) == [1]

    @pytest.mark.asyncio
    async def test_unreadable_cross_reference_source_is_empty(self, small_source, tmp_path):
        engine = ScriptureSearchEngine(small_source, Settings(cross_reference_source_path=tmp_path / "absent.tsv"))
        assert await engine.cross_references(Location(1, 1, 1)) == []
        assert engine.status()["cross_references"]["status"] == "ready"


class TestEngineSnapshots:
    @pytest.mark.asyncio
    async def test_snapshots_are_loaded_without_touching_the_source(self, small_source, snapshot_dir):
        result = await CorpusIndexer(small_source).build()
        paths = write_corpus_snapshots(
            result, snapshot_dir, cross_references=build_cross_reference_index(TSK_LINES.splitlines())
        )
        small_source.calls.clear()

        settings = Settings(
            search_snapshot_path=paths["search"],
            concordance_snapshot_path=paths["concordance"],
            cross_reference_snapshot_path=paths["cross_references"],
        )
        engine = ScriptureSearchEngine(small_source, settings)
        await engine.warm_up()

        assert small_source.calls == []
        assert {name: status["source"] for name, status in engine.status().items()} == {
            "search": "snapshot",
            "concordance": "snapshot",
            "cross_references": "snapshot",
        }
        response = await engine.search("god love", 10)
        assert [entry.location for entry in response.results] == [Location(40, 1, 2)]
        assert [entry.location for entry in await engine.lookup_by_identifier("G2316")] == [Location(40, 1, 2)]
        assert [group.topic for group in await engine.cross_references(Location(1, 1, 1))] == ["beginning"]

    @pytest.mark.asyncio
    async def test_invalid_snapshot_triggers_rebuild(self, small_source, tmp_path):
        path = tmp_path / "search-index.json"
        path.write_text('{"formatVersion": 99}', encoding="utf-8")
        engine = ScriptureSearchEngine(small_source, Settings(search_snapshot_path=path))
        await engine.warm_up(concordance=False, cross_references=False)
        assert engine.status()["search"]["source"] == "rebuild"
        assert (await engine.search("love", 10)).total_count == 1

    @pytest.mark.asyncio
    async def test_snapshot_and_rebuild_answer_identically(self, small_source, snapshot_dir):
        result = await CorpusIndexer(small_source).build()
        paths = write_corpus_snapshots(result, snapshot_dir)
        from_snapshot = ScriptureSearchEngine(small_source, Settings(search_snapshot_path=paths["search"]))
        rebuilt = ScriptureSearchEngine(small_source, Settings())
        await from_snapshot.warm_up(concordance=False, cross_references=False)
        await rebuilt.warm_up(concordance=False, cross_references=False)
        for query in ["god", "the earth", "cat", "light"]:
            assert await from_snapshot.search_all(query) == await rebuilt.search_all(query)


class TestFromSettings:
    def test_requires_corpus_dir_without_source(self):
        with pytest.raises(ValueError):
            ScriptureSearchEngine.from_settings(Settings())

    def test_builds_xml_source(self, tmp_path):
        engine = ScriptureSearchEngine.from_settings(Settings(corpus_dir=tmp_path, tagged_corpus_dir=tmp_path / "t"))
        assert isinstance(engine.source, XmlDocumentSource)
        assert engine.source.tagged_dir == tmp_path / "t"

    def test_explicit_source_wins(self, small_source):
        engine = ScriptureSearchEngine.from_settings(Settings(), source=small_source)
        assert engine.source is small_source
