import json

import pytest

from pagestitch.core.annotations import PageKey
from pagestitch.core.errors import SessionRestoreError
from pagestitch.core.session import Session, SessionPersistence, Tool
from pagestitch.core.session.persistence import FILES_KEY, STATE_KEY


@pytest.fixture
def persistence(storage_dir):
    return SessionPersistence(storage_dir)


@pytest.fixture
def populated(session, pdf_a, pdf_b):
    doc_a, doc_b = session.ingest_files([("a.pdf", pdf_a), ("b.pdf", pdf_b)]).loaded
    session.add_page(doc_b.id, 1)
    session.add_page(doc_a.id, 1)
    session.annotations.append_stroke(PageKey(doc_a.id, 1), [(0.1, 0.1), (0.2, 0.2)], "#ff0000")
    session.set_tool(Tool.DRAW)
    return session


class TestRecords:
    def test_missing_record(self, persistence):
        assert persistence.get_item(STATE_KEY) is None
        assert persistence.load() is None

    def test_set_and_get(self, persistence, storage_dir):
        persistence.set_item("example", {"a": [1, 2]})

        assert persistence.get_item("example") == {"a": [1, 2]}
        # No temporary files are left next to the record
        assert [p.name for p in storage_dir.iterdir()] == ["example.json"]

    def test_unparseable_record(self, persistence, storage_dir):
        storage_dir.mkdir(parents=True)
        (storage_dir / f"{STATE_KEY}.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(SessionRestoreError):
            persistence.get_item(STATE_KEY)

    def test_clear(self, persistence, populated):
        persistence.save(populated)
        persistence.clear()

        assert persistence.get_item(STATE_KEY) is None
        assert persistence.get_item(FILES_KEY) is None


class TestSaveAndRestore:
    def test_state_record_shape(self, persistence, populated):
        persistence.save(populated)

        state = persistence.get_item(STATE_KEY)
        assert [d["name"] for d in state["docs"]] == ["a.pdf", "b.pdf"]
        assert len(state["selectedPages"]) == 2
        assert state["tool"] == "draw"
        assert list(state["drawings"].values())[0][0]["type"] == "stroke"
        assert set(persistence.get_item(FILES_KEY)) == set(populated.source_files)

    def test_round_trip(self, persistence, populated):
        persistence.save(populated)

        restored = persistence.restore()

        assert persistence.restore_error is None
        assert restored.to_dict() == populated.to_dict()
        assert restored.source_files == populated.source_files
        assert [p.page_key for p in restored.selected_pages] == [
            p.page_key for p in populated.selected_pages
        ]

    def test_restore_without_records(self, persistence):
        session = persistence.restore()
        assert session.documents == []
        assert persistence.restore_error is None

    def test_failed_restore_clears_everything(self, persistence, populated, storage_dir):
        persistence.save(populated)
        # Drop the source files of every document
        persistence.set_item(FILES_KEY, {})

        session = persistence.restore()

        assert session.documents == []
        assert persistence.restore_error
        assert not (storage_dir / f"{STATE_KEY}.json").exists()
        assert not (storage_dir / f"{FILES_KEY}.json").exists()

    @pytest.mark.parametrize("state", [
        ["not", "a", "mapping"],
        {"drawings": ["x"]},
        {"drawings": {"doc-1": "x"}},
        {"drawings": {"doc-1": [5]}},
        {"selectedPages": ["x"]},
        {"selectedPages": [[1, "doc_x", 1]]},
        {"selectedPages": 5},
        {"docs": ["x"]},
        {"docs": {"id": "doc_x"}},
        {"zoom": "big"},
    ])
    def test_malformed_state_starts_empty(self, persistence, storage_dir, state):
        persistence.set_item(STATE_KEY, state)

        session = persistence.restore()

        assert session.documents == []
        assert session.selected_pages == []
        assert session.annotations.annotation_count() == 0
        assert persistence.restore_error
        assert not (storage_dir / f"{STATE_KEY}.json").exists()

    def test_legacy_point_list_drawings(self, persistence):
        persistence.set_item(STATE_KEY, {"docs": [], "selectedPages": [],
                                         "drawings": {"doc-1": [[{"x": 0.1, "y": 0.1}]]}})

        session = persistence.restore()

        assert persistence.restore_error is None
        assert session.annotations.get_page_annotations(PageKey("doc", 1))[0].points == [(0.1, 0.1)]

    def test_legacy_draw_mode(self, persistence):
        persistence.set_item(STATE_KEY, {"docs": [], "selectedPages": [], "drawings": {},
                                         "drawMode": True})

        assert persistence.restore().preferences.tool == Tool.DRAW


class TestAutoSave:
    def test_every_change_is_written(self, persistence, session, pdf_a):
        persistence.attach(session)

        doc = session.ingest_files([("a.pdf", pdf_a)]).loaded[0]
        session.add_page(doc.id, 2)

        state = persistence.get_item(STATE_KEY)
        assert state["selectedPages"][0]["page_number"] == 2
        assert doc.id in persistence.get_item(FILES_KEY)

    def test_last_write_wins(self, persistence, session, pdf_a, storage_dir):
        persistence.attach(session)
        doc = session.ingest_files([("a.pdf", pdf_a)]).loaded[0]
        session.add_page(doc.id, 1)
        session.remove_page(0)

        with open(storage_dir / f"{STATE_KEY}.json", encoding="utf-8") as f:
            assert json.load(f)["selectedPages"] == []

    def test_restored_session_round_trips_again(self, persistence, populated):
        persistence.save(populated)
        restored = persistence.restore()
        persistence.attach(restored)

        restored.change_zoom(0.5)

        assert Session.from_dict(
            persistence.get_item(STATE_KEY), dict(restored.source_files)
        ).preferences.zoom == 1.5
