import json
from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from readus.library import (
    DocumentFormat,
    DocumentNotFoundError,
    DocumentRecord,
    HighlightRecord,
    HighlightType,
    LibraryRepository,
    NoteRecord,
    backup_library,
    dump_backup,
    export_annotations_json,
    export_markdown,
    restore_backup,
)


@pytest.fixture
def populated(repo):
    repo.insert_document(
        DocumentRecord(
            id="d1",
            title="Meditations",
            file_path="/lib/d1.epub",
            format=DocumentFormat.EPUB,
            page_count=12,
            word_count=2900,
            created_at=datetime(2026, 1, 5, 8, 0),
        )
    )
    repo.insert_highlight(
        HighlightRecord(
            id="h1",
            document_id="d1",
            type=HighlightType.QUOTE,
            text="The impediment to action advances action.",
            start_position=10,
            end_position=52,
            color="#FF0",
        )
    )
    repo.insert_note(
        NoteRecord(id="n1", document_id="d1", text="Obstacles as material.", position=10, highlight_id="h1",
                   created_at=datetime(2026, 1, 6, 9, 0))
    )
    return repo


def test_markdown_for_one_document(populated):
    markdown = export_markdown(populated, "d1")
    assert markdown.startswith("# Meditations\n\n**Format:** EPUB\n**Pages:** 12\n**Words:** 2900\n**Created:** 2026-01-05\n\n---\n\n")
    assert "## Highlights\n\n### Quote\n\n> The impediment to action advances action.\n\n*Page 10*\n\n---\n\n" in markdown
    assert "## Notes\n\nObstacles as material.\n\n*Created: 2026-01-06*\n\n---\n\n" in markdown
    assert "*From:" not in markdown


def test_markdown_for_whole_library_names_sources(populated):
    markdown = export_markdown(populated)
    assert not markdown.startswith("# ")
    assert "*From: Meditations*" in markdown
    assert "### Meditations\n\nObstacles as material." in markdown


def test_markdown_unknown_document(repo):
    with pytest.raises(DocumentNotFoundError):
        export_markdown(repo, "missing")


def test_annotations_json(populated):
    payload = export_annotations_json(populated, "d1")
    assert payload["document"] == {"id": "d1", "title": "Meditations", "format": "epub"}
    assert payload["highlights"][0]["type"] == "quote"
    assert payload["notes"][0]["highlight_id"] == "h1"


def test_backup_envelope_is_json(populated):
    payload = json.loads(dump_backup(populated))
    assert payload["version"] == "1.0"
    assert "exportedAt" in payload
    assert [d["id"] for d in payload["documents"]] == ["d1"]
    assert payload["documents"][0]["format"] == "epub"
    assert payload["documents"][0]["created_at"] == "2026-01-05T08:00:00"


def test_restore_into_empty_store(populated, tmp_path):
    backup = json.loads(json.dumps(backup_library(populated)))
    target = LibraryRepository(f"sqlite+pysqlite:///{tmp_path / 'restored.db'}")
    try:
        counts = restore_backup(target, backup)
        again = restore_backup(target, backup)

        assert counts == {"documents": 1, "highlights": 1, "notes": 1}
        assert again == counts
        assert target.get_document("d1") == populated.get_document("d1")
        assert target.get_highlight("h1") == populated.get_highlight("h1")
        assert target.get_note("n1") == populated.get_note("n1")
        assert len(target.list_notes()) == 1
    finally:
        target.close()


def test_restore_rejects_unknown_version(repo):
    with pytest.raises(ValueError):
        restore_backup(repo, {"version": "2.0", "documents": []})


def test_restore_is_all_or_nothing(populated):
    backup = backup_library(populated)
    fresh = dict(backup["documents"][0], id="d2", file_path="/lib/d2.epub", title="Letters")
    clash = dict(backup["documents"][0], id="d3", file_path="/lib/d1.epub")
    backup["documents"] = [fresh, clash]

    with pytest.raises(IntegrityError):
        restore_backup(populated, backup)

    assert populated.get_document("d2") is None
    assert [d.id for d in populated.list_documents()] == ["d1"]
