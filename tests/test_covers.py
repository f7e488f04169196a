import io
from pathlib import Path

import fitz
from PIL import Image

from conftest import build_epub
from readus.library import (
    CoverGenerator,
    DocumentFormat,
    DocumentRecord,
    LibraryConfig,
    UnavailableCoverRenderer,
    extract_cover_image,
    run_cover_job,
)


def png_bytes(size=(400, 600), color="red"):
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def insert(repo, document_id, path, fmt):
    document = DocumentRecord(id=document_id, title=document_id, file_path=str(path), format=fmt)
    repo.insert_document(document)
    return document


def test_epub_cover_from_package_metadata(tmp_path, repo, storage):
    cover = png_bytes()
    path = build_epub(tmp_path / "book.epub", [("c1.xhtml", "One", "<p>text</p>")], cover=cover)
    assert extract_cover_image(path) == cover

    document = insert(repo, "epub-1", path, DocumentFormat.EPUB)
    written = CoverGenerator(repo, storage).generate(document)

    assert written == str(storage.paths.thumbnail_path("epub-1"))
    assert repo.get_document("epub-1").cover_image_path == written
    with Image.open(written) as thumb:
        assert thumb.format == "JPEG"
        assert thumb.size == (200, 300)


def test_pdf_cover_renders_first_page(tmp_path, repo, storage):
    path = tmp_path / "paper.pdf"
    pdf = fitz.open()
    pdf.new_page(width=300, height=400).insert_text((50, 50), "Cover page")
    pdf.save(str(path))
    pdf.close()

    document = insert(repo, "pdf-1", path, DocumentFormat.PDF)
    written = CoverGenerator(repo, storage).generate(document)

    assert written is not None
    with Image.open(written) as thumb:
        assert thumb.width <= 200 and thumb.height <= 300


def test_text_documents_have_no_cover(tmp_path, repo, storage):
    path = tmp_path / "notes.txt"
    path.write_text("hi", encoding="utf-8")
    document = insert(repo, "txt-1", path, DocumentFormat.TXT)
    generator = CoverGenerator(repo, storage)

    assert isinstance(generator.renderer_for(DocumentFormat.TXT), UnavailableCoverRenderer)
    assert generator.generate(document) is None
    assert not storage.thumbnail_exists("txt-1")


def test_corrupt_epub_cover_failure_is_swallowed(tmp_path, repo, storage):
    path = tmp_path / "bad.epub"
    path.write_bytes(b"nope")
    document = insert(repo, "bad-1", path, DocumentFormat.EPUB)
    assert CoverGenerator(repo, storage).generate(document) is None
    assert repo.get_document("bad-1").cover_image_path is None


def test_run_cover_job_builds_its_own_services(tmp_path, repo, storage):
    path = build_epub(tmp_path / "book.epub", [("c1.xhtml", "One", "<p>text</p>")], cover=png_bytes())
    insert(repo, "job-1", path, DocumentFormat.EPUB)
    config = LibraryConfig(
        database_url=str(repo.engine.url),
        storage_root=storage.paths.root,
        whoosh_index_dir=None,
    )

    written = run_cover_job("job-1", config)

    assert written is not None and Path(written).exists()
    assert repo.get_document("job-1").cover_image_path == written
    assert run_cover_job("missing", config) is None
