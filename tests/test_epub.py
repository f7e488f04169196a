import zipfile

import pytest

from conftest import build_epub
from readus.library import (
    ChapterNotFoundError,
    CorruptArchiveError,
    EntryNotFoundError,
    EpubParsingEngine,
    TextExtractionStatus,
    get_epub_chapter_content,
)
from readus.library.epub import EMPTY_TEXT_PLACEHOLDER, ERROR_TEXT_PLACEHOLDER, resolve_href

CHAPTERS = [
    ("chap1.xhtml", "Opening", "<h1>One</h1><p>Hello brave world</p><script>var x = 1;</script>"),
    ("chap2.xhtml", "The Middle", "<p>More   words\nhere</p>"),
]


def test_parses_metadata_chapters_and_text(tmp_path):
    path = build_epub(tmp_path / "book.epub", CHAPTERS)
    content = EpubParsingEngine().parse(path)

    assert content.extraction_status == TextExtractionStatus.OK
    assert content.metadata.title == "Sample Book"
    assert content.metadata.author == "Jane Doe"
    assert content.metadata.language == "fr"
    assert content.opf_path == "OEBPS/content.opf"
    assert [c.href for c in content.chapters] == ["OEBPS/chap1.xhtml", "OEBPS/chap2.xhtml"]
    assert [c.title for c in content.chapters] == ["Opening", "The Middle"]
    assert [c.order for c in content.chapters] == [1, 2]
    assert content.text == "One Hello brave world\n\nMore words here"
    assert [entry.title for entry in content.toc] == ["Opening", "The Middle"]


def test_chapters_without_toc_get_default_titles(tmp_path):
    path = build_epub(tmp_path / "book.epub", CHAPTERS, ncx=False)
    content = EpubParsingEngine().parse(path)
    assert [c.title for c in content.chapters] == ["Chapter 1", "Chapter 2"]
    assert content.toc == content.chapters


def test_package_at_archive_root(tmp_path):
    path = build_epub(tmp_path / "book.epub", CHAPTERS, opf_dir="")
    content = EpubParsingEngine().parse(path)
    assert [c.href for c in content.chapters] == ["chap1.xhtml", "chap2.xhtml"]
    assert "Hello brave world" in content.text


def test_zero_byte_file_degrades(tmp_path):
    path = tmp_path / "empty.epub"
    path.write_bytes(b"")
    content = EpubParsingEngine().parse(path)
    assert content.extraction_status == TextExtractionStatus.FAILED
    assert content.metadata.title == "Unknown EPUB"
    assert content.metadata.author == "Unknown"
    assert content.text == ERROR_TEXT_PLACEHOLDER
    assert content.countable_text == ""
    assert content.chapters == []


def test_archive_without_package_document(tmp_path):
    path = tmp_path / "bare.epub"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip")
    content = EpubParsingEngine().parse(path)
    assert content.extraction_status == TextExtractionStatus.EMPTY
    assert content.text == EMPTY_TEXT_PLACEHOLDER
    assert content.metadata.title == "Unknown EPUB"


def test_container_pointing_nowhere_falls_back_to_default_locations(tmp_path):
    path = build_epub(tmp_path / "book.epub", CHAPTERS)
    broken = tmp_path / "broken.epub"
    with zipfile.ZipFile(path) as src, zipfile.ZipFile(broken, "w") as dst:
        for info in src.infolist():
            data = src.read(info.filename)
            if info.filename == "META-INF/container.xml":
                data = data.replace(b"OEBPS/content.opf", b"missing/package.opf")
            dst.writestr(info.filename, data)
    content = EpubParsingEngine().parse(broken)
    assert content.opf_path == "OEBPS/content.opf"
    assert content.extraction_status == TextExtractionStatus.OK


@pytest.mark.parametrize("href", ["chap1.xhtml", "/OEBPS/chap1.xhtml", "OEBPS/chap1.xhtml", "../OEBPS/chap1.xhtml", "chap1.xhtml#sec"])
def test_chapter_content_resolves_href_forms(tmp_path, href):
    path = build_epub(tmp_path / "book.epub", CHAPTERS)
    html = get_epub_chapter_content(path, href)
    assert "Hello brave world" in html


def test_missing_chapter_raises(tmp_path):
    path = build_epub(tmp_path / "book.epub", CHAPTERS)
    with pytest.raises(ChapterNotFoundError) as excinfo:
        get_epub_chapter_content(path, "chap9.xhtml")
    assert isinstance(excinfo.value, EntryNotFoundError)
    assert "chap9.xhtml" in str(excinfo.value)


def test_chapter_content_of_corrupt_file_raises(tmp_path):
    path = tmp_path / "bad.epub"
    path.write_bytes(b"not a zip")
    with pytest.raises(CorruptArchiveError):
        get_epub_chapter_content(path, "chap1.xhtml")


def test_resolve_href():
    assert resolve_href("OEBPS", "text/ch1.xhtml") == "OEBPS/text/ch1.xhtml"
    assert resolve_href("OEBPS/text", "../images/a.png") == "OEBPS/images/a.png"
    assert resolve_href("OEBPS", "/root.xhtml") == "root.xhtml"
    assert resolve_href("", "ch%201.xhtml#frag") == "ch 1.xhtml#frag"
