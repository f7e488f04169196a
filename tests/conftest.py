import zipfile
from pathlib import Path

import pytest

from readus.library import (
    DocumentImporter,
    LibraryRepository,
    LocalLibraryStorage,
    StoragePaths,
)

CONTAINER_XML = """<?xml version="1.0"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>"""

OPF_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>{title}</dc:title>
    <dc:creator>{author}</dc:creator>
    <dc:language>fr</dc:language>
    {cover_meta}
  </metadata>
  <manifest>
    {items}
  </manifest>
  <spine toc="ncx">
    {itemrefs}
  </spine>
</package>"""

NCX_TEMPLATE = """<?xml version="1.0" encoding="utf-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
    {points}
  </navMap>
</ncx>"""


def chapter_html(body: str) -> str:
    return (
        '<?xml version="1.0" encoding="utf-8"?>'
        '<html xmlns="http://www.w3.org/1999/xhtml"><head><title>x</title>'
        "<style>p { color: red; }</style></head>"
        f"<body>{body}</body></html>"
    )


def build_epub(path: Path, chapters, title="Sample Book", author="Jane Doe", opf_dir="OEBPS", cover=None, ncx=True):
    """
    Write a small EPUB 2 file. `chapters` is a list of (file name, toc label, body html).
    """
    opf_path = f"{opf_dir}/content.opf" if opf_dir else "content.opf"
    prefix = f"{opf_dir}/" if opf_dir else ""
    items, itemrefs, points = [], [], []
    for i, (name, label, _) in enumerate(chapters, start=1):
        items.append(f'<item id="ch{i}" href="{name}" media-type="application/xhtml+xml"/>')
        itemrefs.append(f'<itemref idref="ch{i}"/>')
        points.append(
            f'<navPoint id="np{i}" playOrder="{i}"><navLabel><text>{label}</text></navLabel>'
            f'<content src="{name}"/></navPoint>'
        )
    if ncx:
        items.append('<item id="ncx" href="toc.ncx" media-type="application/x-dtbncx+xml"/>')
    cover_meta = ""
    if cover is not None:
        items.append('<item id="cover-img" href="images/cover.png" media-type="image/png"/>')
        cover_meta = '<meta name="cover" content="cover-img"/>'

    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip")
        zf.writestr("META-INF/container.xml", CONTAINER_XML.format(opf_path=opf_path))
        zf.writestr(
            opf_path,
            OPF_TEMPLATE.format(
                title=title,
                author=author,
                cover_meta=cover_meta,
                items="\n    ".join(items),
                itemrefs="\n    ".join(itemrefs),
            ),
        )
        if ncx:
            zf.writestr(f"{prefix}toc.ncx", NCX_TEMPLATE.format(points="\n    ".join(points)))
        for name, _, body in chapters:
            zf.writestr(f"{prefix}{name}", chapter_html(body))
        if cover is not None:
            zf.writestr(f"{prefix}images/cover.png", cover)
    return path


def build_docx(path: Path, paragraphs=("Hello world",)):
    body = "".join(f"<w:p><w:r><w:t>{p}</w:t></w:r></w:p>" for p in paragraphs)
    document_xml = (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
        '<w:document xmlns:w="http://schemas.openxmlformats.org/wordprocessingml/2006/main">'
        f"<w:body>{body}</w:body></w:document>"
    )
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("[Content_Types].xml", '<?xml version="1.0"?><Types/>')
        zf.writestr("word/document.xml", document_xml)
    return path


class FakeDoclingDocument:
    def __init__(self, text):
        self.text = text

    def export_to_text(self):
        return self.text

    def export_to_html(self):
        return "".join(f"<p>{line}</p>" for line in self.text.split("\n\n") if line)


class FakeConverter:
    """Stands in for docling's DocumentConverter in unit tests."""

    def __init__(self, text="", error=None):
        self.text = text
        self.error = error
        self.calls = []

    def convert(self, source):
        self.calls.append(source)
        if self.error is not None:
            raise self.error
        return type("ConversionResult", (), {"document": FakeDoclingDocument(self.text)})()


@pytest.fixture
def repo(tmp_path):
    repository = LibraryRepository(f"sqlite+pysqlite:///{tmp_path / 'library.db'}")
    yield repository
    repository.close()


@pytest.fixture
def storage(tmp_path):
    return LocalLibraryStorage(StoragePaths(tmp_path / "data"))


@pytest.fixture
def scheduled_covers():
    return []


@pytest.fixture
def importer(repo, storage, scheduled_covers):
    return DocumentImporter(repository=repo, storage=storage, cover_scheduler=scheduled_covers.append)
