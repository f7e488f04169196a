import zipfile

import pytest

from readus.library import ArchiveReader, CorruptArchiveError, EntryNotFoundError


def _zip_bytes(tmp_path, entries):
    path = tmp_path / "sample.zip"
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path.read_bytes()


def test_lists_and_reads_entries(tmp_path):
    data = _zip_bytes(tmp_path, {"a.txt": "alpha", "dir/b.xml": "<b/>"})
    with ArchiveReader.open(data) as archive:
        assert sorted(archive.list()) == ["a.txt", "dir/b.xml"]
        assert archive.has("dir/b.xml")
        assert archive.read_text("a.txt") == "alpha"
        assert archive.read_bytes("dir/b.xml") == b"<b/>"


def test_missing_entry_raises(tmp_path):
    data = _zip_bytes(tmp_path, {"a.txt": "alpha"})
    with ArchiveReader.open(data) as archive:
        with pytest.raises(EntryNotFoundError) as excinfo:
            archive.read_bytes("nope.txt")
    assert excinfo.value.path == "nope.txt"


@pytest.mark.parametrize("payload", [b"", b"definitely not a zip file"])
def test_corrupt_input_raises(payload):
    with pytest.raises(CorruptArchiveError):
        ArchiveReader.open(payload)


def test_from_path_missing_file(tmp_path):
    with pytest.raises(CorruptArchiveError):
        ArchiveReader.from_path(tmp_path / "missing.epub")
