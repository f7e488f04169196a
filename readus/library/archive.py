from __future__ import annotations

import io
import zipfile
import zlib
from pathlib import Path
from typing import List, Union

from .errors import CorruptArchiveError, EntryNotFoundError


class ArchiveReader:
    """
    Read-only view over a ZIP container (EPUB and DOCX are both ZIP files).
    Opening validates the signature and central directory; afterwards the
    reader only lists and decompresses entries.
    """

    def __init__(self, zf: zipfile.ZipFile):
        self._zf = zf

    @classmethod
    def open(cls, data: bytes) -> "ArchiveReader":
        if not data:
            raise CorruptArchiveError("Archive is empty")
        try:
            zf = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as exc:
            raise CorruptArchiveError(f"Invalid ZIP container: {exc}") from exc
        return cls(zf)

    @classmethod
    def from_path(cls, path: Union[str, Path]) -> "ArchiveReader":
        try:
            data = Path(path).read_bytes()
        except OSError as exc:
            raise CorruptArchiveError(f"Cannot read archive {path}: {exc}") from exc
        return cls.open(data)

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self._zf.close()

    def list(self) -> List[str]:
        return [info.filename for info in self._zf.infolist() if not info.is_dir()]

    def has(self, path: str) -> bool:
        try:
            self._zf.getinfo(path)
        except KeyError:
            return False
        return True

    def read_bytes(self, path: str) -> bytes:
        try:
            return self._zf.read(path)
        except KeyError as exc:
            raise EntryNotFoundError(path) from exc
        except (zipfile.BadZipFile, zlib.error, NotImplementedError, EOFError) as exc:
            raise CorruptArchiveError(f"Cannot decompress {path}: {exc}") from exc

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        return self.read_bytes(path).decode(encoding, errors="replace")
