from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from PIL import Image

logger = logging.getLogger(__name__)

THUMBNAIL_SIZE = (200, 300)
THUMBNAIL_QUALITY = 80


@dataclass
class StoragePaths:
    root: Path

    @property
    def documents_dir(self) -> Path:
        return self.root / "documents"

    @property
    def thumbnails_dir(self) -> Path:
        return self.root / "thumbnails"

    def document_path(self, document_id: str, extension: str) -> Path:
        return self.documents_dir / f"{document_id}.{extension.lstrip('.')}"

    def thumbnail_path(self, document_id: str) -> Path:
        return self.thumbnails_dir / f"{document_id}.jpg"


class LocalLibraryStorage:
    """
    Manages the filesystem layout of the library: one managed copy per
    imported document under `documents/` and one JPEG cover per document
    under `thumbnails/`.
    """

    def __init__(self, storage_paths: StoragePaths):
        self.paths = storage_paths

    def ensure_base_dirs(self) -> None:
        self.paths.documents_dir.mkdir(parents=True, exist_ok=True)
        self.paths.thumbnails_dir.mkdir(parents=True, exist_ok=True)

    def save_original(self, document_id: str, source: Path, extension: str) -> Path:
        self.ensure_base_dirs()
        target = self.paths.document_path(document_id, extension)
        shutil.copy2(source, target)
        return target

    def write_thumbnail(self, document_id: str, image: Image.Image) -> Path:
        self.ensure_base_dirs()
        target = self.paths.thumbnail_path(document_id)
        thumb = image.convert("RGB")
        thumb.thumbnail(THUMBNAIL_SIZE)
        thumb.save(target, format="JPEG", quality=THUMBNAIL_QUALITY)
        return target

    def thumbnail_exists(self, document_id: str) -> bool:
        return self.paths.thumbnail_path(document_id).exists()

    def find_thumbnail(self, document_id: str) -> Optional[Path]:
        path = self.paths.thumbnail_path(document_id)
        return path if path.exists() else None

    def delete_document_files(self, document_id: str, file_path: Optional[str]) -> None:
        """Remove the managed copy and cover; missing files are ignored."""
        candidates = [self.paths.thumbnail_path(document_id)]
        if file_path:
            candidates.append(Path(file_path))
        for path in candidates:
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("Could not delete %s for document %s: %s", path, document_id, exc)
