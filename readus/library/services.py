from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from .config import LibraryConfig
from .covers import CoverGenerator
from .importer import CoverScheduler, DocumentImporter
from .indexing import NoopIndexer, WhooshIndexer
from .job_queue import RQJobQueue
from .models import DocumentRecord
from .repository import LibraryRepository
from .search import SearchAggregator
from .statistics import ReadingStatistics
from .storage import LocalLibraryStorage, StoragePaths

logger = logging.getLogger(__name__)


@dataclass
class LibraryServices:
    """
    Everything one process needs, built once from config at startup and
    closed at shutdown. Nothing here is a module-level singleton.
    """

    config: LibraryConfig
    repository: LibraryRepository
    storage: LocalLibraryStorage
    indexer: Union[WhooshIndexer, NoopIndexer]
    covers: CoverGenerator
    statistics: ReadingStatistics
    search: SearchAggregator
    job_queue: Optional[RQJobQueue] = None

    @classmethod
    def build(cls, config: LibraryConfig) -> "LibraryServices":
        repository = LibraryRepository(config.database_url)
        storage = LocalLibraryStorage(StoragePaths(config.storage_root))
        storage.ensure_base_dirs()
        indexer = WhooshIndexer(config.whoosh_index_dir) if config.whoosh_index_dir else NoopIndexer()
        job_queue = RQJobQueue(config.redis_url) if config.redis_url else None
        logger.info(
            "Library ready (store=%s, storage=%s, index=%s, queue=%s)",
            config.database_url,
            config.storage_root,
            config.whoosh_index_dir or "disabled",
            "rq" if job_queue else "in-process",
        )
        return cls(
            config=config,
            repository=repository,
            storage=storage,
            indexer=indexer,
            covers=CoverGenerator(repository, storage),
            statistics=ReadingStatistics(repository),
            search=SearchAggregator(repository),
            job_queue=job_queue,
        )

    def importer(self, cover_scheduler: Optional[CoverScheduler] = None) -> DocumentImporter:
        """
        Importer wired to this process. Covers go to the RQ queue when one is
        configured, otherwise to `cover_scheduler`, otherwise run inline.
        """
        if self.job_queue is not None:
            cover_scheduler = self._enqueue_cover
        return DocumentImporter(
            repository=self.repository,
            storage=self.storage,
            indexer=self.indexer,
            cover_scheduler=cover_scheduler or self.covers.generate,
        )

    def _enqueue_cover(self, document: DocumentRecord) -> None:
        self.job_queue.enqueue_cover_job(document.id, self.config)

    def delete_document(self, document_id: str) -> bool:
        """Remove the row (and everything hanging off it), its files and its index entries."""
        document = self.repository.get_document(document_id)
        if document is None:
            return False
        deleted = self.repository.delete_document(document_id)
        self.storage.delete_document_files(document_id, document.file_path)
        try:
            self.indexer.delete_document(document_id)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not drop index entries for %s: %s", document_id, exc)
        return deleted

    def close(self) -> None:
        self.repository.close()
