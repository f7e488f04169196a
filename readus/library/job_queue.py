from __future__ import annotations

import logging
from typing import Optional

from redis import Redis
from rq import Queue, Worker

from .config import LibraryConfig
from .covers import CoverGenerator
from .repository import LibraryRepository
from .storage import LocalLibraryStorage, StoragePaths

logger = logging.getLogger(__name__)


def run_cover_job(document_id: str, config: LibraryConfig) -> Optional[str]:
    """
    RQ task entrypoint. Builds the store and storage from config and renders
    the cover of one document.
    """
    repo = LibraryRepository(config.database_url)
    try:
        storage = LocalLibraryStorage(StoragePaths(config.storage_root))
        return CoverGenerator(repo, storage).generate_by_id(document_id)
    finally:
        repo.close()


class RQJobQueue:
    """
    Redis-backed job queue using RQ. Cover jobs are pushed to Redis and a
    worker process started with `work()` renders them.
    """

    def __init__(self, redis_url: str = "redis://localhost:6379/0", queue_name: str = "cover-jobs"):
        self.redis = Redis.from_url(redis_url)
        self.queue = Queue(queue_name, connection=self.redis)

    def enqueue_cover_job(self, document_id: str, config: LibraryConfig):
        """
        Enqueue cover rendering. The RQ job id is derived from the document id
        so a document is never queued twice at the same time.
        """
        logger.info("Queueing cover job for %s", document_id)
        return self.queue.enqueue(run_cover_job, document_id, config, job_id=f"cover-{document_id}")

    def work(self):
        worker = Worker([self.queue], connection=self.redis)
        worker.work(with_scheduler=True)
