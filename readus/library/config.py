from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

DEFAULT_DATABASE_URL = "sqlite+pysqlite:///./data/readus.db"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class LibraryConfig:
    database_url: str = DEFAULT_DATABASE_URL
    storage_root: Path = Path("./data")
    whoosh_index_dir: Optional[Path] = Path("./data/whoosh")
    redis_url: Optional[str] = None
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    @classmethod
    def from_env(cls) -> "LibraryConfig":
        whoosh_dir = os.getenv("WHOOSH_DIR", "./data/whoosh")
        log_dir = os.getenv("LOG_DIR")
        return cls(
            database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
            storage_root=Path(os.getenv("LIBRARY_STORAGE_ROOT", "./data")),
            # An empty WHOOSH_DIR disables full-text indexing.
            whoosh_index_dir=Path(whoosh_dir) if whoosh_dir else None,
            redis_url=os.getenv("REDIS_URL") or None,
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_dir=Path(log_dir) if log_dir else None,
        )


def setup_logging(level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    handlers = [logging.StreamHandler()]
    if log_dir is not None:
        log_dir = Path(log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_dir / "app.log", encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)
