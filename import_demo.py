"""
Example: import documents into a local library (SQLite + Whoosh) and print
what was extracted.

Usage:
    python3 import_demo.py book.epub notes.txt --title "My Book"
    python3 import_demo.py --worker          # run the RQ cover worker
"""

import argparse
from pathlib import Path

from readus.library import (
    LibraryConfig,
    LibraryServices,
    RQJobQueue,
    SourceUnavailableError,
    setup_logging,
)


def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("files", nargs="*", type=Path, help="Documents to import (pdf, epub, docx, txt)")
    parser.add_argument("--title", default=None, help="Title for a single imported file")
    parser.add_argument("--db", default=None, type=Path, help="SQLite DB path (overrides DATABASE_URL)")
    parser.add_argument("--storage-root", default=None, type=Path, help="Library storage root")
    parser.add_argument("--search", default=None, help="Run a library search after importing")
    parser.add_argument("--worker", action="store_true", help="Run the RQ cover worker (needs REDIS_URL)")
    args = parser.parse_args()

    config = LibraryConfig.from_env()
    if args.db:
        config.database_url = f"sqlite+pysqlite:///{args.db}"
    if args.storage_root:
        config.storage_root = args.storage_root
    setup_logging(config.log_level, config.log_dir)

    if args.worker:
        if not config.redis_url:
            parser.error("--worker needs REDIS_URL")
        RQJobQueue(config.redis_url).work()
        return

    if args.title and len(args.files) > 1:
        parser.error("--title can only be used with a single file")

    services = LibraryServices.build(config)
    try:
        importer = services.importer()
        for path in args.files:
            try:
                document = importer.import_file(path, suggested_name=args.title)
            except SourceUnavailableError as exc:
                print(f"Skipped {path}: {exc}")
                continue
            print(
                f"{document.id}  {document.format.value:<4}  {document.title!r}  "
                f"words={document.word_count} pages={document.page_count} "
                f"minutes={document.estimated_reading_time} text={document.text_extraction_status.value}"
            )

        if args.search:
            for result in services.search.search(args.search):
                print(f"[{result.type.value}] {result.document_title}: {result.snippet}")

        stats = services.statistics.compute_stats()
        print(f"Library holds {len(services.repository.list_documents())} documents; streak={stats.reading_streak}")
    finally:
        services.close()


if __name__ == "__main__":
    main()
