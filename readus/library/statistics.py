from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from .errors import UnknownSessionError
from .models import (
    DailyReadingTime,
    MostReadDocument,
    ReadingSessionRecord,
    ReadingStats,
    utcnow,
)
from .repository import LibraryRepository

logger = logging.getLogger(__name__)


def reading_streak(session_dates: Iterable[date], today: date) -> int:
    """
    Length of the unbroken run of reading days ending today. A run that ended
    yesterday counts as 0.
    """
    streak = 0
    for i, day in enumerate(sorted(set(session_dates), reverse=True)):
        if day == today - timedelta(days=i):
            streak += 1
        else:
            break
    return streak


def _most_read(sessions: List[ReadingSessionRecord]) -> Optional[tuple]:
    totals: Dict[str, int] = defaultdict(int)
    for s in sessions:
        totals[s.document_id] += s.duration_seconds
    if not totals:
        return None
    return min(totals.items(), key=lambda item: (-item[1], item[0]))


class ReadingStatistics:
    """
    Session lifecycle plus the aggregates derived from closed sessions.
    Open sessions (no end time) never contribute to any figure.

    `clock` returns naive UTC datetimes and is injectable for tests.
    """

    def __init__(self, repository: LibraryRepository, clock: Optional[Callable[[], datetime]] = None):
        self.repo = repository
        self.clock = clock or utcnow

    def start_session(self, document_id: str) -> str:
        session_id = uuid.uuid4().hex
        self.repo.insert_session(
            ReadingSessionRecord(id=session_id, document_id=document_id, start_time=self.clock())
        )
        return session_id

    def end_session(self, session_id: str, pages_read: int = 0, words_read: int = 0) -> None:
        session = self.repo.get_session(session_id)
        if session is None:
            logger.warning("end_session called for unknown session %s", session_id)
            return
        end_time = self.clock()
        duration = max(0, int((end_time - session.start_time).total_seconds()))
        self.repo.close_session(
            session_id,
            end_time=end_time,
            pages_read=pages_read,
            words_read=words_read,
            duration_seconds=duration,
        )

    def compute_stats(self) -> ReadingStats:
        sessions = self.repo.list_closed_sessions()
        now = self.clock()
        today = now.date()

        total_time = sum(s.duration_seconds for s in sessions)
        total_pages = sum(s.pages_read for s in sessions)
        total_words = sum(s.words_read for s in sessions)
        speed = round(total_words / (total_time / 60)) if total_time > 0 else 0

        week_start = now - timedelta(days=7)
        month_start = datetime(now.year, now.month, 1)

        most_read = None
        top = _most_read(sessions)
        if top is not None:
            document_id, seconds = top
            document = self.repo.get_document(document_id)
            title = document.title if document else "Unknown"
            most_read = MostReadDocument(id=document_id, title=title, time_spent=seconds)

        return ReadingStats(
            total_reading_time=total_time,
            total_pages_read=total_pages,
            total_words_read=total_words,
            average_reading_speed=speed,
            reading_streak=reading_streak((s.start_time.date() for s in sessions), today),
            sessions_today=sum(1 for s in sessions if s.start_time.date() == today),
            sessions_this_week=sum(1 for s in sessions if s.start_time >= week_start),
            sessions_this_month=sum(1 for s in sessions if s.start_time >= month_start),
            most_read_document=most_read,
        )

    def daily_reading_time(self, days: int = 30) -> List[DailyReadingTime]:
        """Seconds read per day over the trailing window, most recent first. Days without reading are omitted."""
        since = self.clock() - timedelta(days=days)
        totals: Dict[date, int] = defaultdict(int)
        for s in self.repo.list_closed_sessions(since=since):
            totals[s.start_time.date()] += s.duration_seconds
        return [DailyReadingTime(date=d, total_seconds=totals[d]) for d in sorted(totals, reverse=True)]

    def get_session(self, session_id: str) -> ReadingSessionRecord:
        session = self.repo.get_session(session_id)
        if session is None:
            raise UnknownSessionError(session_id)
        return session

    def document_sessions(self, document_id: str) -> List[ReadingSessionRecord]:
        return self.repo.list_sessions_for_document(document_id)
