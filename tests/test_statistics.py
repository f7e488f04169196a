import logging
from datetime import date, datetime, timedelta

import pytest

from readus.library import (
    DocumentFormat,
    DocumentRecord,
    ReadingSessionRecord,
    ReadingStatistics,
    UnknownSessionError,
)
from readus.library.statistics import reading_streak

NOW = datetime(2026, 6, 17, 15, 0, 0)


class FakeClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(NOW)


@pytest.fixture
def stats(repo, clock):
    for document_id, title in (("doc-a", "Alpha"), ("doc-b", "Beta")):
        repo.insert_document(
            DocumentRecord(id=document_id, title=title, file_path=f"/{document_id}.txt", format=DocumentFormat.TXT)
        )
    return ReadingStatistics(repo, clock=clock)


def add_closed(repo, session_id, start, seconds, document_id="doc-a", pages=0, words=0):
    repo.insert_session(
        ReadingSessionRecord(
            id=session_id,
            document_id=document_id,
            start_time=start,
            end_time=start + timedelta(seconds=seconds),
            pages_read=pages,
            words_read=words,
            duration_seconds=seconds,
        )
    )


def test_session_lifecycle(stats, repo, clock):
    session_id = stats.start_session("doc-a")
    opened = repo.get_session(session_id)
    assert opened.end_time is None

    clock.advance(seconds=90, microseconds=700000)
    stats.end_session(session_id, pages_read=3, words_read=450)

    closed = repo.get_session(session_id)
    assert closed.end_time == clock.now
    assert closed.duration_seconds == 90
    assert closed.pages_read == 3
    assert closed.words_read == 450


def test_ending_unknown_session_is_logged_noop(stats, repo, caplog):
    with caplog.at_level(logging.WARNING):
        stats.end_session("ghost", pages_read=1, words_read=1)
    assert "ghost" in caplog.text
    assert repo.list_closed_sessions() == []


def test_stats_ignore_open_sessions(stats, repo):
    stats.start_session("doc-a")
    result = stats.compute_stats()
    assert result.total_reading_time == 0
    assert result.average_reading_speed == 0
    assert result.reading_streak == 0
    assert result.most_read_document is None


def test_aggregates(stats, repo):
    add_closed(repo, "s1", NOW - timedelta(hours=2), 120, pages=2, words=300)
    add_closed(repo, "s2", NOW - timedelta(days=3), 180, document_id="doc-b", pages=4, words=300)
    add_closed(repo, "s3", datetime(2026, 5, 30, 10, 0), 600, document_id="doc-b", pages=1, words=100)

    result = stats.compute_stats()

    assert result.total_reading_time == 900
    assert result.total_pages_read == 7
    assert result.total_words_read == 700
    assert result.average_reading_speed == round(700 / 15)
    assert result.sessions_today == 1
    assert result.sessions_this_week == 2
    assert result.sessions_this_month == 2
    assert result.most_read_document.id == "doc-b"
    assert result.most_read_document.title == "Beta"
    assert result.most_read_document.time_spent == 780


def test_most_read_tie_uses_smallest_id(stats, repo):
    add_closed(repo, "s1", NOW - timedelta(hours=1), 300, document_id="doc-b")
    add_closed(repo, "s2", NOW - timedelta(hours=2), 300, document_id="doc-a")
    assert stats.compute_stats().most_read_document.id == "doc-a"


def test_streak_of_three_days(stats, repo):
    for i in range(3):
        add_closed(repo, f"s{i}", NOW - timedelta(days=i), 60)
    add_closed(repo, "gap", NOW - timedelta(days=5), 60)
    assert stats.compute_stats().reading_streak == 3


def test_streak_broken_when_nothing_today(stats, repo):
    add_closed(repo, "s1", NOW - timedelta(days=1), 60)
    assert stats.compute_stats().reading_streak == 0


def test_reading_streak_counts_distinct_days():
    today = date(2026, 6, 17)
    days = [today, today, today - timedelta(days=1), today - timedelta(days=3)]
    assert reading_streak(days, today) == 2
    assert reading_streak([], today) == 0


def test_daily_reading_time(stats, repo):
    add_closed(repo, "s1", NOW - timedelta(hours=1), 60)
    add_closed(repo, "s2", NOW - timedelta(hours=3), 30)
    add_closed(repo, "s3", NOW - timedelta(days=1), 120)
    add_closed(repo, "old", NOW - timedelta(days=60), 999)

    daily = stats.daily_reading_time(days=30)

    assert [(d.date, d.total_seconds) for d in daily] == [
        (date(2026, 6, 17), 90),
        (date(2026, 6, 16), 120),
    ]


def test_daily_reading_time_window_is_trailing_days(stats, repo, clock):
    clock.now = datetime(2026, 6, 17, 8, 0, 0)
    add_closed(repo, "recent", clock.now - timedelta(hours=20), 45)
    add_closed(repo, "outside", clock.now - timedelta(hours=30), 60)

    daily = stats.daily_reading_time(days=1)

    assert [(d.date, d.total_seconds) for d in daily] == [(date(2026, 6, 16), 45)]


def test_document_sessions_newest_first(stats, repo):
    add_closed(repo, "older", NOW - timedelta(days=2), 60)
    add_closed(repo, "newer", NOW - timedelta(days=1), 60)
    add_closed(repo, "elsewhere", NOW, 60, document_id="doc-b")
    assert [s.id for s in stats.document_sessions("doc-a")] == ["newer", "older"]


def test_get_session_raises_for_unknown_id(stats):
    with pytest.raises(UnknownSessionError):
        stats.get_session("ghost")
