# -*- coding: utf-8 -*-

import datetime as dt
from dataclasses import dataclass
from typing import Optional, Sequence

from core.stats_calculator import StreakResult, streak_from_days
from core.time_utils import format_duration
from domain.models import Session


@dataclass(frozen=True)
class SessionSummary:
    duration: int
    duration_formatted: str
    date: dt.datetime


@dataclass(frozen=True)
class TaskDetailStats:
    total_duration: int
    total_duration_formatted: str
    session_count: int
    average_duration: int
    average_duration_formatted: str
    longest_session: Optional[SessionSummary]
    shortest_session: Optional[SessionSummary]
    current_streak: int
    best_streak: int
    days_worked: int
    last_session: Optional[SessionSummary]


def _summary(s: Session) -> SessionSummary:
    return SessionSummary(
        duration=s.duration,
        duration_formatted=format_duration(s.duration),
        date=s.start_time,
    )


def calculate_streaks(sessions: Sequence[Session], now: Optional[dt.datetime] = None) -> StreakResult:
    """Same streak rules as the global one, over whatever sessions are passed."""
    now = now or dt.datetime.now()
    return streak_from_days({s.start_time.date() for s in sessions}, now.date())


def get_unique_days(sessions: Sequence[Session]) -> int:
    return len({s.start_time.date() for s in sessions})


def get_task_detail_stats(
    task_id: str,
    sessions: Sequence[Session],
    now: Optional[dt.datetime] = None,
) -> TaskDetailStats:
    task_sessions = [s for s in sessions if s.task_id == task_id]

    if not task_sessions:
        return TaskDetailStats(
            total_duration=0,
            total_duration_formatted="0s",
            session_count=0,
            average_duration=0,
            average_duration_formatted="0s",
            longest_session=None,
            shortest_session=None,
            current_streak=0,
            best_streak=0,
            days_worked=0,
            last_session=None,
        )

    total = sum(s.duration for s in task_sessions)
    count = len(task_sessions)
    average = total // count

    # strict comparisons: on ties the first one seen wins
    longest = task_sessions[0]
    shortest = task_sessions[0]
    for s in task_sessions[1:]:
        if s.duration > longest.duration:
            longest = s
        if s.duration < shortest.duration:
            shortest = s

    last = max(task_sessions, key=lambda s: s.start_time)
    streak = calculate_streaks(task_sessions, now)

    return TaskDetailStats(
        total_duration=total,
        total_duration_formatted=format_duration(total),
        session_count=count,
        average_duration=average,
        average_duration_formatted=format_duration(average),
        longest_session=_summary(longest),
        shortest_session=_summary(shortest),
        current_streak=streak.current,
        best_streak=streak.best,
        days_worked=get_unique_days(task_sessions),
        last_session=_summary(last),
    )
