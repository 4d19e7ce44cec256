# -*- coding: utf-8 -*-

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from core.time_utils import day_end, day_start
from domain.models import Session


class SessionDateFilter(str, Enum):
    ALL = "all"
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


class SessionSortBy(str, Enum):
    DATE_ASC = "date-asc"
    DATE_DESC = "date-desc"
    DURATION_ASC = "duration-asc"
    DURATION_DESC = "duration-desc"


_FILTER_LABELS = {
    SessionDateFilter.ALL: "Todas",
    SessionDateFilter.TODAY: "Hoy",
    SessionDateFilter.WEEK: "Última semana",
    SessionDateFilter.MONTH: "Último mes",
    SessionDateFilter.CUSTOM: "Rango personalizado",
}

_SORT_LABELS = {
    SessionSortBy.DATE_ASC: "Fecha (más antigua)",
    SessionSortBy.DATE_DESC: "Fecha (más reciente)",
    SessionSortBy.DURATION_ASC: "Duración (menor)",
    SessionSortBy.DURATION_DESC: "Duración (mayor)",
}


def filter_sessions_by_date_range(
    sessions: Sequence[Session], start: dt.datetime, end: dt.datetime
) -> List[Session]:
    """Sessions starting between day_start(start) and day_end(end), inclusive."""
    lo = day_start(start)
    hi = day_end(end)
    return [s for s in sessions if lo <= s.start_time <= hi]


def filter_sessions_by_preset(
    sessions: Sequence[Session],
    preset: SessionDateFilter,
    now: Optional[dt.datetime] = None,
) -> List[Session]:
    # rolling windows ending today, unlike the calendar periods in stats
    now = now or dt.datetime.now()
    if preset == SessionDateFilter.TODAY:
        return filter_sessions_by_date_range(sessions, now, now)
    if preset == SessionDateFilter.WEEK:
        return filter_sessions_by_date_range(sessions, now - dt.timedelta(days=6), now)
    if preset == SessionDateFilter.MONTH:
        return filter_sessions_by_date_range(sessions, now - dt.timedelta(days=29), now)
    return list(sessions)


def sort_sessions(sessions: Sequence[Session], sort_by: SessionSortBy) -> List[Session]:
    if sort_by == SessionSortBy.DATE_ASC:
        return sorted(sessions, key=lambda s: s.start_time)
    if sort_by == SessionSortBy.DATE_DESC:
        return sorted(sessions, key=lambda s: s.start_time, reverse=True)
    if sort_by == SessionSortBy.DURATION_ASC:
        return sorted(sessions, key=lambda s: s.duration)
    if sort_by == SessionSortBy.DURATION_DESC:
        return sorted(sessions, key=lambda s: s.duration, reverse=True)
    return list(sessions)


def apply_session_filters(
    sessions: Sequence[Session],
    date_filter: SessionDateFilter,
    sort_by: SessionSortBy,
    custom_range: Optional[Tuple[dt.datetime, dt.datetime]] = None,
    now: Optional[dt.datetime] = None,
) -> List[Session]:
    if date_filter == SessionDateFilter.CUSTOM and custom_range:
        filtered = filter_sessions_by_date_range(sessions, *custom_range)
    else:
        filtered = filter_sessions_by_preset(sessions, date_filter, now)
    return sort_sessions(filtered, sort_by)


def group_sessions_by_day(sessions: Sequence[Session]) -> Dict[dt.date, List[Session]]:
    grouped: Dict[dt.date, List[Session]] = {}
    for s in sessions:
        grouped.setdefault(s.start_time.date(), []).append(s)
    return grouped


def get_filter_label(preset: SessionDateFilter) -> str:
    return _FILTER_LABELS.get(preset, "Todas")


def get_sort_label(sort_by: SessionSortBy) -> str:
    return _SORT_LABELS.get(sort_by, "Fecha (más reciente)")
