# -*- coding: utf-8 -*-

"""
Pure statistics over the session log.

Nothing here touches storage: every function gets sessions and the
client/project/task lists as arguments and an optional `now`, so the same
inputs always give the same output. Labels are user-facing (Spanish).
"""

from __future__ import annotations

import calendar
import datetime as dt
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, Hashable, List, Optional, Sequence, Set, Tuple, TypeVar

from core.session_filters import filter_sessions_by_date_range
from core.time_utils import day_end, day_start, format_duration
from domain.models import Client, Project, Session, Task

K = TypeVar("K", bound=Hashable)

DAYS_SHORT = ["Lun", "Mar", "Mié", "Jue", "Vie", "Sáb", "Dom"]  # by weekday()
MONTHS_SHORT = ["Ene", "Feb", "Mar", "Abr", "May", "Jun", "Jul", "Ago", "Sep", "Oct", "Nov", "Dic"]

COLORS = [
    "#3B82F6",
    "#A855F7",
    "#22C55E",
    "#FB923C",
    "#EC4899",
    "#06B6D4",
    "#EAB308",
    "#F87171",
]

DISTRIBUTION_LIMIT = 6
RECENT_SESSIONS_LIMIT = 20

DELETED_TASK = "Tarea eliminada"
DELETED_PROJECT = "Proyecto eliminado"
DELETED_CLIENT = "Cliente eliminado"


class Period(str, Enum):
    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    CUSTOM = "custom"


PERIOD_SUFFIX = {
    Period.TODAY: "hoy",
    Period.WEEK: "esta semana",
    Period.MONTH: "este mes",
    Period.YEAR: "este año",
    Period.CUSTOM: "en período",
}


@dataclass(frozen=True)
class PeriodRange:
    start: dt.datetime
    end: dt.datetime


@dataclass(frozen=True)
class PeriodMetric:
    label: str
    value: str
    sub: Optional[str] = None


@dataclass(frozen=True)
class PeriodInsight:
    label: str
    value: str
    sub: str


@dataclass(frozen=True)
class DistribItem:
    id: str
    name: str
    sub: str
    hours: float
    color: str


@dataclass(frozen=True)
class DistribData:
    projects: List[DistribItem] = field(default_factory=list)
    clients: List[DistribItem] = field(default_factory=list)
    tasks: List[DistribItem] = field(default_factory=list)


@dataclass(frozen=True)
class HeatmapDay:
    date: str  # YYYY-MM-DD, empty for padding cells
    hours: float
    level: int
    is_empty: bool = False


@dataclass(frozen=True)
class RecentSession:
    id: str
    date: str
    time: str
    task: str
    project: str
    client: str
    duration: str


@dataclass(frozen=True)
class StreakResult:
    current: int
    best: int


# ---- helpers ----
def _round_half_up(x: float, ndigits: int = 0) -> float:
    q = 10 ** ndigits
    return math.floor(x * q + 0.5) / q


def _sum_hours(sessions: Sequence[Session]) -> float:
    return sum(s.duration for s in sessions) / 3600


def format_hours(h: float) -> str:
    """0 -> "0h", under an hour -> minutes ("45m"), else one decimal ("3.5h")."""
    if h == 0:
        return "0h"
    if h < 1:
        return f"{int(_round_half_up(h * 60))}m"
    return f"{_round_half_up(h, 1):.1f}h"


def _days_between(a: dt.date, b: dt.date) -> int:
    return (b - a).days


def _group_hours(sessions: Sequence[Session], key: Callable[[Session], Optional[K]]) -> Dict[K, float]:
    # dict keeps first-seen order, which is what ties fall back on
    out: Dict[K, float] = {}
    for s in sessions:
        k = key(s)
        if k is not None:
            out[k] = out.get(k, 0.0) + s.duration / 3600
    return out


def _top_entry(groups: Dict[K, float]) -> Optional[Tuple[K, float]]:
    best: Optional[Tuple[K, float]] = None
    for k, v in groups.items():
        if best is None or v > best[1]:
            best = (k, v)
    return best


def _range_days(rng: PeriodRange) -> int:
    return max(1, _days_between(rng.start.date(), rng.end.date()) + 1)


def _iso_week(d: dt.datetime) -> int:
    return d.isocalendar()[1]


def get_entity_color(entity_id: str) -> str:
    """Stable palette color for an id."""
    h = 0
    for ch in entity_id:
        h = (h * 31 + ord(ch)) & 0xFFFFFFFF
    return COLORS[h % len(COLORS)]


def get_period_range(period: Period, now: Optional[dt.datetime] = None) -> PeriodRange:
    now = now or dt.datetime.now()
    period = Period(period)
    if period == Period.TODAY:
        return PeriodRange(day_start(now), day_end(now))
    if period == Period.WEEK:
        monday = now - dt.timedelta(days=now.weekday())
        return PeriodRange(day_start(monday), day_end(monday + dt.timedelta(days=6)))
    if period == Period.MONTH:
        last = calendar.monthrange(now.year, now.month)[1]
        return PeriodRange(
            day_start(now.replace(day=1)), day_end(now.replace(day=last))
        )
    if period == Period.YEAR:
        return PeriodRange(
            day_start(now.replace(month=1, day=1)),
            day_end(now.replace(month=12, day=31)),
        )
    raise ValueError("Custom periods need an explicit range.")


def custom_range(start: dt.datetime, end: dt.datetime) -> PeriodRange:
    if start > end:
        start, end = end, start
    return PeriodRange(day_start(start), day_end(end))


def format_session_date(d: dt.datetime, now: Optional[dt.datetime] = None) -> str:
    """"Hoy" | "Ayer" | "Lun 10 Feb" (last week) | "10 Feb 2026"."""
    now = now or dt.datetime.now()
    diff = _days_between(d.date(), now.date())
    if diff == 0:
        return "Hoy"
    if diff == 1:
        return "Ayer"
    month = MONTHS_SHORT[d.month - 1]
    if 0 < diff < 7:
        return f"{DAYS_SHORT[d.weekday()]} {d.day} {month}"
    return f"{d.day} {month} {d.year}"


# ---- streaks ----
def streak_from_days(days: Set[dt.date], today: dt.date) -> StreakResult:
    """
    current: consecutive days ending today, or yesterday when today has
    nothing yet. best: longest run of days exactly one apart.
    """
    if not days:
        return StreakResult(current=0, best=0)

    ordered = sorted(days)
    best = run = 1
    for prev, cur in zip(ordered, ordered[1:]):
        run = run + 1 if _days_between(prev, cur) == 1 else 1
        best = max(best, run)

    one = dt.timedelta(days=1)
    if today in days:
        anchor: Optional[dt.date] = today
    elif today - one in days:
        anchor = today - one
    else:
        anchor = None

    current = 0
    while anchor is not None and anchor in days:
        current += 1
        anchor -= one

    return StreakResult(current=current, best=best)


def calc_global_streak(sessions: Sequence[Session], now: Optional[dt.datetime] = None) -> StreakResult:
    now = now or dt.datetime.now()
    return streak_from_days({s.start_time.date() for s in sessions}, now.date())


# ---- period metrics ----
def calc_period_metrics(
    sessions: Sequence[Session],
    period: Period,
    rng: PeriodRange,
    now: Optional[dt.datetime] = None,
) -> List[PeriodMetric]:
    """Four cards for the top of the stats view, chosen per period."""
    now = now or dt.datetime.now()
    period = Period(period)
    in_range = filter_sessions_by_date_range(sessions, rng.start, rng.end)
    total = _sum_hours(in_range)
    avg = format_hours(total / _range_days(rng))

    if period == Period.TODAY:
        yest = rng.start - dt.timedelta(days=1)
        week = get_period_range(Period.WEEK, now)
        return [
            PeriodMetric("Hoy", format_hours(total)),
            PeriodMetric(
                "Ayer",
                format_hours(_sum_hours(filter_sessions_by_date_range(sessions, yest, yest))),
            ),
            PeriodMetric(
                "Esta semana",
                format_hours(
                    _sum_hours(filter_sessions_by_date_range(sessions, week.start, week.end))
                ),
            ),
            PeriodMetric("Prom. diario", avg),
        ]

    if period == Period.WEEK:
        top = _top_entry(_group_hours(in_range, lambda s: s.start_time.date()))
        return [
            PeriodMetric("Total semana", format_hours(total)),
            PeriodMetric(
                "Mejor día",
                format_hours(top[1] if top else 0),
                DAYS_SHORT[top[0].weekday()] if top else "—",
            ),
            PeriodMetric("Sesiones", str(len(in_range))),
            PeriodMetric("Prom. diario", avg),
        ]

    if period == Period.MONTH:
        by_week = _group_hours(in_range, _iso_week_key)
        top = _top_entry(by_week)
        return [
            PeriodMetric("Total mes", format_hours(total)),
            PeriodMetric("Semanas activas", str(len(by_week))),
            PeriodMetric(
                "Mejor semana",
                format_hours(top[1] if top else 0),
                f"Sem. {top[0][1]}" if top else "—",
            ),
            PeriodMetric("Prom. diario", avg),
        ]

    if period == Period.YEAR:
        by_month = _group_hours(in_range, lambda s: s.start_time.month)
        top = _top_entry(by_month)
        return [
            PeriodMetric("Total año", format_hours(total)),
            PeriodMetric("Meses activos", str(len(by_month))),
            PeriodMetric(
                "Mejor mes",
                format_hours(top[1] if top else 0),
                MONTHS_SHORT[top[0] - 1] if top else "—",
            ),
            PeriodMetric("Prom. diario", avg),
        ]

    top = _top_entry(_group_hours(in_range, lambda s: s.start_time.date()))
    active_days = len({s.start_time.date() for s in in_range})
    return [
        PeriodMetric("Total período", format_hours(total)),
        PeriodMetric("Días activos", str(active_days)),
        PeriodMetric(
            "Mejor día",
            format_hours(top[1] if top else 0),
            format_session_date(_noon(top[0]), now) if top else "—",
        ),
        PeriodMetric("Prom. diario", avg),
    ]


def _iso_week_key(s: Session) -> Tuple[int, int]:
    iso = s.start_time.isocalendar()
    return iso[0], iso[1]


def _noon(d: dt.date) -> dt.datetime:
    return dt.datetime(d.year, d.month, d.day, 12)


# ---- lookups ----
class _Lookup:
    def __init__(self, tasks: Sequence[Task], projects: Sequence[Project], clients: Sequence[Client]):
        self.tasks = {t.id: t for t in tasks}
        self.projects = {p.id: p for p in projects}
        self.clients = {c.id: c for c in clients}

    def task(self, task_id: str) -> Optional[Task]:
        return self.tasks.get(task_id)

    def project_of_task(self, task_id: str) -> Optional[Project]:
        t = self.tasks.get(task_id)
        return self.projects.get(t.project_id) if t else None

    def client_of_task(self, task_id: str) -> Optional[Client]:
        p = self.project_of_task(task_id)
        return self.clients.get(p.client_id) if p else None


# ---- insights ----
def calc_period_insights(
    sessions: Sequence[Session],
    tasks: Sequence[Task],
    projects: Sequence[Project],
    clients: Sequence[Client],
    period: Period,
    rng: PeriodRange,
    now: Optional[dt.datetime] = None,
) -> List[PeriodInsight]:
    now = now or dt.datetime.now()
    period = Period(period)
    lookup = _Lookup(tasks, projects, clients)
    in_range = filter_sessions_by_date_range(sessions, rng.start, rng.end)

    top_day = _top_entry(_group_hours(in_range, lambda s: s.start_time.date()))

    if period == Period.MONTH:
        top = _top_entry(_group_hours(in_range, lambda s: f"W{_iso_week(s.start_time)}"))
        productivity = PeriodInsight(
            "Semana más productiva", top[0] if top else "—", format_hours(top[1]) if top else ""
        )
    elif period == Period.YEAR:
        top = _top_entry(_group_hours(in_range, lambda s: s.start_time.month))
        productivity = PeriodInsight(
            "Mes más productivo",
            MONTHS_SHORT[top[0] - 1] if top else "—",
            format_hours(top[1]) if top else "",
        )
    else:
        productivity = PeriodInsight(
            "Día más productivo",
            format_session_date(_noon(top_day[0]), now) if top_day else "—",
            format_hours(top_day[1] if top_day else 0),
        )

    streak = calc_global_streak(sessions, now)
    if period in (Period.TODAY, Period.WEEK):
        streak_card = PeriodInsight("Racha actual", _days_label(streak.current), "consecutivos")
    else:
        streak_card = PeriodInsight(
            "Racha más larga",
            _days_label(streak.best),
            "en el período" if period == Period.CUSTOM else "consecutivos",
        )

    def client_id_of(s: Session) -> Optional[str]:
        p = lookup.project_of_task(s.task_id)
        return p.client_id if p else None

    by_client = _group_hours(in_range, client_id_of)
    top_client = _top_entry(by_client)
    top_client_name = "—"
    if top_client:
        c = lookup.clients.get(top_client[0])
        top_client_name = c.name if c else "—"
    top_client_hours = top_client[1] if top_client else 0
    client_card = PeriodInsight(
        "Cliente del día" if period == Period.TODAY else "Cliente top",
        top_client_name,
        f"{format_hours(top_client_hours)} {PERIOD_SUFFIX[period]}"
        if top_client_hours > 0
        else "Sin actividad",
    )

    if period == Period.TODAY:
        days_card = PeriodInsight("Sesiones hoy", str(len(in_range)), "registradas")
    else:
        active_days = len({s.start_time.date() for s in in_range})
        days_card = PeriodInsight(
            "Días trabajados", f"{active_days} de {_range_days(rng)}", PERIOD_SUFFIX[period]
        )

    return [productivity, streak_card, client_card, days_card]


def _days_label(n: int) -> str:
    return f"{n} {'día' if n == 1 else 'días'}"


# ---- distribution ----
def _to_items(
    groups: Dict[str, float],
    name: Callable[[str], str],
    sub: Callable[[str], str],
) -> List[DistribItem]:
    # sorted() is stable: equal hours keep first-seen order
    ranked = sorted(groups.items(), key=lambda kv: kv[1], reverse=True)[:DISTRIBUTION_LIMIT]
    return [
        DistribItem(
            id=k,
            name=name(k),
            sub=sub(k),
            hours=_round_half_up(h, 1),
            color=get_entity_color(k),
        )
        for k, h in ranked
    ]


def calc_distribution(
    sessions: Sequence[Session],
    tasks: Sequence[Task],
    projects: Sequence[Project],
    clients: Sequence[Client],
    rng: PeriodRange,
) -> DistribData:
    """
    Hours per project, client and task, top 6 each. Sessions whose task,
    project or client no longer exists drop out of that grouping.
    """
    lookup = _Lookup(tasks, projects, clients)
    in_range = filter_sessions_by_date_range(sessions, rng.start, rng.end)

    def project_key(s: Session) -> Optional[str]:
        p = lookup.project_of_task(s.task_id)
        return p.id if p else None

    def client_key(s: Session) -> Optional[str]:
        c = lookup.client_of_task(s.task_id)
        return c.id if c else None

    def task_key(s: Session) -> Optional[str]:
        return s.task_id if lookup.task(s.task_id) else None

    by_project = _group_hours(in_range, project_key)
    by_client = _group_hours(in_range, client_key)
    by_task = _group_hours(in_range, task_key)

    projects_per_client: Dict[str, Set[str]] = {}
    for s in in_range:
        p = lookup.project_of_task(s.task_id)
        if p and p.client_id in lookup.clients:
            projects_per_client.setdefault(p.client_id, set()).add(p.id)

    def client_sub(cid: str) -> str:
        n = len(projects_per_client.get(cid, ()))
        return f"{n} proyecto{'' if n == 1 else 's'}"

    def project_sub(pid: str) -> str:
        c = lookup.clients.get(lookup.projects[pid].client_id)
        return c.name if c else ""

    def task_sub(tid: str) -> str:
        p = lookup.project_of_task(tid)
        return p.name if p else ""

    return DistribData(
        projects=_to_items(by_project, lambda pid: lookup.projects[pid].name, project_sub),
        clients=_to_items(by_client, lambda cid: lookup.clients[cid].name, client_sub),
        tasks=_to_items(by_task, lambda tid: lookup.tasks[tid].name, task_sub),
    )


# ---- heatmap ----
def heat_level(hours: float) -> int:
    if hours <= 0:
        return 0
    if hours < 2:
        return 1
    if hours < 4:
        return 2
    if hours < 6:
        return 3
    return 4


def calc_heatmap_data(sessions: Sequence[Session], year: int) -> List[HeatmapDay]:
    """One entry per calendar day of `year`, zero days included."""
    by_day = _group_hours(
        [s for s in sessions if s.start_time.year == year],
        lambda s: s.start_time.date(),
    )
    out: List[HeatmapDay] = []
    d = dt.date(year, 1, 1)
    one = dt.timedelta(days=1)
    while d.year == year:
        hours = _round_half_up(by_day.get(d, 0.0), 1)
        out.append(HeatmapDay(date=d.isoformat(), hours=hours, level=heat_level(hours)))
        d += one
    return out


def organize_heatmap_by_weeks(days: Sequence[HeatmapDay]) -> List[List[HeatmapDay]]:
    """Monday-first columns of seven, padded with empty cells at both ends."""
    if not days:
        return []
    empty = HeatmapDay(date="", hours=0.0, level=0, is_empty=True)
    lead = dt.date.fromisoformat(days[0].date).weekday()
    weeks: List[List[HeatmapDay]] = []
    week: List[HeatmapDay] = [empty] * lead
    for day in days:
        week.append(day)
        if len(week) == 7:
            weeks.append(week)
            week = []
    if week:
        weeks.append(week + [empty] * (7 - len(week)))
    return weeks


# ---- recent sessions ----
def calc_recent_sessions(
    sessions: Sequence[Session],
    tasks: Sequence[Task],
    projects: Sequence[Project],
    clients: Sequence[Client],
    rng: PeriodRange,
    limit: int = RECENT_SESSIONS_LIMIT,
    now: Optional[dt.datetime] = None,
) -> List[RecentSession]:
    now = now or dt.datetime.now()
    lookup = _Lookup(tasks, projects, clients)
    in_range = filter_sessions_by_date_range(sessions, rng.start, rng.end)
    ordered = sorted(in_range, key=lambda s: s.start_time, reverse=True)[: max(0, limit)]

    out: List[RecentSession] = []
    for s in ordered:
        task = lookup.task(s.task_id)
        project = lookup.project_of_task(s.task_id)
        client = lookup.client_of_task(s.task_id)
        out.append(
            RecentSession(
                id=s.id,
                date=format_session_date(s.start_time, now),
                time=s.start_time.strftime("%H:%M"),
                task=task.name if task else DELETED_TASK,
                project=project.name if project else DELETED_PROJECT,
                client=client.name if client else DELETED_CLIENT,
                duration=format_duration(s.duration),
            )
        )
    return out
