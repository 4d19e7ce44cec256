# -*- coding: utf-8 -*-

"""Per-entity totals for the client > project > task tree."""

import datetime as dt
from dataclasses import dataclass
from typing import List, Optional, Sequence

from core.time_utils import day_start, format_duration
from domain.models import Project, Session, Task


@dataclass(frozen=True)
class TaskStats:
    total_seconds: int
    total_formatted: str
    session_count: int
    last_activity: Optional[dt.datetime]
    last_activity_formatted: str


@dataclass(frozen=True)
class ProjectStats:
    total_seconds: int
    total_formatted: str
    tasks_completed: int
    total_tasks: int
    session_count: int
    last_activity: Optional[dt.datetime]
    last_activity_formatted: str


@dataclass(frozen=True)
class ClientStats:
    total_seconds: int
    total_formatted: str
    project_count: int
    task_count: int
    session_count: int
    last_activity: Optional[dt.datetime]
    last_activity_formatted: str


def get_week_sessions(sessions: Sequence[Session], now: Optional[dt.datetime] = None) -> List[Session]:
    """Sessions since Monday 00:00 of the current week."""
    now = now or dt.datetime.now()
    week_start = day_start(now - dt.timedelta(days=now.weekday()))
    return [s for s in sessions if s.start_time >= week_start]


def get_last_activity(sessions: Sequence[Session], now: Optional[dt.datetime] = None) -> str:
    if not sessions:
        return "Sin actividad"
    now = now or dt.datetime.now()
    last = max(s.start_time for s in sessions)
    diff = now - last
    minutes = int(diff.total_seconds() // 60)
    hours = int(diff.total_seconds() // 3600)
    days = diff.days

    if minutes < 1:
        return "Hace un momento"
    if minutes < 60:
        return f"Hace {minutes} min"
    if hours < 24:
        return f"Hace {hours}h"
    if days == 1:
        return "Ayer"
    if days < 7:
        return f"Hace {days} días"
    return last.strftime("%d/%m/%Y")


def _last(sessions: Sequence[Session]) -> Optional[dt.datetime]:
    return max((s.start_time for s in sessions), default=None)


def get_task_stats(task_id: str, sessions: Sequence[Session], now: Optional[dt.datetime] = None) -> TaskStats:
    mine = [s for s in sessions if s.task_id == task_id]
    total = sum(s.duration for s in mine)
    return TaskStats(
        total_seconds=total,
        total_formatted=format_duration(total),
        session_count=len(mine),
        last_activity=_last(mine),
        last_activity_formatted=get_last_activity(mine, now),
    )


def get_project_stats(
    project_id: str,
    sessions: Sequence[Session],
    tasks: Sequence[Task],
    now: Optional[dt.datetime] = None,
) -> ProjectStats:
    project_tasks = [t for t in tasks if t.project_id == project_id]
    task_ids = {t.id for t in project_tasks}
    mine = [s for s in sessions if s.task_id in task_ids]
    total = sum(s.duration for s in mine)
    return ProjectStats(
        total_seconds=total,
        total_formatted=format_duration(total),
        tasks_completed=sum(1 for t in project_tasks if t.is_completed),
        total_tasks=len(project_tasks),
        session_count=len(mine),
        last_activity=_last(mine),
        last_activity_formatted=get_last_activity(mine, now),
    )


def get_client_stats(
    client_id: str,
    sessions: Sequence[Session],
    projects: Sequence[Project],
    tasks: Sequence[Task],
    now: Optional[dt.datetime] = None,
) -> ClientStats:
    project_ids = {p.id for p in projects if p.client_id == client_id}
    client_tasks = [t for t in tasks if t.project_id in project_ids]
    task_ids = {t.id for t in client_tasks}
    mine = [s for s in sessions if s.task_id in task_ids]
    total = sum(s.duration for s in mine)
    return ClientStats(
        total_seconds=total,
        total_formatted=format_duration(total),
        project_count=len(project_ids),
        task_count=len(client_tasks),
        session_count=len(mine),
        last_activity=_last(mine),
        last_activity_formatted=get_last_activity(mine, now),
    )
