# -*- coding: utf-8 -*-

import datetime as dt
from dataclasses import dataclass
from typing import List, Optional

from core import stats_calculator as calc
from core.stats_calculator import (
    DistribData,
    HeatmapDay,
    Period,
    PeriodInsight,
    PeriodMetric,
    PeriodRange,
    RecentSession,
    StreakResult,
)
from core.task_stats import TaskDetailStats, get_task_detail_stats
from services.session_service import SessionService
from services.task_service import TaskService


@dataclass(frozen=True)
class Dashboard:
    period: Period
    range: PeriodRange
    metrics: List[PeriodMetric]
    insights: List[PeriodInsight]
    distribution: DistribData
    heatmap: List[HeatmapDay]
    recent: List[RecentSession]
    streak: StreakResult


class StatsService:
    """
    Read path: pulls fresh data from the stores and hands it to the pure
    calculators. Holds no state of its own.
    """

    def __init__(self, session_service: SessionService, task_service: TaskService):
        self.session_service = session_service
        self.task_service = task_service

    def resolve_range(
        self,
        period: Period,
        start: Optional[dt.datetime] = None,
        end: Optional[dt.datetime] = None,
        now: Optional[dt.datetime] = None,
    ) -> PeriodRange:
        period = Period(period)
        if period == Period.CUSTOM:
            if start is None or end is None:
                raise ValueError("Custom period needs both start and end.")
            return calc.custom_range(start, end)
        return calc.get_period_range(period, now)

    def total_today_work_sec(self, now: Optional[dt.datetime] = None) -> int:
        return sum(s.duration for s in self.session_service.get_sessions_today(now))

    def task_detail(self, task_id: str, now: Optional[dt.datetime] = None) -> TaskDetailStats:
        return get_task_detail_stats(task_id, self.session_service.get_sessions(), now)

    def dashboard(
        self,
        period: Period,
        start: Optional[dt.datetime] = None,
        end: Optional[dt.datetime] = None,
        limit: int = calc.RECENT_SESSIONS_LIMIT,
        now: Optional[dt.datetime] = None,
    ) -> Dashboard:
        now = now or dt.datetime.now()
        period = Period(period)
        rng = self.resolve_range(period, start, end, now)

        sessions = self.session_service.get_sessions()
        tasks = self.task_service.list_tasks()
        projects = self.task_service.list_projects()
        clients = self.task_service.list_clients()

        return Dashboard(
            period=period,
            range=rng,
            metrics=calc.calc_period_metrics(sessions, period, rng, now),
            insights=calc.calc_period_insights(
                sessions, tasks, projects, clients, period, rng, now
            ),
            distribution=calc.calc_distribution(sessions, tasks, projects, clients, rng),
            heatmap=calc.calc_heatmap_data(sessions, rng.end.year),
            recent=calc.calc_recent_sessions(
                sessions, tasks, projects, clients, rng, limit, now
            ),
            streak=calc.calc_global_streak(sessions, now),
        )
