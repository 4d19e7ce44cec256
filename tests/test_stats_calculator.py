"""Tests for the pure statistics functions."""

import datetime as dt

import pytest

from conftest import make_session
from core.stats_calculator import (
    DELETED_CLIENT,
    DELETED_PROJECT,
    DELETED_TASK,
    Period,
    PeriodRange,
    calc_distribution,
    calc_global_streak,
    calc_heatmap_data,
    calc_period_insights,
    calc_period_metrics,
    calc_recent_sessions,
    custom_range,
    format_hours,
    format_session_date,
    get_entity_color,
    get_period_range,
    heat_level,
    organize_heatmap_by_weeks,
    streak_from_days,
)
from domain.models import Client, Project, Task

# a Wednesday
NOW = dt.datetime(2026, 10, 21, 18, 0, 0)
TODAY = NOW.date()
ONE = dt.timedelta(days=1)


def _at(days_ago, hour=9):
    d = NOW - dt.timedelta(days=days_ago)
    return d.replace(hour=hour, minute=0, second=0)


@pytest.fixture
def hierarchy():
    clients = [Client("c1", "Acme"), Client("c2", "Globex")]
    projects = [Project("p1", "Web", "c1"), Project("p2", "Ops", "c1"), Project("p3", "Audit", "c2")]
    tasks = [
        Task("t1", "Login", "p1"),
        Task("t2", "Deploy", "p2"),
        Task("t3", "Review", "p3"),
    ]
    return tasks, projects, clients


class TestFormatting:
    @pytest.mark.parametrize(
        "hours,expected",
        [(0, "0h"), (0.75, "45m"), (0.5, "30m"), (1, "1.0h"), (3.25, "3.3h"), (12.04, "12.0h")],
    )
    def test_format_hours(self, hours, expected):
        assert format_hours(hours) == expected

    def test_session_dates(self):
        assert format_session_date(_at(0), NOW) == "Hoy"
        assert format_session_date(_at(1), NOW) == "Ayer"
        assert format_session_date(_at(2), NOW) == "Lun 19 Oct"
        assert format_session_date(_at(10), NOW) == "11 Oct 2026"

    def test_entity_color_is_stable(self):
        assert get_entity_color("p1") == get_entity_color("p1")
        assert get_entity_color("p1").startswith("#")


class TestPeriodRange:
    def test_today(self):
        rng = get_period_range(Period.TODAY, NOW)
        assert rng.start == dt.datetime(2026, 10, 21)
        assert rng.end == dt.datetime(2026, 10, 21, 23, 59, 59, 999000)

    def test_week_is_monday_first(self):
        rng = get_period_range(Period.WEEK, NOW)
        assert rng.start == dt.datetime(2026, 10, 19)
        assert rng.end.date() == dt.date(2026, 10, 25)

    def test_week_from_sunday(self):
        rng = get_period_range(Period.WEEK, dt.datetime(2026, 10, 25, 8))
        assert rng.start == dt.datetime(2026, 10, 19)

    def test_month_and_year(self):
        assert get_period_range(Period.MONTH, NOW).end.date() == dt.date(2026, 10, 31)
        assert get_period_range(Period.MONTH, dt.datetime(2028, 2, 3)).end.day == 29
        year = get_period_range(Period.YEAR, NOW)
        assert (year.start.date(), year.end.date()) == (dt.date(2026, 1, 1), dt.date(2026, 12, 31))

    def test_custom_needs_range(self):
        with pytest.raises(ValueError):
            get_period_range(Period.CUSTOM, NOW)

    def test_custom_range_swaps(self):
        rng = custom_range(NOW, NOW - dt.timedelta(days=3))
        assert rng.start == dt.datetime(2026, 10, 18)
        assert rng.end.date() == dt.date(2026, 10, 21)


class TestStreaks:
    def test_gap_breaks_run(self):
        days = {TODAY, TODAY - ONE, TODAY - 2 * ONE, TODAY - 5 * ONE}
        res = streak_from_days(days, TODAY)
        assert (res.current, res.best) == (3, 3)

    def test_yesterday_anchor(self):
        res = streak_from_days({TODAY - ONE, TODAY - 2 * ONE}, TODAY)
        assert res.current == 2

    def test_stale_streak(self):
        res = streak_from_days({TODAY - 3 * ONE, TODAY - 4 * ONE}, TODAY)
        assert res.current == 0
        assert res.best == 2

    def test_best_beats_current(self):
        older = {TODAY - dt.timedelta(days=n) for n in range(10, 15)}
        res = streak_from_days(older | {TODAY}, TODAY)
        assert (res.current, res.best) == (1, 5)

    def test_empty(self):
        res = calc_global_streak([], NOW)
        assert (res.current, res.best) == (0, 0)

    def test_many_sessions_same_day_count_once(self):
        sessions = [make_session("t1", _at(0, h), 600) for h in (8, 10, 12)]
        assert calc_global_streak(sessions, NOW).current == 1


class TestHeatmap:
    def test_full_year(self):
        sessions = [make_session("t1", dt.datetime(2026, 3, 4, 9), 3 * 3600)]
        data = calc_heatmap_data(sessions, 2026)
        assert len(data) == 365
        day = next(d for d in data if d.date == "2026-03-04")
        assert day.hours == 3.0
        assert day.level == 2
        assert sum(1 for d in data if d.level > 0) == 1

    def test_leap_year(self):
        assert len(calc_heatmap_data([], 2028)) == 366

    @pytest.mark.parametrize(
        "hours,level", [(0, 0), (0.1, 1), (1.9, 1), (2, 2), (4, 3), (5.9, 3), (6, 4), (11, 4)]
    )
    def test_levels(self, hours, level):
        assert heat_level(hours) == level

    def test_weeks_are_monday_first(self):
        weeks = organize_heatmap_by_weeks(calc_heatmap_data([], 2026))
        assert all(len(w) == 7 for w in weeks)
        # 2026-01-01 is a Thursday
        assert [c.is_empty for c in weeks[0][:4]] == [True, True, True, False]
        assert weeks[0][3].date == "2026-01-01"
        flat = [c for w in weeks for c in w if not c.is_empty]
        assert len(flat) == 365

    def test_weeks_empty(self):
        assert organize_heatmap_by_weeks([]) == []


class TestDistribution:
    def test_top_six_sorted(self):
        tasks = [Task(f"t{i}", f"Task {i}", "p1") for i in range(8)]
        projects = [Project("p1", "Web", "c1")]
        clients = [Client("c1", "Acme")]
        sessions = [make_session(f"t{i}", _at(0), (i + 1) * 600) for i in range(8)]
        rng = get_period_range(Period.TODAY, NOW)
        data = calc_distribution(sessions, tasks, projects, clients, rng)
        assert len(data.tasks) == 6
        hours = [it.hours for it in data.tasks]
        assert hours == sorted(hours, reverse=True)
        assert data.tasks[0].id == "t7"
        assert data.projects[0].hours == 6.0
        assert data.clients[0].sub == "1 proyecto"

    def test_ties_keep_first_seen(self, hierarchy):
        sessions = [make_session("t2", _at(0), 3600), make_session("t1", _at(0, 11), 3600)]
        rng = get_period_range(Period.TODAY, NOW)
        data = calc_distribution(sessions, *hierarchy, rng)
        assert [it.id for it in data.tasks] == ["t2", "t1"]

    def test_dangling_sessions_excluded(self, hierarchy):
        sessions = [make_session("t1", _at(0)), make_session("gone", _at(0))]
        rng = get_period_range(Period.TODAY, NOW)
        data = calc_distribution(sessions, *hierarchy, rng)
        assert [it.id for it in data.tasks] == ["t1"]
        assert [it.id for it in data.projects] == ["p1"]

    def test_empty(self, hierarchy):
        data = calc_distribution([], *hierarchy, get_period_range(Period.WEEK, NOW))
        assert (data.projects, data.clients, data.tasks) == ([], [], [])


class TestRecent:
    def test_fallback_labels(self, hierarchy):
        sessions = [make_session("gone", _at(0, 10), 90)]
        rng = get_period_range(Period.TODAY, NOW)
        (row,) = calc_recent_sessions(sessions, *hierarchy, rng, now=NOW)
        assert (row.task, row.project, row.client) == (DELETED_TASK, DELETED_PROJECT, DELETED_CLIENT)
        assert row.date == "Hoy"
        assert row.time == "10:00"
        assert row.duration == "1m 30s"

    def test_newest_first_and_limit(self, hierarchy):
        sessions = [make_session("t1", _at(d)) for d in range(5)]
        rng = get_period_range(Period.MONTH, NOW)
        rows = calc_recent_sessions(sessions, *hierarchy, rng, limit=3, now=NOW)
        assert [r.date for r in rows] == ["Hoy", "Ayer", "Lun 19 Oct"]
        assert rows[0].client == "Acme"


class TestMetricsAndInsights:
    def test_today_metrics(self):
        sessions = [
            make_session("t1", _at(0), 2 * 3600),
            make_session("t1", _at(1), 1800),
            make_session("t1", _at(2), 3600),
        ]
        rng = get_period_range(Period.TODAY, NOW)
        metrics = calc_period_metrics(sessions, Period.TODAY, rng, NOW)
        assert [(m.label, m.value) for m in metrics] == [
            ("Hoy", "2.0h"),
            ("Ayer", "30m"),
            ("Esta semana", "3.5h"),
            ("Prom. diario", "2.0h"),
        ]

    def test_week_best_day(self):
        sessions = [make_session("t1", _at(2), 3600), make_session("t1", _at(1), 7200)]
        rng = get_period_range(Period.WEEK, NOW)
        metrics = calc_period_metrics(sessions, Period.WEEK, rng, NOW)
        best = metrics[1]
        assert (best.value, best.sub) == ("2.0h", "Mar")
        assert metrics[2].value == "2"

    def test_empty_period(self):
        rng = get_period_range(Period.YEAR, NOW)
        metrics = calc_period_metrics([], Period.YEAR, rng, NOW)
        assert metrics[0].value == "0h"
        assert metrics[2].sub == "—"

    def test_insights(self, hierarchy):
        sessions = [
            make_session("t1", _at(0), 3600),
            make_session("t3", _at(1), 3 * 3600),
        ]
        rng = get_period_range(Period.WEEK, NOW)
        insights = calc_period_insights(sessions, *hierarchy, Period.WEEK, rng, NOW)
        productive, streak, client, days = insights
        assert productive.value == "Ayer"
        assert streak.value == "2 días"
        assert (client.value, client.sub) == ("Globex", "3.0h esta semana")
        assert days.value == "2 de 7"

    def test_insights_no_activity(self, hierarchy):
        rng = get_period_range(Period.TODAY, NOW)
        insights = calc_period_insights([], *hierarchy, Period.TODAY, rng, NOW)
        assert insights[2].sub == "Sin actividad"
        assert insights[3].value == "0"

    def test_custom_range_counts_days(self, hierarchy):
        rng = PeriodRange(dt.datetime(2026, 10, 1), dt.datetime(2026, 10, 10, 23, 59))
        sessions = [make_session("t1", dt.datetime(2026, 10, 5, 9), 3600)]
        insights = calc_period_insights(sessions, *hierarchy, Period.CUSTOM, rng, NOW)
        assert insights[3].value == "1 de 10"
