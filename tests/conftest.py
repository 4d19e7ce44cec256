"""
Pytest configuration and fixtures for worklog tests.
"""

import sys
from pathlib import Path

# Ensure project root is in sys.path for the top-level packages
_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import datetime as dt

import pytest

from core.timer_engine import TimerEngine
from domain.models import Session
from services.session_service import SessionService
from services.task_service import TaskService
from services.timer_service import TimerService
from storage.db import Database
from storage.repos import ActiveSessionRepo, AppStateRepo, SessionRepo

# 2026-10-19 10:00:00 local, as epoch ms
T0 = int(dt.datetime(2026, 10, 19, 10, 0, 0).timestamp() * 1000)
SEC = 1000
MIN = 60 * SEC


class FakeClock:
    """Epoch-ms clock the test moves by hand."""

    def __init__(self, start: int = T0):
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> int:
        self.now += ms
        return self.now


class FakeScheduler:
    """Stand-in for a Tk widget's after/after_cancel."""

    def __init__(self):
        self.jobs = {}
        self._next = 0

    def after(self, ms, fn):
        self._next += 1
        job = f"after#{self._next}"
        self.jobs[job] = (ms, fn)
        return job

    def after_cancel(self, job):
        self.jobs.pop(job, None)

    def fire_all(self):
        for job, (_, fn) in list(self.jobs.items()):
            self.jobs.pop(job, None)
            fn()


class FailingStore:
    """Active-session store whose writes always fail."""

    def __init__(self, loaded=None):
        self.loaded = loaded
        self.saves = 0

    def load(self):
        return self.loaded

    def save(self, session):
        self.saves += 1
        return False


def make_session(
    task_id: str,
    start: dt.datetime,
    duration: int = 3600,
    session_id: str = "",
    notes=None,
) -> Session:
    return Session(
        id=session_id or f"s-{task_id}-{start.isoformat()}",
        task_id=task_id,
        start_time=start,
        end_time=start + dt.timedelta(seconds=duration),
        duration=duration,
        created_at=start,
        notes=notes,
    )


@pytest.fixture
def db(tmp_path: Path) -> Database:
    database = Database(db_path=str(tmp_path / "worklog.db"))
    database.init_schema()
    yield database
    database.close()


@pytest.fixture
def state(db) -> AppStateRepo:
    return AppStateRepo(db)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def active_repo(state) -> ActiveSessionRepo:
    return ActiveSessionRepo(state)


@pytest.fixture
def engine(active_repo, clock, scheduler) -> TimerEngine:
    return TimerEngine(active_repo, scheduler=scheduler, clock=clock)


@pytest.fixture
def session_service(state) -> SessionService:
    svc = SessionService(SessionRepo(state))
    svc.load_sessions()
    return svc


@pytest.fixture
def timer_service(engine, session_service) -> TimerService:
    return TimerService(engine, session_service)


@pytest.fixture
def task_service(db, session_service, engine) -> TaskService:
    return TaskService(db, session_service, timer_engine=engine)
