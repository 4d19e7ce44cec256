#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging

from core.config import AppConfig
from core.timer_engine import TimerEngine
from services.session_service import SessionService
from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_service import TimerService
from storage.db import Database
from storage.repos import ActiveSessionRepo, AppStateRepo, SessionRepo


def main():
    cfg = AppConfig.from_env()
    logging.basicConfig(
        level=getattr(logging, cfg.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    db = Database(db_path=cfg.db_path)
    db.init_schema()
    state = AppStateRepo(db)

    session_service = SessionService(SessionRepo(state), min_duration=cfg.min_session_seconds)
    session_service.load_sessions()

    engine = TimerEngine(
        ActiveSessionRepo(state),
        tick_interval_ms=cfg.tick_interval_ms,
        background_threshold_ms=cfg.background_threshold_ms,
    )
    # before any user action
    recovery = engine.recover()

    task_service = TaskService(db, session_service, timer_engine=engine)
    timer_service = TimerService(engine, session_service, min_duration=cfg.min_session_seconds)
    stats_service = StatsService(session_service, task_service)

    # imported late so the services stay usable without a display
    from ui.main_window import MainWindow

    app = MainWindow(task_service, timer_service, stats_service, recovery=recovery)
    try:
        app.run()
    finally:
        engine.shutdown()
        db.close()


if __name__ == "__main__":
    main()
