# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from core.constants import (
    BACKGROUND_DETECTION_THRESHOLD_MS,
    MIN_SESSION_DURATION_SECONDS,
    TICK_INTERVAL_MS,
)

log = logging.getLogger(__name__)


@dataclass
class AppConfig:
    db_path: str = "worklog.db"
    tick_interval_ms: int = TICK_INTERVAL_MS
    background_threshold_ms: int = BACKGROUND_DETECTION_THRESHOLD_MS
    min_session_seconds: int = MIN_SESSION_DURATION_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, environ=None) -> "AppConfig":
        env = os.environ if environ is None else environ
        cfg = cls()

        db_path = (env.get("WORKLOG_DB") or "").strip()
        if db_path:
            cfg.db_path = db_path

        level = (env.get("WORKLOG_LOG_LEVEL") or "").strip().upper()
        if level:
            if level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
                cfg.log_level = level
            else:
                log.warning("Ignoring unknown log level %r", level)

        threshold = (env.get("WORKLOG_BACKGROUND_THRESHOLD_SEC") or "").strip()
        if threshold:
            try:
                sec = int(threshold)
                if sec <= 0:
                    raise ValueError(threshold)
                cfg.background_threshold_ms = sec * 1000
            except ValueError:
                log.warning("Ignoring invalid background threshold %r", threshold)

        return cfg
