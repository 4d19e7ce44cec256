# -*- coding: utf-8 -*-

import datetime as dt
import time
from typing import Iterable, Optional, Tuple

from core.constants import SECONDS_IN_DAY
from domain.models import PauseSegment


def now_ms() -> int:
    return int(time.time() * 1000)


def from_epoch_ms(ms: int) -> dt.datetime:
    return dt.datetime.fromtimestamp(ms / 1000)


# ---- elapsed time ----
def total_paused_ms(segments: Iterable[PauseSegment], now: Optional[int] = None) -> int:
    """
    Sum of pause time. An open segment counts up to `now`.
    """
    if now is None:
        now = now_ms()
    total = 0
    for seg in segments:
        end = now if seg.end is None else seg.end
        total += max(0, end - seg.start)
    return total


def calculate_elapsed_seconds(
    start_time: int,
    segments: Iterable[PauseSegment],
    now: Optional[int] = None,
) -> int:
    """
    Working seconds since start_time, minus pauses.
    Frozen while paused: the open segment grows exactly as fast as `now`.
    """
    if now is None:
        now = now_ms()
    effective = (now - start_time) - total_paused_ms(segments, now)
    return max(0, effective // 1000)


def calculate_duration_in_seconds(start: dt.datetime, end: dt.datetime) -> int:
    diff_ms = int((end - start).total_seconds() * 1000)
    return diff_ms // 1000


# ---- formatting ----
def _valid_seconds_in_day(total_seconds: int) -> bool:
    return 0 <= total_seconds < SECONDS_IN_DAY


def _time_parts(total_seconds: int) -> Tuple[int, int, int]:
    total_seconds = int(total_seconds)
    return total_seconds // 3600, (total_seconds % 3600) // 60, total_seconds % 60


def format_duration(total_seconds: int) -> str:
    if not _valid_seconds_in_day(total_seconds):
        return ""
    h, m, s = _time_parts(total_seconds)
    parts = []
    if h > 0:
        parts.append(f"{h}h")
    if m > 0:
        parts.append(f"{m}m")
    if s > 0 or not parts:
        parts.append(f"{s}s")
    return " ".join(parts)


def format_seconds_hhmmss(total_seconds: int) -> str:
    if not _valid_seconds_in_day(total_seconds):
        return ""
    h, m, s = _time_parts(total_seconds)
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_duration_short(total_seconds: int) -> str:
    if not _valid_seconds_in_day(total_seconds):
        return ""
    h, m, _ = _time_parts(total_seconds)
    return f"{h}:{m:02d}"


# ---- calendar days (local time) ----
def day_start(d: dt.datetime) -> dt.datetime:
    return d.replace(hour=0, minute=0, second=0, microsecond=0)


def day_end(d: dt.datetime) -> dt.datetime:
    return d.replace(hour=23, minute=59, second=59, microsecond=999000)


def is_today(d: dt.datetime, now: Optional[dt.datetime] = None) -> bool:
    now = now or dt.datetime.now()
    return d.date() == now.date()
