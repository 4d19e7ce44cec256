# -*- coding: utf-8 -*-

import datetime as dt
import logging
import uuid
from dataclasses import replace
from typing import Iterable, List, Optional

from core.constants import MIN_SESSION_DURATION_SECONDS
from core.time_utils import calculate_duration_in_seconds, day_end, day_start
from domain.models import Session
from storage.repos import SessionRepo

log = logging.getLogger(__name__)

# duration is derived from the times, never set directly
_UPDATABLE = ("notes", "start_time", "end_time")


class SessionService:
    """
    Completed work sessions.
    Every write persists the whole list first and only then swaps the
    in-memory copy, so a failed write leaves the store as it was.
    """

    def __init__(self, repo: SessionRepo, min_duration: int = MIN_SESSION_DURATION_SECONDS):
        self.repo = repo
        self.min_duration = int(min_duration)
        self.sessions: List[Session] = []

    def load_sessions(self) -> List[Session]:
        self.sessions = self.repo.load_all()
        log.info("Loaded %d sessions", len(self.sessions))
        return self.sessions

    def _commit(self, sessions: List[Session]) -> bool:
        if not self.repo.save_all(sessions):
            log.error("Session list not persisted; in-memory store unchanged")
            return False
        self.sessions = sessions
        return True

    # ---- queries ----
    def get_sessions(self) -> List[Session]:
        return list(self.sessions)

    def get_session(self, session_id: str) -> Optional[Session]:
        for s in self.sessions:
            if s.id == session_id:
                return s
        return None

    def get_sessions_today(self, now: Optional[dt.datetime] = None) -> List[Session]:
        now = now or dt.datetime.now()
        return self.get_sessions_by_date_range(now, now)

    def get_sessions_by_task(self, task_id: str) -> List[Session]:
        return [s for s in self.sessions if s.task_id == task_id]

    def get_sessions_by_date_range(self, start: dt.datetime, end: dt.datetime) -> List[Session]:
        lo = day_start(start)
        hi = day_end(end)
        return [s for s in self.sessions if lo <= s.start_time <= hi]

    # ---- writes ----
    def _validate(self, start: dt.datetime, end: dt.datetime, duration: int) -> Optional[str]:
        if start >= end:
            return "Session start must be before its end"
        if duration < self.min_duration:
            return f"Session too short. Minimum: {self.min_duration}s"
        if duration != calculate_duration_in_seconds(start, end):
            return "Session duration does not match its start and end"
        return None

    def save_session(
        self,
        task_id: str,
        start_time: dt.datetime,
        end_time: dt.datetime,
        duration: int,
        notes: Optional[str] = None,
    ) -> Optional[Session]:
        if not task_id:
            log.warning("Refusing session without task")
            return None
        err = self._validate(start_time, end_time, duration)
        if err:
            log.warning(err)
            return None

        session = Session(
            id=f"session_{uuid.uuid4().hex}",
            task_id=task_id,
            start_time=start_time,
            end_time=end_time,
            duration=int(duration),
            notes=notes,
            created_at=dt.datetime.now(),
        )
        if not self._commit(self.sessions + [session]):
            return None
        log.info("Session saved: %s (%ss on %s)", session.id, session.duration, task_id)
        return session

    def update_session(self, session_id: str, **changes) -> bool:
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            log.warning("Session fields not updatable: %s", ", ".join(sorted(unknown)))
            return False

        for i, s in enumerate(self.sessions):
            if s.id == session_id:
                updated = replace(s, **changes)
                if "start_time" in changes or "end_time" in changes:
                    updated = replace(
                        updated,
                        duration=calculate_duration_in_seconds(
                            updated.start_time, updated.end_time
                        ),
                    )
                err = self._validate(updated.start_time, updated.end_time, updated.duration)
                if err:
                    log.warning("Update rejected for %s: %s", session_id, err)
                    return False
                sessions = list(self.sessions)
                sessions[i] = updated
                if not self._commit(sessions):
                    return False
                log.info("Session updated: %s", session_id)
                return True

        log.warning("Session not found: %s", session_id)
        return False

    def delete_session(self, session_id: str) -> bool:
        if self.get_session(session_id) is None:
            log.warning("Session not found: %s", session_id)
            return False
        if not self._commit([s for s in self.sessions if s.id != session_id]):
            return False
        log.info("Session deleted: %s", session_id)
        return True

    def delete_sessions_for_tasks(self, task_ids: Iterable[str]) -> int:
        """Number of sessions removed, or -1 when the write failed."""
        doomed = set(task_ids)
        if not doomed:
            return 0
        keep = [s for s in self.sessions if s.task_id not in doomed]
        removed = len(self.sessions) - len(keep)
        if removed and not self._commit(keep):
            return -1
        if removed:
            log.info("Deleted %d sessions of %d removed tasks", removed, len(doomed))
        return removed
