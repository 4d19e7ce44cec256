# -*- coding: utf-8 -*-

import datetime as dt
import logging
from typing import Callable, Optional

from core.constants import MIN_SESSION_DURATION_SECONDS
from core.time_utils import from_epoch_ms
from core.timer_engine import EngineSnapshot, TimerEngine
from domain.models import SaveResult
from services.session_service import SessionService

log = logging.getLogger(__name__)


class TimerService:
    """
    Orchestrates:
    - TimerEngine state
    - Saving the active session into the session store
    - Callbacks for UI
    """

    def __init__(
        self,
        engine: TimerEngine,
        session_service: SessionService,
        min_duration: int = MIN_SESSION_DURATION_SECONDS,
    ):
        self.engine = engine
        self.session_service = session_service
        self.min_duration = int(min_duration)

        self._on_tick: Optional[Callable[[EngineSnapshot], None]] = None
        self._on_state_change: Optional[Callable[[EngineSnapshot], None]] = None

        self.engine.add_listener(self._dispatch)

    # ----- Callbacks -----
    def set_on_tick(self, fn: Callable[[EngineSnapshot], None]) -> None:
        self._on_tick = fn

    def set_on_state_change(self, fn: Callable[[EngineSnapshot], None]) -> None:
        self._on_state_change = fn

    def _dispatch(self, event: str, snap: EngineSnapshot) -> None:
        if event == "tick":
            if self._on_tick:
                self._on_tick(snap)
        elif self._on_state_change:
            self._on_state_change(snap)

    # ----- Public API -----
    def get_snapshot(self) -> EngineSnapshot:
        return self.engine.snapshot()

    def has_active_session(self) -> bool:
        return self.engine.get_current_task_info() is not None

    def min_duration_error(self, now: Optional[int] = None) -> Optional[str]:
        """Message when the active session is still under the minimum, else None."""
        if self.engine.get_elapsed_seconds(now) < self.min_duration:
            return f"Session must last at least {self.min_duration} second(s)"
        return None

    def discard_active_session(self) -> bool:
        if not self.has_active_session():
            return False
        self.engine.reset_timer()
        log.info("Active session discarded")
        return True

    def save_active_session(self, notes: Optional[str] = None) -> SaveResult:
        """
        Turn the active session into a stored Session and clear the timer.
        All or nothing: on failure the timer is left exactly as it was.
        """
        info = self.engine.get_current_task_info()
        if info is None:
            return SaveResult(success=False, error="No active session to save")

        if not info.task_ref.is_assigned:
            return SaveResult(
                success=False, error="Assign a task before saving this session"
            )

        now = self.engine.clock()
        too_short = self.min_duration_error(now)
        if too_short:
            return SaveResult(success=False, error=too_short)
        elapsed = self.engine.get_elapsed_seconds(now)

        end_time = from_epoch_ms(now)
        start_time = end_time - dt.timedelta(seconds=elapsed)
        notes = (notes or "").strip() or None

        session = self.session_service.save_session(
            task_id=info.task_ref.task_id,
            start_time=start_time,
            end_time=end_time,
            duration=elapsed,
            notes=notes,
        )
        if session is None:
            return SaveResult(success=False, error="Could not store the session")

        self.engine.reset_timer()
        return SaveResult(success=True, session=session)
