# -*- coding: utf-8 -*-

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, List, Optional, Union

from core.constants import BACKGROUND_DETECTION_THRESHOLD_MS, TICK_INTERVAL_MS
from core.time_utils import calculate_elapsed_seconds, now_ms
from domain.models import ActiveSession, PauseSegment, TaskRef

log = logging.getLogger(__name__)


class TimerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    NEEDS_RECOVERY_DECISION = "needs_recovery_decision"


class RecoveryKind(str, Enum):
    NOTHING = "nothing"  # no persisted session
    PAUSED_DIRECT = "paused_direct"  # user had paused before exit
    PAUSED_SILENT = "paused_silent"  # short gap absorbed as pause
    NEEDS_DECISION = "needs_decision"


class RecoveryChoice(str, Enum):
    UNTIL_CLOSE = "until-close"
    FULL_TIME = "full-time"


@dataclass(frozen=True)
class RecoveryOutcome:
    kind: RecoveryKind
    session: Optional[ActiveSession] = None
    now: int = 0
    gap_ms: int = 0
    time_until_close: int = 0  # seconds, gap excluded
    time_total: int = 0  # seconds, gap counted as work


@dataclass(frozen=True)
class EngineSnapshot:
    state: TimerState
    task_ref: Optional[TaskRef]
    elapsed_sec: int

    @property
    def is_idle(self) -> bool:
        return self.state == TimerState.IDLE

    @property
    def is_running(self) -> bool:
        return self.state == TimerState.RUNNING

    @property
    def is_paused(self) -> bool:
        return self.state == TimerState.PAUSED


@dataclass(frozen=True)
class CurrentTaskInfo:
    task_ref: TaskRef
    elapsed_seconds: int


def classify_recovery(
    session: Optional[ActiveSession],
    now: int,
    threshold_ms: int = BACKGROUND_DETECTION_THRESHOLD_MS,
) -> RecoveryOutcome:
    """
    Decide how a persisted active session comes back after a restart.
    Pure: same (session, now, threshold) always gives the same outcome.
    """
    if session is None:
        return RecoveryOutcome(kind=RecoveryKind.NOTHING, now=now)

    if session.is_paused:
        return RecoveryOutcome(kind=RecoveryKind.PAUSED_DIRECT, session=session, now=now)

    gap = max(0, now - session.last_tick_timestamp)
    if gap < threshold_ms:
        # pause from the last heartbeat on; the gap never counts as work
        restored = replace(
            session.with_segments(PauseSegment(start=session.last_tick_timestamp)),
            last_tick_timestamp=now,
        )
        return RecoveryOutcome(
            kind=RecoveryKind.PAUSED_SILENT, session=restored, now=now, gap_ms=gap
        )

    return RecoveryOutcome(
        kind=RecoveryKind.NEEDS_DECISION,
        session=session,
        now=now,
        gap_ms=gap,
        time_until_close=calculate_elapsed_seconds(
            session.start_time, session.pause_segments, session.last_tick_timestamp
        ),
        time_total=calculate_elapsed_seconds(
            session.start_time, session.pause_segments, now
        ),
    )


class TimerEngine:
    """
    Elapsed-time state machine for the single in-flight work session.

    Elapsed time is always derived from start_time and pause segments, never
    accumulated tick by tick, so a frozen or killed process loses nothing.
    The heartbeat (last_tick_timestamp) only feeds recovery.

    scheduler: anything with Tk's after(ms, fn) / after_cancel(job) pair.
    Without one, tick() has to be driven by the caller.
    """

    def __init__(
        self,
        store,
        scheduler=None,
        clock: Callable[[], int] = now_ms,
        tick_interval_ms: int = TICK_INTERVAL_MS,
        background_threshold_ms: int = BACKGROUND_DETECTION_THRESHOLD_MS,
    ):
        self.store = store
        self.clock = clock
        self.tick_interval_ms = int(tick_interval_ms)
        self.background_threshold_ms = int(background_threshold_ms)

        self._scheduler = scheduler
        self._tick_job: Any = None

        self._session: Optional[ActiveSession] = None
        self._state = TimerState.IDLE
        self._pending: Optional[RecoveryOutcome] = None
        self.last_persist_ok = True

        self._listeners: List[Callable[[str, EngineSnapshot], None]] = []

    # ----- wiring -----
    def attach_scheduler(self, scheduler) -> None:
        self._stop_tick_loop()
        self._scheduler = scheduler
        self._sync_tick_loop()

    def add_listener(self, fn: Callable[[str, EngineSnapshot], None]) -> None:
        self._listeners.append(fn)

    def _emit(self, event: str) -> None:
        snap = self.snapshot()
        for fn in list(self._listeners):
            fn(event, snap)

    # ----- queries -----
    @property
    def state(self) -> TimerState:
        return self._state

    @property
    def active_session(self) -> Optional[ActiveSession]:
        return self._session

    @property
    def pending_recovery(self) -> Optional[RecoveryOutcome]:
        return self._pending

    @property
    def has_tick_job(self) -> bool:
        return self._tick_job is not None

    def get_elapsed_seconds(self, now: Optional[int] = None) -> int:
        if self._session is None:
            return 0
        return calculate_elapsed_seconds(
            self._session.start_time,
            self._session.pause_segments,
            self.clock() if now is None else now,
        )

    def get_current_task_info(self) -> Optional[CurrentTaskInfo]:
        if self._session is None:
            return None
        return CurrentTaskInfo(
            task_ref=self._session.task_ref,
            elapsed_seconds=self.get_elapsed_seconds(),
        )

    def snapshot(self) -> EngineSnapshot:
        return EngineSnapshot(
            state=self._state,
            task_ref=self._session.task_ref if self._session else None,
            elapsed_sec=self.get_elapsed_seconds(),
        )

    # ----- commands -----
    def start_timer(self, task_id: Optional[str] = None) -> bool:
        if self._state != TimerState.IDLE:
            log.warning(
                "start_timer ignored: timer is %s, pause or save it first",
                self._state.value,
            )
            return False

        now = self.clock()
        ref = TaskRef.assigned(task_id) if task_id else TaskRef.unassigned()
        self._install(
            ActiveSession(task_ref=ref, start_time=now, last_tick_timestamp=now),
            TimerState.RUNNING,
        )
        log.info("Timer started (task=%s)", ref.task_id or "<unassigned>")
        return True

    def pause_timer(self) -> bool:
        if self._state != TimerState.RUNNING:
            log.warning("pause_timer ignored: timer is %s", self._state.value)
            return False
        now = self.clock()
        session = replace(
            self._session.with_segments(PauseSegment(start=now)),
            last_tick_timestamp=now,
        )
        self._install(session, TimerState.PAUSED)
        return True

    def resume_timer(self) -> bool:
        if self._state != TimerState.PAUSED:
            log.warning("resume_timer ignored: timer is %s", self._state.value)
            return False
        now = self.clock()
        session = replace(
            self._session.close_open_segment(now), last_tick_timestamp=now
        )
        self._install(session, TimerState.RUNNING)
        return True

    def tick(self) -> bool:
        if self._state != TimerState.RUNNING:
            return False
        self._session = replace(self._session, last_tick_timestamp=self.clock())
        self._persist()
        self._emit("tick")
        return True

    def reset_timer(self) -> bool:
        self._stop_tick_loop()
        self._session = None
        self._pending = None
        self._state = TimerState.IDLE
        self._persist()
        self._emit("state")
        return True

    def assign_task(self, task_id: str) -> bool:
        """
        Book the current session against task_id. Start time and pause
        history are kept as they are.
        """
        if self._session is None:
            log.warning("assign_task ignored: no active session")
            return False
        self._session = replace(self._session, task_ref=TaskRef.assigned(task_id))
        self._persist()
        self._emit("state")
        return True

    # ----- recovery -----
    def recover(self) -> RecoveryOutcome:
        """
        Boot-time restore of the persisted session. Call once before any
        user command.
        """
        now = self.clock()
        if self._state != TimerState.IDLE:
            log.warning("recover ignored: timer is already %s", self._state.value)
            return RecoveryOutcome(kind=RecoveryKind.NOTHING, now=now)

        outcome = classify_recovery(self.store.load(), now, self.background_threshold_ms)
        log.info("Recovery: %s (gap %d ms)", outcome.kind.value, outcome.gap_ms)

        if outcome.kind == RecoveryKind.PAUSED_DIRECT:
            self._install(outcome.session, TimerState.PAUSED, persist=False)
        elif outcome.kind == RecoveryKind.PAUSED_SILENT:
            self._install(outcome.session, TimerState.PAUSED)
        elif outcome.kind == RecoveryKind.NEEDS_DECISION:
            # not live until the user decides; persisted copy stays as is
            self._pending = outcome
            self._state = TimerState.NEEDS_RECOVERY_DECISION
            self._emit("state")
        return outcome

    def apply_recovery_decision(self, choice: Union[RecoveryChoice, str]) -> bool:
        if self._state != TimerState.NEEDS_RECOVERY_DECISION or self._pending is None:
            log.warning("apply_recovery_decision ignored: no decision pending")
            return False
        try:
            choice = RecoveryChoice(choice)
        except ValueError:
            log.warning("apply_recovery_decision ignored: unknown choice %r", choice)
            return False

        pending = self._pending.session
        now = self.clock()
        if choice == RecoveryChoice.UNTIL_CLOSE:
            session = pending.with_segments(
                PauseSegment(start=pending.last_tick_timestamp, end=now),
                PauseSegment(start=now),
            )
        else:
            session = pending.with_segments(PauseSegment(start=now))
        session = replace(session, last_tick_timestamp=now)

        self._pending = None
        self._install(session, TimerState.PAUSED)
        log.info("Recovery decision applied: %s", choice.value)
        return True

    def shutdown(self) -> None:
        self._stop_tick_loop()

    # ----- internals -----
    def _install(self, session: ActiveSession, state: TimerState, persist: bool = True) -> None:
        self._session = session
        self._state = state
        if persist:
            self._persist()
        self._sync_tick_loop()
        self._emit("state")

    def _persist(self) -> bool:
        self.last_persist_ok = bool(self.store.save(self._session))
        if not self.last_persist_ok:
            log.error("Active session not persisted; keeping in-memory state")
        return self.last_persist_ok

    # ---- tick loop ----
    def _sync_tick_loop(self) -> None:
        if self._state == TimerState.RUNNING:
            self._ensure_tick_loop()
        else:
            self._stop_tick_loop()

    def _ensure_tick_loop(self) -> None:
        if self._scheduler is None or self._tick_job is not None:
            return
        self._tick_job = self._scheduler.after(self.tick_interval_ms, self._tick_once)

    def _stop_tick_loop(self) -> None:
        if self._tick_job is None:
            return
        job, self._tick_job = self._tick_job, None
        try:
            self._scheduler.after_cancel(job)
        except Exception:
            log.debug("Tick job %r already gone", job)

    def _tick_once(self) -> None:
        self._tick_job = None
        if self._state == TimerState.RUNNING:
            self.tick()
            self._ensure_tick_loop()
