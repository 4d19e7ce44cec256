"""Tests for the timer state machine, tick loop and crash recovery."""

import pytest

from conftest import MIN, SEC, T0, FailingStore, FakeClock, FakeScheduler
from core.constants import KEY_ACTIVE_SESSION
from core.timer_engine import (
    RecoveryChoice,
    RecoveryKind,
    TimerEngine,
    TimerState,
    classify_recovery,
)
from domain.models import ActiveSession, PauseSegment, TaskRef
from storage.repos import ActiveSessionRepo


def _running(start=T0, last_tick=None, task_id="task_a"):
    return ActiveSession(
        task_ref=TaskRef.assigned(task_id),
        start_time=start,
        last_tick_timestamp=start if last_tick is None else last_tick,
    )


class TestTransitions:
    def test_starts_idle(self, engine):
        assert engine.state == TimerState.IDLE
        assert engine.get_elapsed_seconds() == 0
        assert engine.get_current_task_info() is None

    def test_start_runs_and_persists(self, engine, active_repo):
        assert engine.start_timer("task_a")
        assert engine.state == TimerState.RUNNING
        stored = active_repo.load()
        assert stored.task_ref.task_id == "task_a"
        assert stored.start_time == T0
        assert stored.pause_segments == ()

    def test_start_without_task_is_unassigned(self, engine):
        engine.start_timer()
        info = engine.get_current_task_info()
        assert not info.task_ref.is_assigned

    def test_start_ignored_unless_idle(self, engine, clock):
        engine.start_timer("task_a")
        clock.advance(5 * SEC)
        assert not engine.start_timer("task_b")
        assert engine.active_session.task_ref.task_id == "task_a"
        assert engine.active_session.start_time == T0

        engine.pause_timer()
        assert not engine.start_timer("task_b")
        assert engine.state == TimerState.PAUSED

    def test_pause_then_resume(self, engine, clock):
        engine.start_timer("task_a")
        clock.advance(10 * SEC)
        assert engine.pause_timer()
        assert engine.state == TimerState.PAUSED
        clock.advance(30 * SEC)
        assert engine.get_elapsed_seconds() == 10
        assert engine.resume_timer()
        clock.advance(5 * SEC)
        assert engine.get_elapsed_seconds() == 15
        assert engine.active_session.pause_segments == (
            PauseSegment(T0 + 10 * SEC, T0 + 40 * SEC),
        )

    def test_pause_is_idempotent(self, engine, clock):
        engine.start_timer("task_a")
        clock.advance(SEC)
        engine.pause_timer()
        before = engine.active_session
        clock.advance(SEC)
        assert not engine.pause_timer()
        assert engine.active_session == before

    def test_resume_requires_paused(self, engine):
        assert not engine.resume_timer()
        engine.start_timer("task_a")
        assert not engine.resume_timer()

    def test_reset_clears_store(self, engine, active_repo, state):
        engine.start_timer("task_a")
        assert engine.reset_timer()
        assert engine.state == TimerState.IDLE
        assert active_repo.load() is None
        assert state.get_json(KEY_ACTIVE_SESSION) is None

    def test_assign_keeps_timing(self, engine, clock):
        engine.start_timer()
        clock.advance(20 * SEC)
        engine.pause_timer()
        assert engine.assign_task("task_b")
        s = engine.active_session
        assert s.task_ref.task_id == "task_b"
        assert s.start_time == T0
        assert s.is_paused
        assert engine.state == TimerState.PAUSED

    def test_assign_without_session(self, engine):
        assert not engine.assign_task("task_b")

    def test_listeners_receive_events(self, engine, clock):
        events = []
        engine.add_listener(lambda ev, snap: events.append((ev, snap.state)))
        engine.start_timer("task_a")
        clock.advance(SEC)
        engine.tick()
        engine.pause_timer()
        assert events == [
            ("state", TimerState.RUNNING),
            ("tick", TimerState.RUNNING),
            ("state", TimerState.PAUSED),
        ]


class TestTickLoop:
    def test_loop_only_while_running(self, engine, scheduler):
        assert not engine.has_tick_job
        engine.start_timer("task_a")
        assert engine.has_tick_job
        assert len(scheduler.jobs) == 1
        engine.pause_timer()
        assert not engine.has_tick_job
        assert scheduler.jobs == {}
        engine.resume_timer()
        assert len(scheduler.jobs) == 1
        engine.reset_timer()
        assert scheduler.jobs == {}

    def test_tick_refreshes_heartbeat_and_reschedules(self, engine, scheduler, clock, active_repo):
        engine.start_timer("task_a")
        clock.advance(SEC)
        scheduler.fire_all()
        assert active_repo.load().last_tick_timestamp == T0 + SEC
        assert len(scheduler.jobs) == 1
        clock.advance(SEC)
        scheduler.fire_all()
        assert active_repo.load().last_tick_timestamp == T0 + 2 * SEC

    def test_tick_interval(self, engine, scheduler):
        engine.start_timer("task_a")
        (ms, _), = scheduler.jobs.values()
        assert ms == 1000

    def test_tick_does_not_accumulate(self, engine, clock):
        engine.start_timer("task_a")
        clock.advance(90 * SEC)
        # no ticks in between; elapsed still derives from timestamps
        assert engine.get_elapsed_seconds() == 90

    def test_tick_ignored_when_paused(self, engine, clock):
        engine.start_timer("task_a")
        engine.pause_timer()
        before = engine.active_session.last_tick_timestamp
        clock.advance(SEC)
        assert not engine.tick()
        assert engine.active_session.last_tick_timestamp == before

    def test_attach_scheduler_later(self, active_repo, clock):
        eng = TimerEngine(active_repo, clock=clock)
        eng.start_timer("task_a")
        assert not eng.has_tick_job
        sched = FakeScheduler()
        eng.attach_scheduler(sched)
        assert eng.has_tick_job
        assert len(sched.jobs) == 1

    def test_shutdown_cancels(self, engine, scheduler):
        engine.start_timer("task_a")
        engine.shutdown()
        assert scheduler.jobs == {}
        assert engine.state == TimerState.RUNNING


class TestClassifyRecovery:
    def test_nothing(self):
        assert classify_recovery(None, T0).kind == RecoveryKind.NOTHING

    def test_paused_direct(self):
        s = _running().with_segments(PauseSegment(T0 + SEC))
        out = classify_recovery(s, T0 + 60 * MIN)
        assert out.kind == RecoveryKind.PAUSED_DIRECT
        assert out.session == s

    def test_short_gap_becomes_pause(self):
        last = T0 + 5 * MIN
        now = last + 2 * MIN
        out = classify_recovery(_running(last_tick=last), now)
        assert out.kind == RecoveryKind.PAUSED_SILENT
        assert out.session.pause_segments == (PauseSegment(last),)
        assert out.session.last_tick_timestamp == now
        assert out.gap_ms == 2 * MIN

    def test_long_gap_needs_decision(self):
        last = T0 + 5 * MIN
        now = last + 10 * MIN
        out = classify_recovery(_running(last_tick=last), now)
        assert out.kind == RecoveryKind.NEEDS_DECISION
        assert out.time_until_close == 5 * 60
        assert out.time_total == 15 * 60

    def test_threshold_boundary(self):
        last = T0 + MIN
        assert (
            classify_recovery(_running(last_tick=last), last + 3 * MIN).kind
            == RecoveryKind.NEEDS_DECISION
        )
        assert (
            classify_recovery(_running(last_tick=last), last + 3 * MIN - 1).kind
            == RecoveryKind.PAUSED_SILENT
        )

    def test_pure(self):
        s = _running(last_tick=T0 + MIN)
        assert classify_recovery(s, T0 + 20 * MIN) == classify_recovery(s, T0 + 20 * MIN)


class TestRecover:
    def test_nothing_persisted(self, engine):
        out = engine.recover()
        assert out.kind == RecoveryKind.NOTHING
        assert engine.state == TimerState.IDLE

    def test_paused_direct(self, active_repo, clock, scheduler):
        paused = _running().with_segments(PauseSegment(T0 + 10 * SEC))
        active_repo.save(paused)
        clock.advance(2 * 60 * MIN)
        eng = TimerEngine(active_repo, scheduler=scheduler, clock=clock)
        out = eng.recover()
        assert out.kind == RecoveryKind.PAUSED_DIRECT
        assert eng.state == TimerState.PAUSED
        assert eng.get_elapsed_seconds() == 10
        assert scheduler.jobs == {}

    def test_silent_pause(self, active_repo, clock, scheduler):
        active_repo.save(_running(last_tick=T0 + 30 * SEC))
        clock.advance(30 * SEC + MIN)
        eng = TimerEngine(active_repo, scheduler=scheduler, clock=clock)
        out = eng.recover()
        assert out.kind == RecoveryKind.PAUSED_SILENT
        assert eng.state == TimerState.PAUSED
        assert eng.get_elapsed_seconds() == 30
        assert active_repo.load().is_paused

    def test_decision_pending(self, active_repo, clock):
        active_repo.save(_running(last_tick=T0 + 5 * MIN))
        clock.advance(15 * MIN)
        eng = TimerEngine(active_repo, clock=clock)
        out = eng.recover()
        assert out.kind == RecoveryKind.NEEDS_DECISION
        assert eng.state == TimerState.NEEDS_RECOVERY_DECISION
        assert eng.pending_recovery is out
        assert eng.get_current_task_info() is None
        # persisted copy untouched
        assert active_repo.load() == _running(last_tick=T0 + 5 * MIN)
        assert not eng.start_timer("task_b")

    def test_until_close(self, active_repo, clock):
        active_repo.save(_running(last_tick=T0 + 5 * MIN))
        now = clock.advance(15 * MIN)
        eng = TimerEngine(active_repo, clock=clock)
        eng.recover()
        assert eng.apply_recovery_decision(RecoveryChoice.UNTIL_CLOSE)
        assert eng.state == TimerState.PAUSED
        assert eng.get_elapsed_seconds() == 5 * 60
        assert eng.active_session.pause_segments == (
            PauseSegment(T0 + 5 * MIN, now),
            PauseSegment(now),
        )
        assert active_repo.load() == eng.active_session
        assert eng.pending_recovery is None

    def test_full_time(self, active_repo, clock):
        active_repo.save(_running(last_tick=T0 + 5 * MIN))
        now = clock.advance(15 * MIN)
        eng = TimerEngine(active_repo, clock=clock)
        eng.recover()
        assert eng.apply_recovery_decision("full-time")
        assert eng.state == TimerState.PAUSED
        assert eng.get_elapsed_seconds() == 15 * 60
        assert eng.active_session.pause_segments == (PauseSegment(now),)

    def test_decision_without_pending(self, engine):
        assert not engine.apply_recovery_decision(RecoveryChoice.FULL_TIME)

    def test_unknown_choice(self, active_repo, clock):
        active_repo.save(_running(last_tick=T0))
        clock.advance(30 * MIN)
        eng = TimerEngine(active_repo, clock=clock)
        eng.recover()
        assert not eng.apply_recovery_decision("forever")
        assert eng.state == TimerState.NEEDS_RECOVERY_DECISION

    def test_reset_from_pending(self, active_repo, clock):
        active_repo.save(_running(last_tick=T0))
        clock.advance(30 * MIN)
        eng = TimerEngine(active_repo, clock=clock)
        eng.recover()
        eng.reset_timer()
        assert eng.state == TimerState.IDLE
        assert active_repo.load() is None

    @pytest.mark.parametrize(
        "raw",
        [
            "not json",
            '{"taskId": "t"}',
            '{"startTime": "abc"}',
            '{"startTime": 1, "pauseSegments": [{"start": 1}, {"start": 2, "end": 3}]}',
            "[1, 2, 3]",
        ],
    )
    def test_malformed_state_is_idle(self, state, clock, raw):
        state.set(KEY_ACTIVE_SESSION, raw)
        eng = TimerEngine(ActiveSessionRepo(state), clock=clock)
        out = eng.recover()
        assert out.kind == RecoveryKind.NOTHING
        assert eng.state == TimerState.IDLE


class TestPersistenceFailure:
    def test_keeps_running_in_memory(self):
        store = FailingStore()
        clock = FakeClock()
        eng = TimerEngine(store, clock=clock)
        assert eng.start_timer("task_a")
        assert eng.state == TimerState.RUNNING
        assert eng.last_persist_ok is False
        clock.advance(3 * SEC)
        assert eng.get_elapsed_seconds() == 3
        assert store.saves == 1
