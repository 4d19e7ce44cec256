# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import simpledialog, ttk
from typing import Callable, Optional

from core.time_utils import format_seconds_hhmmss
from core.timer_engine import EngineSnapshot
from services.task_service import TaskService
from services.timer_service import TimerService


def format_time(seconds: int) -> str:
    return format_seconds_hhmmss(seconds) or "--:--:--"


class TrackerWidget(ttk.Frame):
    def __init__(
        self,
        master,
        timer_service: TimerService,
        task_service: TaskService,
        get_selected_task_id: Callable[[], Optional[str]],
        on_request_refresh: Callable[[], None],
    ):
        super().__init__(master)

        self.timer_service = timer_service
        self.task_service = task_service
        self.get_selected_task_id = get_selected_task_id
        self.on_request_refresh = on_request_refresh

        self._build_ui()

        # wire callbacks from service -> widget UI
        self.timer_service.set_on_tick(self._on_tick)
        self.timer_service.set_on_state_change(self._on_state_change)

        # the engine ticks through this widget's Tk event loop
        self.timer_service.engine.attach_scheduler(self)

        self._render(self.timer_service.get_snapshot())
        self._update_buttons()

    def _build_ui(self):
        self.columnconfigure(0, weight=1)

        self.time_var = tk.StringVar(value="00:00:00")
        self.task_var = tk.StringVar(value="")
        self.info_var = tk.StringVar(value="Ready")
        self.notes_var = tk.StringVar(value="")

        title = ttk.Label(self, text="Timer", font=("Sans", 12, "bold"))
        title.grid(row=0, column=0, sticky="w", pady=(0, 6))

        self.task_label = ttk.Label(self, textvariable=self.task_var)
        self.task_label.grid(row=1, column=0, sticky="w")

        self.time_label = ttk.Label(
            self, textvariable=self.time_var, font=("Sans", 32, "bold")
        )
        self.time_label.grid(row=2, column=0, sticky="w", pady=(8, 4))

        self.info_label = ttk.Label(self, textvariable=self.info_var)
        self.info_label.grid(row=3, column=0, sticky="w", pady=(0, 8))

        notes = ttk.Frame(self)
        notes.grid(row=4, column=0, sticky="ew", pady=(0, 8))
        notes.columnconfigure(1, weight=1)
        ttk.Label(notes, text="Notes").grid(row=0, column=0, padx=(0, 6))
        ttk.Entry(notes, textvariable=self.notes_var).grid(row=0, column=1, sticky="ew")

        btns = ttk.Frame(self)
        btns.grid(row=5, column=0, sticky="w")

        self.start_btn = ttk.Button(btns, text="Start", command=self._start_pause)
        self.save_btn = ttk.Button(btns, text="Save", command=self._save)
        self.reset_btn = ttk.Button(btns, text="Discard", command=self._reset)

        self.start_btn.grid(row=0, column=0, padx=(0, 6))
        self.save_btn.grid(row=0, column=1, padx=(0, 6))
        self.reset_btn.grid(row=0, column=2)

    def _update_buttons(self):
        snap = self.timer_service.get_snapshot()

        if snap.is_running:
            self.start_btn.config(text="Pause")
        elif snap.is_paused:
            self.start_btn.config(text="Resume")
        else:
            self.start_btn.config(text="Start")

        if snap.is_idle:
            self.save_btn.state(["disabled"])
            self.reset_btn.state(["disabled"])
        else:
            self.save_btn.state(["!disabled"])
            self.reset_btn.state(["!disabled"])

    # ---- actions ----
    def _start_pause(self):
        snap = self.timer_service.get_snapshot()
        engine = self.timer_service.engine
        if snap.is_running:
            engine.pause_timer()
        elif snap.is_paused:
            engine.resume_timer()
        else:
            # no selection is fine: the task can be named when saving
            engine.start_timer(self.get_selected_task_id())

    def _save(self):
        info = self.timer_service.engine.get_current_task_info()
        if info is None:
            return
        # before any task gets created for an unassigned timer
        too_short = self.timer_service.min_duration_error()
        if too_short:
            self.info_var.set(too_short)
            return
        if not info.task_ref.is_assigned:
            selected = self.get_selected_task_id()
            if selected:
                self.timer_service.engine.assign_task(selected)
            else:
                self.timer_service.engine.pause_timer()
                name = simpledialog.askstring(
                    "Save session", "Name the task for this session:", parent=self
                )
                if not name or not name.strip():
                    return
                try:
                    self.task_service.resolve_unassigned_task(name)
                except ValueError as e:
                    self.info_var.set(str(e))
                    return

        result = self.timer_service.save_active_session(self.notes_var.get())
        if result.success:
            self.notes_var.set("")
            self.info_var.set(f"Saved {result.session.duration // 60} min")
            self.on_request_refresh()
        else:
            self.info_var.set(result.error or "Could not save")

    def _reset(self):
        self.timer_service.discard_active_session()
        self.info_var.set("Session discarded")
        self.on_request_refresh()

    # ---- Service callbacks ----
    def _on_tick(self, snap: EngineSnapshot):
        self._render(snap)

    def _on_state_change(self, snap: EngineSnapshot):
        self._render(snap)
        self._update_buttons()

    def _render(self, snap: EngineSnapshot):
        self.time_var.set(format_time(snap.elapsed_sec))

        if snap.task_ref is None:
            self.task_var.set("")
        elif snap.task_ref.is_assigned:
            task = self.task_service.get_task(snap.task_ref.task_id)
            self.task_var.set(task.name if task else "(deleted task)")
        else:
            self.task_var.set("(no task yet)")

        if snap.is_idle:
            self.info_var.set("Ready")
        elif snap.is_running:
            self.info_var.set("Running...")
        elif snap.is_paused:
            self.info_var.set("Paused")
