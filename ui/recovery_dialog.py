# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk

from core.time_utils import format_duration
from core.timer_engine import RecoveryChoice, RecoveryOutcome, TimerEngine


def _fmt(sec: int) -> str:
    return format_duration(sec) or f"{sec // 3600}h+"


class RecoveryDialog:
    """
    Modal shown at boot when the timer was running and the app was gone for
    longer than the background threshold. Closing the window keeps the
    conservative choice.
    """

    def __init__(self, master, engine: TimerEngine, outcome: RecoveryOutcome):
        self.engine = engine
        self.outcome = outcome

        self.top = tk.Toplevel(master)
        self.top.title("Timer recovered")
        self.top.transient(master)
        self.top.resizable(False, False)
        self.top.protocol("WM_DELETE_WINDOW", lambda: self._decide(RecoveryChoice.UNTIL_CLOSE))

        frame = ttk.Frame(self.top, padding=14)
        frame.pack(fill="both", expand=True)

        gap_min = outcome.gap_ms // 60000
        ttk.Label(
            frame,
            text=f"The timer was running but the app was closed for {gap_min} min.",
            wraplength=360,
        ).pack(anchor="w", pady=(0, 10))

        ttk.Button(
            frame,
            text=f"Count until close ({_fmt(outcome.time_until_close)})",
            command=lambda: self._decide(RecoveryChoice.UNTIL_CLOSE),
        ).pack(fill="x", pady=(0, 6))
        ttk.Button(
            frame,
            text=f"Count the full time ({_fmt(outcome.time_total)})",
            command=lambda: self._decide(RecoveryChoice.FULL_TIME),
        ).pack(fill="x")

        self.top.grab_set()

    def _decide(self, choice: RecoveryChoice):
        self.engine.apply_recovery_decision(choice)
        self.top.grab_release()
        self.top.destroy()
