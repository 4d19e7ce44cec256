# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import ttk

from tkinterweb import HtmlFrame

from core.stats_calculator import Period
from services.report_service import ReportService
from services.stats_service import StatsService
from ui.markdown_renderer import MarkdownRenderer


class StatsWindow:
    def __init__(self, master, stats_service: StatsService):
        self.stats_service = stats_service
        self.report = ReportService()
        self.renderer = MarkdownRenderer()

        self.top = tk.Toplevel(master)
        self.top.title("Statistics")
        self.top.geometry("860x680")

        bar = ttk.Frame(self.top, padding=(10, 8))
        bar.pack(fill="x")

        self.period_var = tk.StringVar(value=Period.WEEK.value)
        for p, label in (
            (Period.TODAY, "Today"),
            (Period.WEEK, "Week"),
            (Period.MONTH, "Month"),
            (Period.YEAR, "Year"),
        ):
            ttk.Radiobutton(
                bar,
                text=label,
                value=p.value,
                variable=self.period_var,
                command=self.refresh,
            ).pack(side="left", padx=(0, 8))

        ttk.Button(bar, text="Refresh", command=self.refresh).pack(side="right")

        self.view = HtmlFrame(self.top, horizontal_scrollbar="auto")
        self.view.pack(fill="both", expand=True)

        self.refresh()

    def refresh(self):
        dash = self.stats_service.dashboard(Period(self.period_var.get()))
        html = self.renderer.to_html(self.report.build_markdown(dash))
        self.view.load_html(html)
