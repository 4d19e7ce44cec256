# -*- coding: utf-8 -*-

import tkinter as tk
from tkinter import messagebox, ttk
from typing import Dict, List, Optional, Tuple

from core import project_stats
from core.session_filters import (
    SessionDateFilter,
    SessionSortBy,
    apply_session_filters,
    get_filter_label,
    get_sort_label,
    group_sessions_by_day,
)
from core.stats_calculator import DELETED_TASK, format_session_date
from core.time_utils import format_duration
from core.timer_engine import RecoveryKind, RecoveryOutcome
from domain.models import Session
from services.stats_service import StatsService
from services.task_service import TaskService
from services.timer_service import TimerService
from ui.recovery_dialog import RecoveryDialog
from ui.stats_window import StatsWindow
from ui.tracker_widget import TrackerWidget

CLIENT, PROJECT, TASK = "client", "project", "task"


def _fmt_total(sec: int) -> str:
    # totals can pass a day, where format_duration gives up
    if sec >= 24 * 3600:
        return f"{sec // 3600}h"
    return format_duration(sec)


class MainWindow:
    def __init__(
        self,
        task_service: TaskService,
        timer_service: TimerService,
        stats_service: StatsService,
        recovery: Optional[RecoveryOutcome] = None,
    ):
        self.task_service = task_service
        self.timer_service = timer_service
        self.stats_service = stats_service
        self.sessions = stats_service.session_service

        self.root = tk.Tk()
        self.root.title("Worklog")
        self.root.geometry("1080x560")

        # tree iid -> (kind, entity id)
        self._nodes: Dict[str, Tuple[str, str]] = {}
        self._session_rows: Dict[int, str] = {}
        self._filters = list(SessionDateFilter)
        self._sorts = list(SessionSortBy)

        self._build_ui()
        self._refresh_all()
        self.root.protocol("WM_DELETE_WINDOW", self._on_close)

        if recovery is not None and recovery.kind == RecoveryKind.NEEDS_DECISION:
            self.root.after(100, lambda: self._ask_recovery(recovery))

    def _build_ui(self):
        body = ttk.Panedwindow(self.root, orient="horizontal")
        body.pack(fill="both", expand=True, padx=10, pady=10)

        body.add(self._build_tree_panel(body), weight=3)

        right = ttk.Frame(body)
        right.columnconfigure(0, weight=1)
        right.rowconfigure(1, weight=1)
        body.add(right, weight=2)

        self.tracker = TrackerWidget(
            right,
            timer_service=self.timer_service,
            task_service=self.task_service,
            get_selected_task_id=self.get_selected_task_id,
            on_request_refresh=self._refresh_all,
        )
        self.tracker.grid(row=0, column=0, sticky="ew")

        right_bottom = self._build_sessions_panel(right)
        right_bottom.grid(row=1, column=0, sticky="nsew", pady=(10, 0))

        self.summary_var = tk.StringVar(value="")
        ttk.Label(right, textvariable=self.summary_var, justify="left").grid(
            row=2, column=0, sticky="w", pady=(8, 0)
        )

    def _build_tree_panel(self, parent) -> ttk.Frame:
        panel = ttk.Labelframe(parent, text="Clients / Projects / Tasks", padding=8)
        panel.columnconfigure(0, weight=1)
        panel.rowconfigure(2, weight=1)

        entry_row = ttk.Frame(panel)
        entry_row.grid(row=0, column=0, sticky="ew")
        entry_row.columnconfigure(0, weight=1)

        self.name_var = tk.StringVar()
        name_entry = ttk.Entry(entry_row, textvariable=self.name_var)
        name_entry.grid(row=0, column=0, sticky="ew")
        name_entry.bind("<Return>", lambda e: self._add(TASK))
        for col, (label, kind) in enumerate(
            (("+ Client", CLIENT), ("+ Project", PROJECT), ("+ Task", TASK)), start=1
        ):
            ttk.Button(entry_row, text=label, command=lambda k=kind: self._add(k)).grid(
                row=0, column=col, padx=(6, 0)
            )

        self.err_var = tk.StringVar(value="")
        ttk.Label(panel, textvariable=self.err_var, foreground="red").grid(
            row=1, column=0, sticky="w", pady=(4, 4)
        )

        self.tree = ttk.Treeview(
            panel, columns=("total", "sessions", "last"), selectmode="browse"
        )
        self.tree.heading("#0", text="Name")
        self.tree.heading("total", text="Total")
        self.tree.heading("sessions", text="Sessions")
        self.tree.heading("last", text="Last activity")
        self.tree.column("total", width=90, anchor="e")
        self.tree.column("sessions", width=70, anchor="e")
        self.tree.column("last", width=120)
        self.tree.tag_configure("done", foreground="#6B7280")
        self.tree.grid(row=2, column=0, sticky="nsew")
        self.tree.bind("<<TreeviewSelect>>", lambda e: self._refresh_summary())

        bar = ttk.Frame(panel)
        bar.grid(row=3, column=0, sticky="ew", pady=(8, 0))
        ttk.Button(bar, text="Done / undo", command=self._toggle_done).pack(side="left")
        ttk.Button(bar, text="Delete", command=self._delete_node).pack(side="left", padx=(6, 0))
        ttk.Button(bar, text="Stats", command=self._open_stats).pack(side="right")
        return panel

    def _build_sessions_panel(self, parent) -> ttk.Labelframe:
        panel = ttk.Labelframe(parent, text="Sessions", padding=8)
        panel.columnconfigure(0, weight=1)
        panel.rowconfigure(1, weight=1)

        bar = ttk.Frame(panel)
        bar.grid(row=0, column=0, sticky="ew", pady=(0, 6))
        self.filter_box = ttk.Combobox(
            bar, state="readonly", width=20, values=[get_filter_label(f) for f in self._filters]
        )
        self.filter_box.current(self._filters.index(SessionDateFilter.WEEK))
        self.filter_box.pack(side="left")
        self.sort_box = ttk.Combobox(
            bar, state="readonly", width=20, values=[get_sort_label(s) for s in self._sorts]
        )
        self.sort_box.current(self._sorts.index(SessionSortBy.DATE_DESC))
        self.sort_box.pack(side="left", padx=(6, 0))
        for box in (self.filter_box, self.sort_box):
            box.bind("<<ComboboxSelected>>", lambda e: self._refresh_sessions())
        ttk.Button(bar, text="Delete", command=self._delete_session).pack(side="right")

        self.session_list = tk.Listbox(panel, height=8, exportselection=False)
        self.session_list.grid(row=1, column=0, sticky="nsew")
        return panel

    def run(self):
        self.root.mainloop()

    def _on_close(self):
        self.timer_service.engine.shutdown()
        self.root.destroy()

    def _ask_recovery(self, recovery: RecoveryOutcome):
        RecoveryDialog(self.root, self.timer_service.engine, recovery)

    # ----- selection -----
    def _selected(self) -> Optional[Tuple[str, str]]:
        sel = self.tree.selection()
        return self._nodes.get(sel[0]) if sel else None

    def get_selected_task_id(self) -> Optional[str]:
        node = self._selected()
        return node[1] if node and node[0] == TASK else None

    def _parent_id(self, kind: str) -> Optional[str]:
        """Nearest selected node of `kind`, walking up from the selection."""
        sel = self.tree.selection()
        iid = sel[0] if sel else ""
        while iid:
            node = self._nodes.get(iid)
            if node and node[0] == kind:
                return node[1]
            iid = self.tree.parent(iid)
        return None

    # ----- tree actions -----
    def _add(self, kind: str):
        name = self.name_var.get()
        try:
            if kind == CLIENT:
                self.task_service.create_client(name)
            elif kind == PROJECT:
                client_id = self._parent_id(CLIENT)
                if client_id is None:
                    raise ValueError("Select a client first.")
                self.task_service.create_project(name, client_id)
            else:
                project_id = self._parent_id(PROJECT) or self.task_service.general_project().id
                self.task_service.create_task(name, project_id)
        except ValueError as e:
            self.err_var.set(str(e))
            return
        self.name_var.set("")
        self.err_var.set("")
        self._refresh_all()

    def _toggle_done(self):
        task_id = self.get_selected_task_id()
        if not task_id:
            return
        task = self.task_service.get_task(task_id)
        if task:
            self.task_service.set_completed(task_id, not task.is_completed)
            self._refresh_all()

    def _delete_node(self):
        node = self._selected()
        if node is None:
            return
        kind, entity_id = node
        if not messagebox.askyesno(
            "Delete", f"Delete this {kind} and all its sessions?", parent=self.root
        ):
            return
        delete = {
            CLIENT: self.task_service.delete_client,
            PROJECT: self.task_service.delete_project,
            TASK: self.task_service.delete_task,
        }[kind]
        try:
            delete(entity_id)
        except ValueError as e:
            self.err_var.set(str(e))
        self._refresh_all()

    def _open_stats(self):
        StatsWindow(self.root, self.stats_service)

    # ----- session actions -----
    def _delete_session(self):
        sel = self.session_list.curselection()
        session_id = self._session_rows.get(int(sel[0])) if sel else None
        if session_id and self.sessions.delete_session(session_id):
            self._refresh_all()

    # ----- refresh -----
    def _refresh_all(self):
        self._refresh_tree()
        self._refresh_sessions()
        self._refresh_summary()

    def _refresh_tree(self):
        selected = self._selected()
        sessions = self.sessions.get_sessions()
        projects = self.task_service.list_projects()
        tasks = self.task_service.list_tasks()

        self.tree.delete(*self.tree.get_children())
        self._nodes.clear()

        def row(total: int, count: int, last: str) -> Tuple[str, str, str]:
            return _fmt_total(total) if count else "", str(count) if count else "", last

        reselect = None
        for c in self.task_service.list_clients():
            st = project_stats.get_client_stats(c.id, sessions, projects, tasks)
            c_iid = self.tree.insert(
                "", "end", text=c.name, open=True,
                values=row(st.total_seconds, st.session_count, st.last_activity_formatted),
            )
            self._nodes[c_iid] = (CLIENT, c.id)
            for p in (p for p in projects if p.client_id == c.id):
                st = project_stats.get_project_stats(p.id, sessions, tasks)
                p_iid = self.tree.insert(
                    c_iid, "end", text=f"{p.name}  ({st.tasks_completed}/{st.total_tasks})",
                    open=True,
                    values=row(st.total_seconds, st.session_count, st.last_activity_formatted),
                )
                self._nodes[p_iid] = (PROJECT, p.id)
                for t in (t for t in tasks if t.project_id == p.id):
                    st = project_stats.get_task_stats(t.id, sessions)
                    t_iid = self.tree.insert(
                        p_iid, "end", text=t.name,
                        tags=("done",) if t.is_completed else (),
                        values=row(st.total_seconds, st.session_count, st.last_activity_formatted),
                    )
                    self._nodes[t_iid] = (TASK, t.id)

        for iid, node in self._nodes.items():
            if node == selected:
                reselect = iid
        if reselect:
            self.tree.selection_set(reselect)
            self.tree.see(reselect)

    def _refresh_sessions(self):
        labels = self.task_service.task_labels()
        date_filter = self._filters[self.filter_box.current()]
        sort_by = self._sorts[self.sort_box.current()]
        rows: List[Session] = apply_session_filters(
            self.sessions.get_sessions(), date_filter, sort_by
        )

        self.session_list.delete(0, tk.END)
        self._session_rows.clear()

        def add(s: Session, prefix: str = ""):
            text = (
                f"{prefix}{s.start_time:%H:%M}  {format_duration(s.duration) or '24h+'}  "
                f"{labels.get(s.task_id, DELETED_TASK)}"
            )
            if s.notes:
                text += f"  · {s.notes}"
            self._session_rows[self.session_list.size()] = s.id
            self.session_list.insert(tk.END, text)

        if sort_by in (SessionSortBy.DATE_ASC, SessionSortBy.DATE_DESC):
            for day, day_sessions in group_sessions_by_day(rows).items():
                total = sum(s.duration for s in day_sessions)
                self.session_list.insert(
                    tk.END, f"{format_session_date(day_sessions[0].start_time)}  ({_fmt_total(total)})"
                )
                for s in day_sessions:
                    add(s, prefix="    ")
        else:
            for s in rows:
                add(s, prefix=f"{s.start_time:%d/%m}  ")

    def _refresh_summary(self):
        lines = [f"Today: {_fmt_total(self.stats_service.total_today_work_sec())}"]
        task_id = self.get_selected_task_id()
        if task_id:
            d = self.stats_service.task_detail(task_id)
            lines.append(
                f"Task: {_fmt_total(d.total_duration)} in {d.session_count} sessions, "
                f"avg {d.average_duration_formatted}"
            )
            lines.append(
                f"Streak {d.current_streak} (best {d.best_streak}), {d.days_worked} days worked"
            )
        self.summary_var.set("\n".join(lines))
