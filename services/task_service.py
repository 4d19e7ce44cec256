# services/task_service.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from core.constants import GENERAL_PROJECT_NAME, PERSONAL_CLIENT_NAME
from core.timer_engine import TimerEngine
from domain.models import Client, Project, Task
from services.session_service import SessionService
from storage.db import Database
from storage.repos import ClientRepo, ProjectRepo, TaskRepo

log = logging.getLogger(__name__)


class TaskService:
    """
    Client > Project > Task lookups and the deletes that cascade into
    sessions. Sessions are reached through SessionService, never the other
    way round.
    """

    def __init__(
        self,
        db: Database,
        session_service: SessionService,
        timer_engine: Optional[TimerEngine] = None,
    ):
        self.db = db
        self.clients = ClientRepo(db)
        self.projects = ProjectRepo(db)
        self.tasks = TaskRepo(db)
        self.session_service = session_service
        self.timer_engine = timer_engine

    # ---- reads ----
    def list_clients(self) -> List[Client]:
        return self.clients.list()

    def list_projects(self, client_id: Optional[str] = None) -> List[Project]:
        return self.projects.list(client_id=client_id)

    def list_tasks(self, project_id: Optional[str] = None) -> List[Task]:
        return self.tasks.list(project_id=project_id)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.tasks.get(task_id)

    def task_labels(self) -> Dict[str, str]:
        """task id -> "Client / Project / Task" for pickers."""
        clients = {c.id: c for c in self.clients.list()}
        projects = {p.id: p for p in self.projects.list()}
        out: Dict[str, str] = {}
        for t in self.tasks.list():
            p = projects.get(t.project_id)
            c = clients.get(p.client_id) if p else None
            parts = [c.name if c else "?", p.name if p else "?", t.name]
            out[t.id] = " / ".join(parts)
        return out

    # ---- creates ----
    def create_client(self, name: str, color: Optional[str] = None) -> Client:
        name = (name or "").strip()
        if not name:
            raise ValueError("Client name cannot be empty.")
        return self.clients.create(name=name, color=color)

    def create_project(self, name: str, client_id: str, color: Optional[str] = None) -> Project:
        name = (name or "").strip()
        if not name:
            raise ValueError("Project name cannot be empty.")
        if not self.clients.get(client_id):
            raise ValueError("Client not found.")
        return self.projects.create(name=name, client_id=client_id, color=color)

    def create_task(self, name: str, project_id: str) -> Task:
        name = (name or "").strip()
        if not name:
            raise ValueError("Task name cannot be empty.")
        if not self.projects.get(project_id):
            raise ValueError("Project not found.")
        return self.tasks.create(name=name, project_id=project_id)

    def set_completed(self, task_id: str, completed: bool = True) -> None:
        if not self.tasks.get(task_id):
            raise ValueError("Task not found.")
        self.tasks.set_completed(task_id, completed)

    def general_project(self) -> Project:
        """The catch-all project new ad-hoc tasks go into; created on demand."""
        project = self.projects.find_by_name(GENERAL_PROJECT_NAME)
        if project:
            return project
        client = self.clients.find_by_name(PERSONAL_CLIENT_NAME) or self.clients.create(
            name=PERSONAL_CLIENT_NAME
        )
        return self.projects.create(name=GENERAL_PROJECT_NAME, client_id=client.id)

    def resolve_unassigned_task(self, name: str) -> Task:
        """
        Create a task for a timer that was started without one and book the
        running session against it.
        """
        task = self.create_task(name, self.general_project().id)
        if self.timer_engine is not None:
            self.timer_engine.assign_task(task.id)
        return task

    # ---- deletes (cascade) ----
    def _drop_task_ids(self, task_ids: List[str], what: str) -> None:
        """
        Remove the sessions of tasks about to be deleted and discard any
        timer booked against them. Raises before anything is deleted if the
        session list cannot be written.
        """
        if not task_ids:
            return
        if self.session_service.delete_sessions_for_tasks(task_ids) < 0:
            log.error("Sessions of %d tasks not deleted; keeping the %s", len(task_ids), what)
            raise ValueError(f"Could not delete the sessions of this {what}.")
        engine = self.timer_engine
        if engine is None:
            return
        info = engine.get_current_task_info()
        if info and info.task_ref.task_id in task_ids:
            log.info("Active timer task was deleted; discarding timer")
            engine.reset_timer()
            return
        pending = engine.pending_recovery
        if pending and pending.session and pending.session.task_ref.task_id in task_ids:
            log.info("Task of the session awaiting recovery was deleted; discarding it")
            engine.reset_timer()

    def delete_task(self, task_id: str) -> None:
        if not self.tasks.get(task_id):
            raise ValueError("Task not found.")
        self._drop_task_ids([task_id], "task")
        self.tasks.delete(task_id)

    def delete_project(self, project_id: str) -> None:
        if not self.projects.get(project_id):
            raise ValueError("Project not found.")
        self._drop_task_ids(self.tasks.ids_for_projects([project_id]), "project")
        # tasks go with it (FK ON DELETE CASCADE)
        self.projects.delete(project_id)

    def delete_client(self, client_id: str) -> None:
        if not self.clients.get(client_id):
            raise ValueError("Client not found.")
        project_ids = [p.id for p in self.projects.list(client_id=client_id)]
        self._drop_task_ids(self.tasks.ids_for_projects(project_ids), "client")
        self.clients.delete(client_id)
