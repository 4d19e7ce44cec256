# storage/repos.py
#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import json
import logging
import sqlite3
import time
import uuid
from typing import Any, List, Optional, Sequence

from core.constants import KEY_ACTIVE_SESSION, KEY_SESSIONS
from domain.models import ActiveSession, Client, Project, Session, Task
from storage.db import Database

log = logging.getLogger(__name__)


def _now_ts() -> int:
    return int(time.time())


class AppStateRepo:
    """
    Key/value rows of JSON text. Failures are logged and reported as
    None (reads) or False (writes); callers keep their in-memory state.
    """

    def __init__(self, db: Database):
        self.db = db

    def get(self, key: str) -> Optional[str]:
        try:
            row = self.db.conn.execute(
                "SELECT value FROM app_state WHERE key=?",
                (key,),
            ).fetchone()
        except sqlite3.Error:
            log.exception("Error reading app_state key=%s", key)
            return None
        return row["value"] if row else None

    def set(self, key: str, value: str) -> bool:
        try:
            self.db.conn.execute(
                """
                INSERT INTO app_state(key, value) VALUES(?, ?)
                ON CONFLICT(key) DO UPDATE SET value=excluded.value
                """,
                (key, value),
            )
            self.db.conn.commit()
        except sqlite3.Error:
            log.exception("Error writing app_state key=%s", key)
            return False
        return True

    def delete(self, key: str) -> bool:
        try:
            self.db.conn.execute("DELETE FROM app_state WHERE key=?", (key,))
            self.db.conn.commit()
        except sqlite3.Error:
            log.exception("Error deleting app_state key=%s", key)
            return False
        return True

    def get_json(self, key: str) -> Any:
        raw = self.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            log.error("Corrupt JSON under app_state key=%s", key)
            return None

    def set_json(self, key: str, value: Any) -> bool:
        return self.set(key, json.dumps(value))


class SessionRepo:
    def __init__(self, state: AppStateRepo):
        self.state = state

    def load_all(self) -> List[Session]:
        raw = self.state.get_json(KEY_SESSIONS)
        if not isinstance(raw, list):
            return []
        out: List[Session] = []
        for item in raw:
            try:
                out.append(Session.from_dict(item))
            except (KeyError, TypeError, ValueError):
                log.warning("Skipping malformed session record: %r", item)
        return out

    def save_all(self, sessions: Sequence[Session]) -> bool:
        return self.state.set_json(KEY_SESSIONS, [s.to_dict() for s in sessions])


class ActiveSessionRepo:
    def __init__(self, state: AppStateRepo):
        self.state = state

    def load(self) -> Optional[ActiveSession]:
        raw = self.state.get_json(KEY_ACTIVE_SESSION)
        if raw is None:
            return None
        try:
            return ActiveSession.from_dict(raw)
        except (KeyError, TypeError, ValueError, AttributeError):
            log.warning("Ignoring malformed active session: %r", raw)
            return None

    def save(self, session: Optional[ActiveSession]) -> bool:
        return self.state.set_json(
            KEY_ACTIVE_SESSION, session.to_dict() if session else None
        )


# ---- hierarchy ----
class ClientRepo:
    def __init__(self, db: Database):
        self.db = db

    def _row(self, r) -> Client:
        return Client(
            id=r["id"],
            name=r["name"],
            color=r["color"],
            description=r["description"] or "",
            is_archived=bool(r["is_archived"]),
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )

    def create(self, name: str, color: Optional[str] = None, description: str = "") -> Client:
        cid = f"client_{uuid.uuid4().hex}"
        ts = _now_ts()
        self.db.conn.execute(
            """
            INSERT INTO clients(id, name, color, description, created_at, updated_at)
            VALUES(?,?,?,?,?,?)
            """,
            (cid, name, color, description or "", ts, ts),
        )
        self.db.conn.commit()
        return self.get(cid)

    def get(self, client_id: str) -> Optional[Client]:
        r = self.db.conn.execute(
            "SELECT * FROM clients WHERE id=?", (client_id,)
        ).fetchone()
        return self._row(r) if r else None

    def list(self) -> List[Client]:
        rows = self.db.conn.execute(
            "SELECT * FROM clients ORDER BY created_at ASC, name ASC"
        ).fetchall()
        return [self._row(r) for r in rows]

    def find_by_name(self, name: str) -> Optional[Client]:
        r = self.db.conn.execute(
            "SELECT * FROM clients WHERE name=? AND is_archived=0 ORDER BY created_at ASC",
            (name,),
        ).fetchone()
        return self._row(r) if r else None

    def delete(self, client_id: str) -> None:
        # projects and tasks go with it (FK ON DELETE CASCADE)
        self.db.conn.execute("DELETE FROM clients WHERE id=?", (client_id,))
        self.db.conn.commit()


class ProjectRepo:
    def __init__(self, db: Database):
        self.db = db

    def _row(self, r) -> Project:
        return Project(
            id=r["id"],
            name=r["name"],
            client_id=r["client_id"],
            color=r["color"],
            description=r["description"] or "",
            is_archived=bool(r["is_archived"]),
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )

    def create(
        self,
        name: str,
        client_id: str,
        color: Optional[str] = None,
        description: str = "",
    ) -> Project:
        pid = f"project_{uuid.uuid4().hex}"
        ts = _now_ts()
        self.db.conn.execute(
            """
            INSERT INTO projects(id, name, client_id, color, description, created_at, updated_at)
            VALUES(?,?,?,?,?,?,?)
            """,
            (pid, name, client_id, color, description or "", ts, ts),
        )
        self.db.conn.commit()
        return self.get(pid)

    def get(self, project_id: str) -> Optional[Project]:
        r = self.db.conn.execute(
            "SELECT * FROM projects WHERE id=?", (project_id,)
        ).fetchone()
        return self._row(r) if r else None

    def list(self, client_id: Optional[str] = None) -> List[Project]:
        if client_id:
            rows = self.db.conn.execute(
                "SELECT * FROM projects WHERE client_id=? ORDER BY created_at ASC, name ASC",
                (client_id,),
            ).fetchall()
        else:
            rows = self.db.conn.execute(
                "SELECT * FROM projects ORDER BY created_at ASC, name ASC"
            ).fetchall()
        return [self._row(r) for r in rows]

    def find_by_name(self, name: str) -> Optional[Project]:
        r = self.db.conn.execute(
            "SELECT * FROM projects WHERE name=? AND is_archived=0 ORDER BY created_at ASC",
            (name,),
        ).fetchone()
        return self._row(r) if r else None

    def delete(self, project_id: str) -> None:
        self.db.conn.execute("DELETE FROM projects WHERE id=?", (project_id,))
        self.db.conn.commit()


class TaskRepo:
    def __init__(self, db: Database):
        self.db = db

    def _row(self, r) -> Task:
        return Task(
            id=r["id"],
            name=r["name"],
            project_id=r["project_id"],
            description=r["description"] or "",
            is_completed=bool(r["is_completed"]),
            is_archived=bool(r["is_archived"]),
            created_at=r["created_at"],
            updated_at=r["updated_at"],
        )

    def create(self, name: str, project_id: str, description: str = "") -> Task:
        tid = f"task_{uuid.uuid4().hex}"
        ts = _now_ts()
        self.db.conn.execute(
            """
            INSERT INTO tasks(id, name, project_id, description, created_at, updated_at)
            VALUES(?,?,?,?,?,?)
            """,
            (tid, name, project_id, description or "", ts, ts),
        )
        self.db.conn.commit()
        return self.get(tid)

    def get(self, task_id: str) -> Optional[Task]:
        r = self.db.conn.execute("SELECT * FROM tasks WHERE id=?", (task_id,)).fetchone()
        return self._row(r) if r else None

    def list(self, project_id: Optional[str] = None) -> List[Task]:
        if project_id:
            rows = self.db.conn.execute(
                "SELECT * FROM tasks WHERE project_id=? ORDER BY updated_at DESC",
                (project_id,),
            ).fetchall()
        else:
            rows = self.db.conn.execute(
                "SELECT * FROM tasks ORDER BY updated_at DESC"
            ).fetchall()
        return [self._row(r) for r in rows]

    def ids_for_projects(self, project_ids: Sequence[str]) -> List[str]:
        if not project_ids:
            return []
        marks = ",".join("?" for _ in project_ids)
        rows = self.db.conn.execute(
            f"SELECT id FROM tasks WHERE project_id IN ({marks})",
            tuple(project_ids),
        ).fetchall()
        return [r["id"] for r in rows]

    def set_completed(self, task_id: str, completed: bool) -> None:
        self.db.conn.execute(
            "UPDATE tasks SET is_completed=?, updated_at=? WHERE id=?",
            (1 if completed else 0, _now_ts(), task_id),
        )
        self.db.conn.commit()

    def delete(self, task_id: str) -> None:
        self.db.conn.execute("DELETE FROM tasks WHERE id=?", (task_id,))
        self.db.conn.commit()
