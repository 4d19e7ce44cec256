#!/usr/bin/env python3
# -*- coding: utf-8 -*-

import logging
import sqlite3

log = logging.getLogger(__name__)


class Database:
    def __init__(self, db_path: str = "worklog.db"):
        self.db_path = db_path
        self.conn = sqlite3.connect(self.db_path)
        self.conn.row_factory = sqlite3.Row
        self.conn.execute("PRAGMA foreign_keys = ON;")

    def _cols(self, table: str):
        try:
            return [
                r["name"]
                for r in self.conn.execute(f"PRAGMA table_info({table});").fetchall()
            ]
        except sqlite3.Error:
            log.exception("Could not read columns of %s", table)
            return []

    def init_schema(self):
        cur = self.conn.cursor()

        # key/value store: sessions + active_session live here as JSON
        cur.execute("""
            CREATE TABLE IF NOT EXISTS app_state (
                key TEXT PRIMARY KEY,
                value TEXT
            );
        """)

        # --- hierarchy: client > project > task ---
        cur.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                color TEXT,
                description TEXT NOT NULL DEFAULT '',
                is_archived INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL
            );
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS projects (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                client_id TEXT NOT NULL,
                color TEXT,
                description TEXT NOT NULL DEFAULT '',
                is_archived INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                FOREIGN KEY(client_id) REFERENCES clients(id) ON DELETE CASCADE
            );
        """)
        cur.execute("""
            CREATE TABLE IF NOT EXISTS tasks (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                project_id TEXT NOT NULL,
                description TEXT NOT NULL DEFAULT '',
                is_completed INTEGER NOT NULL DEFAULT 0,
                created_at INTEGER NOT NULL,
                updated_at INTEGER NOT NULL,
                FOREIGN KEY(project_id) REFERENCES projects(id) ON DELETE CASCADE
            );
        """)

        # tasks migration (archiving came later)
        if "is_archived" not in self._cols("tasks"):
            cur.execute(
                "ALTER TABLE tasks ADD COLUMN is_archived INTEGER NOT NULL DEFAULT 0;"
            )

        cur.execute(
            "CREATE INDEX IF NOT EXISTS idx_projects_client ON projects(client_id);"
        )
        cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_project ON tasks(project_id);")

        self.conn.commit()

    def close(self):
        try:
            self.conn.close()
        except sqlite3.Error:
            log.exception("Error closing database %s", self.db_path)
