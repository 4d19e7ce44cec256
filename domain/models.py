# -*- coding: utf-8 -*-

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class Client:
    id: str
    name: str
    color: Optional[str] = None
    description: str = ""
    is_archived: bool = False
    created_at: int = 0
    updated_at: int = 0


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    client_id: str
    color: Optional[str] = None
    description: str = ""
    is_archived: bool = False
    created_at: int = 0
    updated_at: int = 0


@dataclass(frozen=True)
class Task:
    id: str
    name: str
    project_id: str
    description: str = ""
    is_completed: bool = False
    is_archived: bool = False
    created_at: int = 0
    updated_at: int = 0


@dataclass(frozen=True)
class Session:
    id: str
    task_id: str
    start_time: dt.datetime
    end_time: dt.datetime
    duration: int  # seconds
    created_at: dt.datetime
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "taskId": self.task_id,
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat(),
            "duration": self.duration,
            "createdAt": self.created_at.isoformat(),
        }
        if self.notes is not None:
            d["notes"] = self.notes
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Session":
        return cls(
            id=str(d["id"]),
            task_id=str(d["taskId"]),
            start_time=dt.datetime.fromisoformat(d["startTime"]),
            end_time=dt.datetime.fromisoformat(d["endTime"]),
            duration=int(d["duration"]),
            created_at=dt.datetime.fromisoformat(d["createdAt"]),
            notes=d.get("notes"),
        )


@dataclass(frozen=True)
class TaskRef:
    """
    Task the active timer is booked against.
    A timer may run before the user picks a task; that is the unassigned ref.
    """

    task_id: Optional[str] = None

    @classmethod
    def assigned(cls, task_id: str) -> "TaskRef":
        if not task_id:
            raise ValueError("Assigned task ref needs a task id.")
        return cls(task_id=task_id)

    @classmethod
    def unassigned(cls) -> "TaskRef":
        return cls(task_id=None)

    @property
    def is_assigned(self) -> bool:
        return self.task_id is not None


@dataclass(frozen=True)
class PauseSegment:
    start: int  # epoch ms
    end: Optional[int] = None  # None while paused

    @property
    def is_open(self) -> bool:
        return self.end is None

    def to_dict(self) -> Dict[str, int]:
        d = {"start": self.start}
        if self.end is not None:
            d["end"] = self.end
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PauseSegment":
        end = d.get("end")
        return cls(start=int(d["start"]), end=None if end is None else int(end))


@dataclass(frozen=True)
class ActiveSession:
    task_ref: TaskRef
    start_time: int  # epoch ms, never shifted by pause/resume
    last_tick_timestamp: int  # epoch ms heartbeat, recovery only
    pause_segments: Tuple[PauseSegment, ...] = field(default_factory=tuple)

    @property
    def is_paused(self) -> bool:
        return bool(self.pause_segments) and self.pause_segments[-1].is_open

    def with_segments(self, *segments: PauseSegment) -> "ActiveSession":
        return replace(self, pause_segments=self.pause_segments + tuple(segments))

    def close_open_segment(self, end: int) -> "ActiveSession":
        if not self.is_paused:
            return self
        last = self.pause_segments[-1]
        return replace(
            self,
            pause_segments=self.pause_segments[:-1] + (PauseSegment(last.start, end),),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "taskId": self.task_ref.task_id,
            "startTime": self.start_time,
            "pauseSegments": [s.to_dict() for s in self.pause_segments],
            "lastTickTimestamp": self.last_tick_timestamp,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "ActiveSession":
        task_id = d.get("taskId")
        segments = tuple(PauseSegment.from_dict(s) for s in d.get("pauseSegments") or [])
        # only the trailing segment may be open
        for s in segments[:-1]:
            if s.is_open:
                raise ValueError("Open pause segment before the last one.")
        start = int(d["startTime"])
        return cls(
            task_ref=TaskRef.assigned(str(task_id)) if task_id else TaskRef.unassigned(),
            start_time=start,
            last_tick_timestamp=int(d.get("lastTickTimestamp", start)),
            pause_segments=segments,
        )


@dataclass(frozen=True)
class SaveResult:
    success: bool
    session: Optional[Session] = None
    error: Optional[str] = None
