"""
Central data model definitions used across the project.

This module defines the canonical structure of Course and Task objects so that:
- all modules share the same field names
- the storage record format (plain JSON dicts) is defined in exactly one place
- derived views (week view, statistics) have a stable shape for the CLI and tests

Timestamps are `datetime` objects in memory and ISO 8601 strings on disk.
`datetime.isoformat()` / `datetime.fromisoformat()` round-trip to the
microsecond, including the UTC offset when one is present.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def new_id() -> str:
    """Default unique-id generator (random UUID4 string)."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _dt_to_str(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _str_to_dt(raw: Any) -> Optional[datetime]:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"Invalid timestamp: {raw!r}")
    return datetime.fromisoformat(raw)


@dataclass(frozen=True)
class Course:
    """
    Represents one course the student is enrolled in.

    (name, department) is unique across the catalog.
    """

    id: str
    name: str
    department: str
    created_at: datetime

    def to_record(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "department": self.department,
            "created_at": _dt_to_str(self.created_at),
        }

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Course":
        created_at = _str_to_dt(rec["created_at"])
        if created_at is None:
            raise ValueError("Course record without created_at")
        return cls(
            id=str(rec["id"]),
            name=str(rec["name"]),
            department=str(rec["department"]),
            created_at=created_at,
        )


@dataclass(frozen=True)
class Task:
    """
    Represents one deadline-bound task attached to a course.

    Invariant: completed_at is set if and only if completed is True.
    Week membership is never stored; it is derived from `deadline`.
    """

    id: str
    course_id: str
    description: str
    deadline: datetime
    created_at: datetime
    completed: bool = False
    completed_at: Optional[datetime] = None

    def to_record(self) -> Dict[str, Any]:
        rec: Dict[str, Any] = {
            "id": self.id,
            "course_id": self.course_id,
            "description": self.description,
            "deadline": _dt_to_str(self.deadline),
            "completed": self.completed,
            "created_at": _dt_to_str(self.created_at),
        }
        if self.completed_at is not None:
            rec["completed_at"] = _dt_to_str(self.completed_at)
        return rec

    @classmethod
    def from_record(cls, rec: Dict[str, Any]) -> "Task":
        deadline = _str_to_dt(rec["deadline"])
        created_at = _str_to_dt(rec["created_at"])
        if deadline is None or created_at is None:
            raise ValueError("Task record without deadline/created_at")
        return cls(
            id=str(rec["id"]),
            course_id=str(rec["course_id"]),
            description=str(rec["description"]),
            deadline=deadline,
            created_at=created_at,
            completed=bool(rec.get("completed", False)),
            completed_at=_str_to_dt(rec.get("completed_at")),
        )


@dataclass
class CourseStats:
    course_id: str
    course_name: str
    total_tasks: int = 0
    completed_tasks: int = 0


@dataclass
class DepartmentStats:
    department: str
    total_tasks: int = 0
    completed_tasks: int = 0


@dataclass
class WeeklyStatistics:
    """
    Statistics for one ISO week. Computed on demand, never persisted.
    """

    week_number: int
    year: int
    total_tasks: int
    completed_tasks: int
    completion_percentage: int
    overdue_tasks: int
    stats_by_department: Dict[str, DepartmentStats] = field(default_factory=dict)
    stats_by_course: Dict[str, CourseStats] = field(default_factory=dict)


@dataclass
class WeekView:
    """All tasks of one ISO week, with the Monday..Sunday bounds."""

    week_number: int
    year: int
    start: datetime
    end: datetime
    tasks: List[Task] = field(default_factory=list)
