"""
Tracker: the one object the CLI (or any other front-end) talks to.

It wires CourseCatalog, TaskLedger and ProgressAggregator together over a
single storage backend and enforces the rules that need both collections:

- a task can only be created for / moved to a course that exists
- a course that still has tasks is only deleted with an explicit strategy
  ("cascade" or "reassign")

Everything else is a straight pass-through.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from weektrack.courses import CourseCatalog, DeletionStrategy
from weektrack.errors import Result, ValidationError
from weektrack.model import Course, CourseStats, DepartmentStats, Task, WeeklyStatistics, WeekView, new_id
from weektrack.stats import ProgressAggregator
from weektrack.storage import JsonFileStorage, KeyValueStorage
from weektrack.tasks import TaskLedger
from weektrack.weeks import bounds_of

logger = logging.getLogger(__name__)


class Tracker:
    def __init__(self, storage: KeyValueStorage, id_factory: Callable[[], str] = new_id) -> None:
        self.storage = storage
        self.tasks = TaskLedger(storage, id_factory=id_factory)
        self.courses = CourseCatalog(storage, tasks=self.tasks, id_factory=id_factory)
        self.stats = ProgressAggregator(self.courses, self.tasks)
        logger.info(
            "Tracker ready courses=%d tasks=%d",
            len(self.courses.list()),
            len(self.tasks.list()),
        )

    @classmethod
    def from_settings(cls, settings: Any) -> "Tracker":
        """Build a tracker backed by the JSON file configured in settings."""
        return cls(JsonFileStorage(settings.storage_path))

    # ---- courses ----

    def create_course(self, name: str, department: str) -> Result[Course]:
        return self.courses.create(name, department)

    def get_course(self, course_id: str) -> Optional[Course]:
        return self.courses.get(course_id)

    def list_courses(self) -> List[Course]:
        return self.courses.list()

    def courses_by_department(self) -> Dict[str, List[Course]]:
        return self.courses.group_by_department()

    def update_course(
        self,
        course_id: str,
        *,
        name: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Result[Course]:
        return self.courses.update(course_id, name=name, department=department)

    def delete_course(
        self,
        course_id: str,
        strategy: Optional[DeletionStrategy] = None,
        target_course_id: Optional[str] = None,
    ) -> Result[None]:
        has_tasks = self.courses.has_associated_tasks(course_id)

        if has_tasks and strategy is None:
            return Result.failure(
                ValidationError(
                    "Cannot delete course with associated tasks. "
                    "Please specify a deletion strategy (cascade or reassign)."
                )
            )
        if has_tasks:
            return self.courses.delete_with_tasks(course_id, strategy, target_course_id)  # type: ignore[arg-type]
        return self.courses.delete(course_id)

    def course_exists(self, name: str, department: str) -> bool:
        return self.courses.course_exists(name, department)

    def has_associated_tasks(self, course_id: str) -> bool:
        return self.courses.has_associated_tasks(course_id)

    # ---- tasks ----

    def _unknown_course(self, course_id: str) -> Result[Task]:
        return Result.failure(ValidationError(f'Course with ID "{course_id}" not found'))

    def create_task(self, course_id: str, description: str, deadline: datetime) -> Result[Task]:
        if self.courses.get(course_id) is None:
            return self._unknown_course(course_id)
        return self.tasks.create(course_id, description, deadline)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.tasks.get(task_id)

    def list_tasks(self) -> List[Task]:
        return self.tasks.list()

    def tasks_by_course(self, course_id: str) -> List[Task]:
        return self.tasks.list_by_course(course_id)

    def tasks_for_week(self, week_number: int, year: int) -> List[Task]:
        return self.tasks.list_for_week(week_number, year)

    def update_task(self, task_id: str, **changes: Any) -> Result[Task]:
        course_id = changes.get("course_id")
        if course_id is not None and self.courses.get(course_id) is None:
            return self._unknown_course(course_id)
        return self.tasks.update(task_id, **changes)

    def delete_task(self, task_id: str) -> Result[None]:
        return self.tasks.delete(task_id)

    def mark_task_complete(self, task_id: str) -> Result[Task]:
        return self.tasks.mark_complete(task_id)

    def mark_task_incomplete(self, task_id: str) -> Result[Task]:
        return self.tasks.mark_incomplete(task_id)

    def set_task_completed(self, task_id: str, completed: bool) -> Result[Task]:
        if completed:
            return self.tasks.mark_complete(task_id)
        return self.tasks.mark_incomplete(task_id)

    def overdue_tasks(self) -> List[Task]:
        return self.tasks.list_overdue()

    # ---- views & statistics ----

    def week_view(self, week_number: int, year: int) -> WeekView:
        start, end = bounds_of(week_number, year)
        # wall-clock order, so naive and aware deadlines can be mixed
        tasks = sorted(
            self.tasks.list_for_week(week_number, year),
            key=lambda t: (t.deadline.replace(tzinfo=None), t.description),
        )
        return WeekView(week_number=week_number, year=year, start=start, end=end, tasks=tasks)

    def task_count_by_course(self) -> Dict[str, int]:
        counts = {c.id: 0 for c in self.courses.list()}
        for task in self.tasks.list():
            if task.course_id in counts:
                counts[task.course_id] += 1
        return counts

    def weekly_statistics(self, week_number: int, year: int) -> WeeklyStatistics:
        return self.stats.weekly_statistics(week_number, year)

    def course_progress(self, course_id: str) -> Optional[CourseStats]:
        return self.stats.course_progress(course_id)

    def department_progress(self, department: str) -> DepartmentStats:
        return self.stats.department_progress(department)
