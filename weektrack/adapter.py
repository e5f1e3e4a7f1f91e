"""
Async facade over Tracker for front-ends that expect awaitables.

Every coroutine calls the synchronous Tracker method and returns its result
straight away. There is no await point inside, so calls cannot interleave
and ordering is exactly the order in which they are awaited.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Literal, Optional

from weektrack.errors import Result, ValidationError
from weektrack.model import Course, Task, WeeklyStatistics
from weektrack.storage import KeyValueStorage
from weektrack.tracker import Tracker

UiDeleteStrategy = Literal["cascade", "reassign", "cancel"]


class AsyncTracker:
    def __init__(self, tracker: Tracker) -> None:
        self.tracker = tracker

    @classmethod
    def over(cls, storage: KeyValueStorage) -> "AsyncTracker":
        return cls(Tracker(storage))

    # ---- courses ----

    async def create_course(self, name: str, department: str) -> Result[Course]:
        return self.tracker.create_course(name, department)

    def get_course(self, course_id: str) -> Optional[Course]:
        return self.tracker.get_course(course_id)

    def list_courses(self) -> List[Course]:
        return self.tracker.list_courses()

    async def update_course(self, course_id: str, name: str, department: str) -> Result[Course]:
        return self.tracker.update_course(course_id, name=name, department=department)

    async def delete_course(
        self,
        course_id: str,
        strategy: Optional[UiDeleteStrategy] = None,
        target_course_id: Optional[str] = None,
    ) -> Result[None]:
        """
        "cancel" refuses to delete a course that still has tasks; the other
        strategies are handed to Tracker.delete_course unchanged.
        """
        if strategy == "cancel":
            if self.tracker.has_associated_tasks(course_id):
                return Result.failure(ValidationError("Cannot delete course with associated tasks"))
            return self.tracker.delete_course(course_id)
        return self.tracker.delete_course(course_id, strategy, target_course_id)

    # ---- tasks ----

    async def create_task(self, course_id: str, description: str, deadline: datetime) -> Result[Task]:
        return self.tracker.create_task(course_id, description, deadline)

    def get_task(self, task_id: str) -> Optional[Task]:
        return self.tracker.get_task(task_id)

    def list_tasks(self) -> List[Task]:
        return self.tracker.list_tasks()

    def tasks_for_week(self, week_number: int, year: int) -> List[Task]:
        return self.tracker.tasks_for_week(week_number, year)

    async def update_task(self, task_id: str, description: str, deadline: datetime) -> Result[Task]:
        return self.tracker.update_task(task_id, description=description, deadline=deadline)

    async def delete_task(self, task_id: str) -> Result[None]:
        return self.tracker.delete_task(task_id)

    async def toggle_task_complete(self, task_id: str, completed: bool) -> Result[Task]:
        return self.tracker.set_task_completed(task_id, completed)

    def overdue_tasks(self) -> List[Task]:
        return self.tracker.overdue_tasks()

    # ---- statistics ----

    def weekly_statistics(self, week_number: int, year: int) -> WeeklyStatistics:
        return self.tracker.weekly_statistics(week_number, year)

    def task_count_by_course(self) -> Dict[str, int]:
        return self.tracker.task_count_by_course()
