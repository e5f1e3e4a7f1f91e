"""
Progress statistics (weekly, per course, per department).

Everything is computed on demand from the current catalog and ledger.
Tasks whose course no longer exists are left out of the per-course and
per-department breakdowns; they still count towards the weekly totals.
"""

from __future__ import annotations

from typing import Dict, Iterable, Optional

from weektrack.courses import CourseCatalog
from weektrack.model import CourseStats, DepartmentStats, Task, WeeklyStatistics
from weektrack.tasks import TaskLedger
from weektrack.validation import now_like


def completion_percentage(completed: int, total: int) -> int:
    """
    Integer percentage, halves rounded up (33.3 -> 33, 66.7 -> 67, 12.5 -> 13).

    0 when there is nothing to complete.
    """
    if total <= 0:
        return 0
    return (200 * completed + total) // (2 * total)


class ProgressAggregator:
    def __init__(self, courses: CourseCatalog, tasks: TaskLedger) -> None:
        self._courses = courses
        self._tasks = tasks

    def weekly_statistics(self, week_number: int, year: int) -> WeeklyStatistics:
        week_tasks = self._tasks.list_for_week(week_number, year)

        total = len(week_tasks)
        completed = sum(1 for t in week_tasks if t.completed)
        overdue = sum(1 for t in week_tasks if not t.completed and t.deadline < now_like(t.deadline))

        by_department, by_course = self._breakdown(week_tasks)

        return WeeklyStatistics(
            week_number=week_number,
            year=year,
            total_tasks=total,
            completed_tasks=completed,
            completion_percentage=completion_percentage(completed, total),
            overdue_tasks=overdue,
            stats_by_department=by_department,
            stats_by_course=by_course,
        )

    def _breakdown(
        self, tasks: Iterable[Task]
    ) -> tuple[Dict[str, DepartmentStats], Dict[str, CourseStats]]:
        by_department: Dict[str, DepartmentStats] = {}
        by_course: Dict[str, CourseStats] = {}

        for task in tasks:
            course = self._courses.get(task.course_id)
            if course is None:
                continue  # dangling course reference

            dept = by_department.get(course.department)
            if dept is None:
                dept = by_department[course.department] = DepartmentStats(department=course.department)

            cstats = by_course.get(course.id)
            if cstats is None:
                cstats = by_course[course.id] = CourseStats(course_id=course.id, course_name=course.name)

            dept.total_tasks += 1
            cstats.total_tasks += 1
            if task.completed:
                dept.completed_tasks += 1
                cstats.completed_tasks += 1

        return by_department, by_course

    def course_progress(self, course_id: str) -> Optional[CourseStats]:
        course = self._courses.get(course_id)
        if course is None:
            return None

        course_tasks = self._tasks.list_by_course(course_id)
        return CourseStats(
            course_id=course.id,
            course_name=course.name,
            total_tasks=len(course_tasks),
            completed_tasks=sum(1 for t in course_tasks if t.completed),
        )

    def department_progress(self, department: str) -> DepartmentStats:
        """
        Totals over every course whose department equals `department` exactly.

        The query is not trimmed: pass the department string as stored.
        """
        stats = DepartmentStats(department=department)
        for course in self._courses.list():
            if course.department != department:
                continue
            course_tasks = self._tasks.list_by_course(course.id)
            stats.total_tasks += len(course_tasks)
            stats.completed_tasks += sum(1 for t in course_tasks if t.completed)
        return stats
