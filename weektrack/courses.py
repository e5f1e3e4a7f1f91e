"""
Course catalog: create / read / update / delete courses.

The catalog owns the course collection. It is loaded from storage once at
construction and written back (full collection, key "tracker:courses") after
every mutation. If a write fails, the in-memory change is undone so memory
never runs ahead of what is on disk.

Stored records that cannot be decoded are written back unchanged alongside
the good ones. If the stored value as a whole is unusable, every write fails
with a StorageError instead of replacing it.

Deleting a course that still has tasks needs a TaskLookup (normally the
TaskLedger) to either cascade the deletion or move the tasks elsewhere.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Literal, Optional, Protocol

from weektrack.errors import NotFoundError, Result, StorageError, TrackerError, ValidationError
from weektrack.model import Course, Task, new_id, utc_now
from weektrack.storage import KeyValueStorage, load_collection
from weektrack.validation import non_empty_trimmed

logger = logging.getLogger(__name__)

COURSES_STORAGE_KEY = "tracker:courses"

DeletionStrategy = Literal["cascade", "reassign"]


class TaskLookup(Protocol):
    """The slice of the task ledger the catalog needs for course deletion."""

    def list_by_course(self, course_id: str) -> List[Task]: ...

    def delete(self, task_id: str) -> Result[None]: ...

    def update(self, task_id: str, **changes: Any) -> Result[Task]: ...


def _duplicate_error(name: str, department: str) -> ValidationError:
    return ValidationError(f'Course "{name}" already exists in department "{department}"')


class CourseCatalog:
    def __init__(
        self,
        storage: KeyValueStorage,
        tasks: Optional[TaskLookup] = None,
        id_factory: Callable[[], str] = new_id,
    ) -> None:
        self._storage = storage
        self._tasks = tasks
        self._new_id = id_factory
        self._courses: Dict[str, Course] = {}
        self._unreadable: List[Any] = []
        self._load_error: Optional[StorageError] = None
        self._load()

    # ---- persistence ----

    def _load(self) -> None:
        courses, self._unreadable, self._load_error = load_collection(
            self._storage, COURSES_STORAGE_KEY, Course.from_record
        )
        self._courses = {c.id: c for c in courses}
        logger.debug("Loaded %d courses", len(self._courses))

    def _persist(self) -> Result[None]:
        # Unusable stored data stays as it is until someone repairs it
        if self._load_error is not None:
            return Result.failure(self._load_error)
        records = [c.to_record() for c in self._courses.values()]
        return self._storage.save(COURSES_STORAGE_KEY, records + self._unreadable)

    # ---- queries ----

    def get(self, course_id: str) -> Optional[Course]:
        return self._courses.get(course_id)

    def list(self) -> List[Course]:
        return list(self._courses.values())

    def group_by_department(self) -> Dict[str, List[Course]]:
        grouped: Dict[str, List[Course]] = defaultdict(list)
        for course in self._courses.values():
            grouped[course.department].append(course)
        return dict(grouped)

    def course_exists(self, name: str, department: str) -> bool:
        name = name.strip()
        department = department.strip()
        return any(c.name == name and c.department == department for c in self._courses.values())

    def has_associated_tasks(self, course_id: str) -> bool:
        if self._tasks is None:
            return False
        return len(self._tasks.list_by_course(course_id)) > 0

    # ---- mutations ----

    def create(self, name: str, department: str) -> Result[Course]:
        valid_name = non_empty_trimmed(name)
        if valid_name is None:
            return Result.failure(ValidationError("Course name cannot be empty or whitespace only"))

        valid_department = non_empty_trimmed(department)
        if valid_department is None:
            return Result.failure(ValidationError("Department cannot be empty or whitespace only"))

        if self.course_exists(valid_name, valid_department):
            return Result.failure(_duplicate_error(valid_name, valid_department))

        course = Course(
            id=self._new_id(),
            name=valid_name,
            department=valid_department,
            created_at=utc_now(),
        )

        self._courses[course.id] = course
        saved = self._persist()
        if not saved.ok:
            del self._courses[course.id]
            logger.warning("Rolled back course create id=%s: %s", course.id, saved.error)
            return Result.failure(ValidationError(f"Failed to save course: {saved.error}"))

        logger.debug("Course created id=%s name=%r department=%r", course.id, course.name, course.department)
        return Result.success(course)

    def update(
        self,
        course_id: str,
        *,
        name: Optional[str] = None,
        department: Optional[str] = None,
    ) -> Result[Course]:
        existing = self._courses.get(course_id)
        if existing is None:
            return Result.failure(NotFoundError(f'Course with ID "{course_id}" not found'))

        new_name = existing.name
        if name is not None:
            valid = non_empty_trimmed(name)
            if valid is None:
                return Result.failure(ValidationError("Course name cannot be empty or whitespace only"))
            new_name = valid

        new_department = existing.department
        if department is not None:
            valid = non_empty_trimmed(department)
            if valid is None:
                return Result.failure(ValidationError("Department cannot be empty or whitespace only"))
            new_department = valid

        # Only a *different* course with the same pair is a conflict
        for other in self._courses.values():
            if other.id != course_id and other.name == new_name and other.department == new_department:
                return Result.failure(_duplicate_error(new_name, new_department))

        updated = Course(
            id=existing.id,
            name=new_name,
            department=new_department,
            created_at=existing.created_at,
        )

        self._courses[course_id] = updated
        saved = self._persist()
        if not saved.ok:
            self._courses[course_id] = existing
            logger.warning("Rolled back course update id=%s: %s", course_id, saved.error)
            return Result.failure(ValidationError(f"Failed to save course: {saved.error}"))

        logger.debug("Course updated id=%s", course_id)
        return Result.success(updated)

    def delete(self, course_id: str) -> Result[None]:
        existing = self._courses.get(course_id)
        if existing is None:
            return Result.failure(NotFoundError(f'Course with ID "{course_id}" not found'))

        del self._courses[course_id]
        saved = self._persist()
        if not saved.ok:
            self._courses[course_id] = existing
            logger.warning("Rolled back course delete id=%s: %s", course_id, saved.error)
            return saved

        logger.debug("Course deleted id=%s", course_id)
        return Result.success()

    def delete_with_tasks(
        self,
        course_id: str,
        strategy: DeletionStrategy,
        target_course_id: Optional[str] = None,
    ) -> Result[None]:
        """
        Delete a course together with its tasks.

        strategy:
        - "cascade":  delete every task of the course, then the course
        - "reassign": move every task to target_course_id, then delete the course

        Task changes are applied one by one. If one fails the course is kept
        and the error names the task; tasks handled before it stay handled.
        """
        if course_id not in self._courses:
            return Result.failure(NotFoundError(f'Course with ID "{course_id}" not found'))

        if self._tasks is None:
            return self.delete(course_id)

        if strategy == "cascade":
            return self._cascade(course_id)
        if strategy == "reassign":
            return self._reassign(course_id, target_course_id)
        return Result.failure(ValidationError(f"Unknown deletion strategy: {strategy!r}"))

    def _cascade(self, course_id: str) -> Result[None]:
        assert self._tasks is not None
        done: List[str] = []
        for task in self._tasks.list_by_course(course_id):
            deleted = self._tasks.delete(task.id)
            if not deleted.ok:
                logger.warning(
                    "Cascade for course %s stopped at task %s (%d already deleted)",
                    course_id,
                    task.id,
                    len(done),
                )
                return Result.failure(_wrap(deleted.error, f"Failed to delete task {task.id}"))
            done.append(task.id)

        logger.debug("Cascade deleted %d tasks of course %s", len(done), course_id)
        return self.delete(course_id)

    def _reassign(self, course_id: str, target_course_id: Optional[str]) -> Result[None]:
        assert self._tasks is not None
        if not target_course_id:
            return Result.failure(ValidationError("Target course ID is required for reassignment strategy"))
        if target_course_id not in self._courses:
            return Result.failure(NotFoundError(f'Target course with ID "{target_course_id}" not found'))
        if target_course_id == course_id:
            return Result.failure(ValidationError("Cannot reassign tasks to the course being deleted"))

        moved = 0
        for task in self._tasks.list_by_course(course_id):
            updated = self._tasks.update(task.id, course_id=target_course_id)
            if not updated.ok:
                logger.warning(
                    "Reassign for course %s stopped at task %s (%d already moved)",
                    course_id,
                    task.id,
                    moved,
                )
                return Result.failure(_wrap(updated.error, f"Failed to reassign task {task.id}"))
            moved += 1

        logger.debug("Reassigned %d tasks from course %s to %s", moved, course_id, target_course_id)
        return self.delete(course_id)


def _wrap(error: Any, prefix: str) -> TrackerError:
    """Keep the error class, prefix the message with what we were doing."""
    cls = type(error) if isinstance(error, TrackerError) else StorageError
    return cls(f"{prefix}: {error}")
