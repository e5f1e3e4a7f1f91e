"""
Task ledger: create / read / update / delete tasks, completion and week views.

Same persistence discipline as the course catalog: full collection under
"tracker:tasks", written after every mutation, in-memory change undone when
the write fails.

The ledger does not know about courses. It only checks that a course id is a
non-empty string; whether that course exists is checked by the Tracker.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from weektrack.errors import NotFoundError, Result, StorageError, ValidationError
from weektrack.model import Task, new_id, utc_now
from weektrack.storage import KeyValueStorage, load_collection
from weektrack.validation import is_valid_timestamp, non_empty_trimmed, now_like
from weektrack.weeks import is_in_week

logger = logging.getLogger(__name__)

TASKS_STORAGE_KEY = "tracker:tasks"


def _not_found(task_id: str) -> NotFoundError:
    return NotFoundError(f'Task with ID "{task_id}" not found')


class TaskLedger:
    def __init__(self, storage: KeyValueStorage, id_factory: Callable[[], str] = new_id) -> None:
        self._storage = storage
        self._new_id = id_factory
        self._tasks: Dict[str, Task] = {}
        self._unreadable: List[Any] = []
        self._load_error: Optional[StorageError] = None
        self._load()

    def _load(self) -> None:
        tasks, self._unreadable, self._load_error = load_collection(self._storage, TASKS_STORAGE_KEY, Task.from_record)
        self._tasks = {t.id: t for t in tasks}
        logger.debug("Loaded %d tasks", len(self._tasks))

    def _persist(self) -> Result[None]:
        if self._load_error is not None:
            return Result.failure(self._load_error)
        records = [t.to_record() for t in self._tasks.values()]
        return self._storage.save(TASKS_STORAGE_KEY, records + self._unreadable)

    def _commit(self, task_id: str, new: Optional[Task], old: Optional[Task], action: str) -> Result[None]:
        """
        Apply one in-memory change, persist, undo on failure.

        new=None removes the task; old=None means it did not exist before.
        """
        if new is None:
            self._tasks.pop(task_id, None)
        else:
            self._tasks[task_id] = new

        saved = self._persist()
        if saved.ok:
            logger.debug("Task %s id=%s", action, task_id)
            return saved

        if old is None:
            self._tasks.pop(task_id, None)
        else:
            self._tasks[task_id] = old
        logger.warning("Rolled back task %s id=%s: %s", action, task_id, saved.error)
        return saved

    # ---- queries ----

    def get(self, task_id: str) -> Optional[Task]:
        return self._tasks.get(task_id)

    def list(self) -> List[Task]:
        return list(self._tasks.values())

    def list_by_course(self, course_id: str) -> List[Task]:
        return [t for t in self._tasks.values() if t.course_id == course_id]

    def list_for_week(self, week_number: int, year: int) -> List[Task]:
        # Always derived from the current deadline; nothing is cached.
        return [t for t in self._tasks.values() if is_in_week(t.deadline, week_number, year)]

    def list_overdue(self) -> List[Task]:
        return [t for t in self._tasks.values() if not t.completed and t.deadline < now_like(t.deadline)]

    # ---- mutations ----

    def create(self, course_id: str, description: str, deadline: datetime) -> Result[Task]:
        valid_description = non_empty_trimmed(description)
        if valid_description is None:
            return Result.failure(ValidationError("Task description cannot be empty or whitespace only"))

        if not is_valid_timestamp(deadline):
            return Result.failure(ValidationError("Deadline must be a valid date"))

        valid_course_id = non_empty_trimmed(course_id)
        if valid_course_id is None:
            return Result.failure(ValidationError("Course ID cannot be empty"))

        task = Task(
            id=self._new_id(),
            course_id=valid_course_id,
            description=valid_description,
            deadline=deadline,
            created_at=utc_now(),
        )

        saved = self._commit(task.id, task, None, "create")
        if not saved.ok:
            return Result.failure(ValidationError(f"Failed to save task: {saved.error}"))
        return Result.success(task)

    def update(
        self,
        task_id: str,
        *,
        description: Optional[str] = None,
        deadline: Optional[datetime] = None,
        course_id: Optional[str] = None,
        completed: Optional[bool] = None,
        completed_at: Optional[datetime] = None,
        **unknown: Any,
    ) -> Result[Task]:
        """
        Merge the given fields onto a task. Omitted (None) fields keep their value.

        id and created_at never change. completed/completed_at are kept
        consistent: an incomplete task has no completed_at, and a task
        marked completed without a timestamp gets the current time.
        """
        if unknown:
            return Result.failure(ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}"))

        existing = self._tasks.get(task_id)
        if existing is None:
            return Result.failure(_not_found(task_id))

        changes: Dict[str, Any] = {}

        if description is not None:
            valid = non_empty_trimmed(description)
            if valid is None:
                return Result.failure(ValidationError("Task description cannot be empty or whitespace only"))
            changes["description"] = valid

        if deadline is not None:
            if not is_valid_timestamp(deadline):
                return Result.failure(ValidationError("Deadline must be a valid date"))
            changes["deadline"] = deadline

        if course_id is not None:
            valid = non_empty_trimmed(course_id)
            if valid is None:
                return Result.failure(ValidationError("Course ID cannot be empty"))
            changes["course_id"] = valid

        if completed_at is not None and not is_valid_timestamp(completed_at):
            return Result.failure(ValidationError("Completion time must be a valid date"))

        is_done = existing.completed if completed is None else bool(completed)
        done_at = completed_at if completed_at is not None else existing.completed_at
        if not is_done:
            done_at = None
        elif done_at is None:
            done_at = utc_now()
        changes["completed"] = is_done
        changes["completed_at"] = done_at

        updated = replace(existing, **changes)
        saved = self._commit(task_id, updated, existing, "update")
        if not saved.ok:
            return Result.failure(ValidationError(f"Failed to save task: {saved.error}"))
        return Result.success(updated)

    def delete(self, task_id: str) -> Result[None]:
        existing = self._tasks.get(task_id)
        if existing is None:
            return Result.failure(_not_found(task_id))
        return self._commit(task_id, None, existing, "delete")

    def mark_complete(self, task_id: str) -> Result[Task]:
        existing = self._tasks.get(task_id)
        if existing is None:
            return Result.failure(_not_found(task_id))

        updated = replace(existing, completed=True, completed_at=utc_now())
        saved = self._commit(task_id, updated, existing, "complete")
        if not saved.ok:
            return Result.failure(saved.error)  # type: ignore[arg-type]
        return Result.success(updated)

    def mark_incomplete(self, task_id: str) -> Result[Task]:
        existing = self._tasks.get(task_id)
        if existing is None:
            return Result.failure(_not_found(task_id))

        updated = replace(existing, completed=False, completed_at=None)
        saved = self._commit(task_id, updated, existing, "reopen")
        if not saved.ok:
            return Result.failure(saved.error)  # type: ignore[arg-type]
        return Result.success(updated)
