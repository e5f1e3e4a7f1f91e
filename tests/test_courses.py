"""
Unit tests for the course catalog.

Covers:
- trimming / whitespace rejection
- duplicate (name, department) detection on create and update
- write-through persistence and rollback when the store refuses a write
- cascade / reassign deletion through a task lookup
"""

import unittest
from datetime import datetime

from weektrack.courses import COURSES_STORAGE_KEY, CourseCatalog
from weektrack.errors import NotFoundError, Result, StorageError, ValidationError
from weektrack.model import Course
from weektrack.storage import MemoryStorage
from weektrack.tasks import TaskLedger

BLANKS = ("", " ", "   ", "\t", "\n  \t")


class FlakyStorage(MemoryStorage):
    """MemoryStorage whose writes can be switched off."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_saves = False

    def save(self, key, value):
        if self.fail_saves:
            return Result.failure(StorageError("Storage quota exceeded. Please free up space."))
        return super().save(key, value)


class BrokenTaskLookup:
    """Task lookup whose deletes / updates always fail."""

    def __init__(self, tasks) -> None:
        self.tasks = tasks

    def list_by_course(self, course_id):
        return [t for t in self.tasks if t.course_id == course_id]

    def delete(self, task_id):
        return Result.failure(StorageError("disk full"))

    def update(self, task_id, **changes):
        return Result.failure(StorageError("disk full"))


class TestCreate(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = MemoryStorage()
        self.catalog = CourseCatalog(self.storage)

    def test_create_trims_and_persists(self) -> None:
        result = self.catalog.create("  Linear Algebra ", " Mathematics ")
        self.assertTrue(result.ok)
        course = result.value
        self.assertEqual(course.name, "Linear Algebra")
        self.assertEqual(course.department, "Mathematics")
        self.assertIsInstance(course.created_at, datetime)
        self.assertEqual(self.catalog.get(course.id), course)

        stored = self.storage.load(COURSES_STORAGE_KEY).value
        self.assertEqual([r["id"] for r in stored], [course.id])

    def test_blank_name_or_department_rejected(self) -> None:
        for blank in BLANKS:
            with self.subTest(blank=repr(blank)):
                r1 = self.catalog.create(blank, "Mathematics")
                r2 = self.catalog.create("Algebra", blank)
                self.assertIsInstance(r1.error, ValidationError)
                self.assertIn("name", str(r1.error).lower())
                self.assertIsInstance(r2.error, ValidationError)
                self.assertIn("department", str(r2.error).lower())
        self.assertEqual(self.catalog.list(), [])

    def test_duplicate_rejected_after_trim(self) -> None:
        self.catalog.create("Algebra", "Mathematics")
        result = self.catalog.create(" Algebra  ", "Mathematics ")
        self.assertIsInstance(result.error, ValidationError)
        self.assertIn("Algebra", str(result.error))
        self.assertIn("Mathematics", str(result.error))
        self.assertEqual(len(self.catalog.list()), 1)

    def test_same_name_in_other_department_allowed(self) -> None:
        self.catalog.create("Statistics", "Mathematics")
        self.assertTrue(self.catalog.create("Statistics", "Economics").ok)
        self.assertTrue(self.catalog.create("statistics", "Mathematics").ok)  # case-sensitive

    def test_storage_failure_rolls_back(self) -> None:
        storage = FlakyStorage()
        catalog = CourseCatalog(storage)
        storage.fail_saves = True
        result = catalog.create("Algebra", "Mathematics")
        self.assertIsInstance(result.error, ValidationError)
        self.assertIn("quota", str(result.error))
        self.assertEqual(catalog.list(), [])
        self.assertFalse(catalog.course_exists("Algebra", "Mathematics"))

    def test_injected_id_factory(self) -> None:
        ids = iter(["c-1", "c-2"])
        catalog = CourseCatalog(MemoryStorage(), id_factory=lambda: next(ids))
        self.assertEqual(catalog.create("A", "X").value.id, "c-1")
        self.assertEqual(catalog.create("B", "X").value.id, "c-2")


class TestQueries(unittest.TestCase):
    def setUp(self) -> None:
        self.catalog = CourseCatalog(MemoryStorage())
        self.algebra = self.catalog.create("Algebra", "Mathematics").value
        self.analysis = self.catalog.create("Analysis", "Mathematics").value
        self.micro = self.catalog.create("Microeconomics", "Economics").value

    def test_get_unknown_is_none(self) -> None:
        self.assertIsNone(self.catalog.get("nope"))

    def test_group_by_department(self) -> None:
        grouped = self.catalog.group_by_department()
        self.assertEqual(set(grouped), {"Mathematics", "Economics"})
        self.assertEqual({c.id for c in grouped["Mathematics"]}, {self.algebra.id, self.analysis.id})
        self.assertEqual([c.id for c in grouped["Economics"]], [self.micro.id])
        self.assertEqual(sum(len(v) for v in grouped.values()), len(self.catalog.list()))

    def test_course_exists_trims(self) -> None:
        self.assertTrue(self.catalog.course_exists(" Algebra ", "Mathematics  "))
        self.assertFalse(self.catalog.course_exists("Algebra", "Economics"))

    def test_loads_existing_courses(self) -> None:
        storage = MemoryStorage()
        first = CourseCatalog(storage)
        course = first.create("Algebra", "Mathematics").value
        second = CourseCatalog(storage)
        self.assertEqual(second.get(course.id), course)

    def test_corrupted_store_starts_empty_and_is_not_overwritten(self) -> None:
        storage = MemoryStorage()
        storage.items[COURSES_STORAGE_KEY] = "not json"
        catalog = CourseCatalog(storage)
        self.assertEqual(catalog.list(), [])

        result = catalog.create("Chemistry", "Science")
        self.assertFalse(result.ok)
        self.assertIn("Corrupted data", str(result.error))
        self.assertEqual(catalog.list(), [])
        self.assertEqual(storage.items[COURSES_STORAGE_KEY], "not json")

    def test_non_list_value_is_not_overwritten(self) -> None:
        storage = MemoryStorage()
        storage.save(COURSES_STORAGE_KEY, {"unexpected": "shape"})
        catalog = CourseCatalog(storage)
        self.assertFalse(catalog.create("Chemistry", "Science").ok)
        self.assertEqual(storage.load(COURSES_STORAGE_KEY).value, {"unexpected": "shape"})

    def test_bad_record_does_not_cost_the_good_ones(self) -> None:
        storage = MemoryStorage()
        good = CourseCatalog(storage).create("Algebra", "Mathematics").value
        bad = {"id": "c-bad", "name": "Physics", "department": "Science"}  # no created_at
        storage.save(COURSES_STORAGE_KEY, [good.to_record(), bad])

        catalog = CourseCatalog(storage)
        self.assertEqual([c.id for c in catalog.list()], [good.id])
        self.assertTrue(catalog.create("Chemistry", "Science").ok)

        stored = storage.load(COURSES_STORAGE_KEY).value
        self.assertEqual(sorted(r["name"] for r in stored), ["Algebra", "Chemistry", "Physics"])
        self.assertIn(bad, stored)
        self.assertEqual(CourseCatalog(storage).get(good.id), good)


class TestUpdate(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = FlakyStorage()
        self.catalog = CourseCatalog(self.storage)
        self.algebra = self.catalog.create("Algebra", "Mathematics").value
        self.micro = self.catalog.create("Microeconomics", "Economics").value

    def test_update_name_keeps_id_and_created_at(self) -> None:
        result = self.catalog.update(self.algebra.id, name="  Linear Algebra ")
        self.assertTrue(result.ok)
        self.assertEqual(result.value.name, "Linear Algebra")
        self.assertEqual(result.value.department, "Mathematics")
        self.assertEqual(result.value.id, self.algebra.id)
        self.assertEqual(result.value.created_at, self.algebra.created_at)

    def test_unknown_id(self) -> None:
        result = self.catalog.update("missing-id", name="X")
        self.assertIsInstance(result.error, NotFoundError)
        self.assertIn("missing-id", str(result.error))

    def test_blank_fields_rejected(self) -> None:
        for blank in BLANKS:
            self.assertIsInstance(self.catalog.update(self.algebra.id, name=blank).error, ValidationError)
            self.assertIsInstance(self.catalog.update(self.algebra.id, department=blank).error, ValidationError)
        self.assertEqual(self.catalog.get(self.algebra.id), self.algebra)

    def test_collision_with_other_course(self) -> None:
        result = self.catalog.update(self.micro.id, name="Algebra", department="Mathematics")
        self.assertIsInstance(result.error, ValidationError)
        self.assertEqual(self.catalog.get(self.micro.id), self.micro)

    def test_update_to_own_values_is_not_a_duplicate(self) -> None:
        self.assertTrue(self.catalog.update(self.algebra.id, name="Algebra").ok)

    def test_storage_failure_rolls_back(self) -> None:
        self.storage.fail_saves = True
        result = self.catalog.update(self.algebra.id, name="Topology")
        self.assertIsInstance(result.error, ValidationError)
        self.assertEqual(self.catalog.get(self.algebra.id).name, "Algebra")


class TestDelete(unittest.TestCase):
    def setUp(self) -> None:
        self.storage = FlakyStorage()
        self.ledger = TaskLedger(self.storage)
        self.catalog = CourseCatalog(self.storage, tasks=self.ledger)
        self.algebra = self.catalog.create("Algebra", "Mathematics").value
        self.analysis = self.catalog.create("Analysis", "Mathematics").value
        deadline = datetime(2024, 3, 8, 17, 0)
        for i in range(3):
            self.ledger.create(self.algebra.id, f"Sheet {i}", deadline)
        self.ledger.create(self.analysis.id, "Sheet A", deadline)

    def test_plain_delete(self) -> None:
        self.assertTrue(self.catalog.delete(self.analysis.id).ok)
        self.assertIsNone(self.catalog.get(self.analysis.id))

    def test_delete_unknown(self) -> None:
        self.assertIsInstance(self.catalog.delete("nope").error, NotFoundError)

    def test_delete_storage_failure_rolls_back(self) -> None:
        self.storage.fail_saves = True
        result = self.catalog.delete(self.analysis.id)
        self.assertIsInstance(result.error, StorageError)
        self.assertEqual(self.catalog.get(self.analysis.id), self.analysis)

    def test_has_associated_tasks(self) -> None:
        self.assertTrue(self.catalog.has_associated_tasks(self.algebra.id))
        empty = self.catalog.create("Topology", "Mathematics").value
        self.assertFalse(self.catalog.has_associated_tasks(empty.id))

    def test_has_associated_tasks_without_lookup(self) -> None:
        catalog = CourseCatalog(self.storage)
        self.assertFalse(catalog.has_associated_tasks(self.algebra.id))

    def test_cascade_leaves_no_orphans(self) -> None:
        result = self.catalog.delete_with_tasks(self.algebra.id, "cascade")
        self.assertTrue(result.ok)
        self.assertIsNone(self.catalog.get(self.algebra.id))
        self.assertEqual(self.ledger.list_by_course(self.algebra.id), [])
        self.assertEqual(len(self.ledger.list_by_course(self.analysis.id)), 1)

    def test_reassign_moves_every_task(self) -> None:
        result = self.catalog.delete_with_tasks(self.algebra.id, "reassign", self.analysis.id)
        self.assertTrue(result.ok)
        self.assertIsNone(self.catalog.get(self.algebra.id))
        self.assertEqual(self.ledger.list_by_course(self.algebra.id), [])
        self.assertEqual(len(self.ledger.list_by_course(self.analysis.id)), 4)

    def test_reassign_requires_target(self) -> None:
        result = self.catalog.delete_with_tasks(self.algebra.id, "reassign")
        self.assertIsInstance(result.error, ValidationError)
        self.assertIn("required", str(result.error))
        self.assertIsNotNone(self.catalog.get(self.algebra.id))

    def test_reassign_unknown_target(self) -> None:
        result = self.catalog.delete_with_tasks(self.algebra.id, "reassign", "ghost")
        self.assertIsInstance(result.error, NotFoundError)
        self.assertEqual(len(self.ledger.list_by_course(self.algebra.id)), 3)

    def test_reassign_to_itself(self) -> None:
        result = self.catalog.delete_with_tasks(self.algebra.id, "reassign", self.algebra.id)
        self.assertIsInstance(result.error, ValidationError)
        self.assertIn("being deleted", str(result.error))

    def test_delete_with_tasks_unknown_course(self) -> None:
        self.assertIsInstance(self.catalog.delete_with_tasks("nope", "cascade").error, NotFoundError)

    def test_without_task_lookup_is_plain_delete(self) -> None:
        catalog = CourseCatalog(self.storage)
        self.assertTrue(catalog.delete_with_tasks(self.analysis.id, "cascade").ok)
        self.assertIsNone(catalog.get(self.analysis.id))

    def test_failed_cascade_keeps_course(self) -> None:
        catalog = CourseCatalog(self.storage, tasks=BrokenTaskLookup(self.ledger.list()))
        result = catalog.delete_with_tasks(self.algebra.id, "cascade")
        self.assertIsInstance(result.error, StorageError)
        self.assertIn("Failed to delete task", str(result.error))
        self.assertIsNotNone(catalog.get(self.algebra.id))

    def test_failed_reassign_keeps_course(self) -> None:
        catalog = CourseCatalog(self.storage, tasks=BrokenTaskLookup(self.ledger.list()))
        result = catalog.delete_with_tasks(self.algebra.id, "reassign", self.analysis.id)
        self.assertIn("Failed to reassign task", str(result.error))
        self.assertIsNotNone(catalog.get(self.algebra.id))


class TestRecord(unittest.TestCase):
    def test_course_record_roundtrip(self) -> None:
        course = Course(id="c1", name="Algebra", department="Mathematics", created_at=datetime(2024, 1, 2, 3, 4, 5, 678901))
        self.assertEqual(Course.from_record(course.to_record()), course)


if __name__ == "__main__":
    unittest.main()
