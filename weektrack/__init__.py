"""
weektrack: weekly course & task tracker.

Typical use:

    from weektrack import Tracker, JsonFileStorage

    tracker = Tracker(JsonFileStorage("tracker.json"))
    course = tracker.create_course("Linear Algebra", "Mathematics").unwrap()
"""

from weektrack.errors import NotFoundError, Result, StorageError, ValidationError
from weektrack.storage import JsonFileStorage, MemoryStorage
from weektrack.tracker import Tracker

__all__ = [
    "JsonFileStorage",
    "MemoryStorage",
    "NotFoundError",
    "Result",
    "StorageError",
    "Tracker",
    "ValidationError",
]
