"""
Error types and the Result value returned by every service operation.

Services never raise these errors. They hand them back inside a Result so
callers (Tracker, CLI, tests) can branch on `result.ok` without try/except.

Taxonomy:
- ValidationError: bad input (empty text, invalid date, duplicate course,
  unknown course reference, bad reassignment target)
- NotFoundError:   the targeted id does not exist
- StorageError:    the storage collaborator failed (quota, corruption, encoding);
  MissingDataError is the harmless "nothing stored yet" case
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class TrackerError(Exception):
    """Base class for all tracker errors."""


class ValidationError(TrackerError):
    pass


class NotFoundError(TrackerError):
    pass


class StorageError(TrackerError):
    pass


class MissingDataError(StorageError):
    """Nothing stored under the key yet (first run)."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Success/failure value.

    Exactly one of `value` / `error` is meaningful:
    - ok == True  -> value holds the payload (may be None for void operations)
    - ok == False -> error holds the TrackerError
    """

    value: Optional[T] = None
    error: Optional[TrackerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: TrackerError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        """
        Return the value or raise the carried error.

        Meant for tests and scripts that want exceptions; the services
        themselves never call this.
        """
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
