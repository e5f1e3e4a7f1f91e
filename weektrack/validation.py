"""
Input validation helpers shared by the course and task services.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional


def non_empty_trimmed(value: Any) -> Optional[str]:
    """
    Return the stripped string, or None if it is empty / whitespace only.

    Non-string input is rejected the same way.
    """
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed if trimmed else None


def is_valid_timestamp(value: Any) -> bool:
    return isinstance(value, datetime)


def now_like(value: datetime) -> datetime:
    """
    Current time in the same flavour as `value` (naive local or aware).

    Comparing a naive with an aware datetime raises TypeError, so every
    "is it past/future" check goes through here.
    """
    return datetime.now(value.tzinfo) if value.tzinfo is not None else datetime.now()


def is_future(value: Any) -> bool:
    if not is_valid_timestamp(value):
        return False
    return value > now_like(value)
