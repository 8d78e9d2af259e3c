from datetime import datetime
from typing import Iterable, Optional, TypeVar

from src.domain.errors import InvalidStateError


T = TypeVar("T")


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open ``[start, end)`` overlap. Touching endpoints do not overlap."""
    return a_start < b_end and b_start < a_end


def ensure_valid_interval(start: datetime, end: datetime) -> None:
    if end <= start:
        raise InvalidStateError(
            "End time must be after start time", entity="reservation", rule="interval"
        )


def first_overlapping(start: datetime, end: datetime, candidates: Iterable[T]) -> Optional[T]:
    """Return the first candidate (anything with ``start_time``/``end_time``) clashing with ``[start, end)``."""
    for candidate in candidates:
        if overlaps(start, end, candidate.start_time, candidate.end_time):
            return candidate
    return None
