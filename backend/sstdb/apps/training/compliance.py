# backend/sstdb/apps/training/compliance.py
"""
Pure compliance computation for a single training.

Status is never trusted from storage: every read and every sync calls into
this module with the stored completion date and today's date.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Optional

from .catalog import Course
from .dates import parse_flexible_date
from .models import TrainingStatus
from .schemas import TrainingRecordItem

# Business rule: trainings expiring within this many days are EXPIRING.
EXPIRING_WINDOW_DAYS = 60


def _as_date(value: date) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def _days_in_month(year: int, month: int) -> int:
    return [
        31,
        29 if year % 4 == 0 and (year % 100 != 0 or year % 400 == 0) else 28,
        31,
        30,
        31,
        30,
        31,
        31,
        30,
        31,
        30,
        31,
    ][month - 1]


def add_years(base: date, years: int) -> date:
    """
    Add calendar years to a date.

    Same month and day; a 29 February anchor that lands on a non-leap year
    is clamped to 28 February.
    """
    year = base.year + years
    day = min(base.day, _days_in_month(year, base.month))
    return date(year, base.month, day)


def days_remaining(expiry: Optional[date], today: date) -> Optional[int]:
    """
    Whole days from `today` to `expiry` (both taken at midnight).

    Positive is in the future, negative in the past, 0 is due today.
    """
    if expiry is None:
        return None
    return (_as_date(expiry) - _as_date(today)).days


def expiry_date(completion: Optional[date], validity_years: Optional[int]) -> Optional[date]:
    if completion is None or validity_years is None:
        return None
    return add_years(_as_date(completion), validity_years)


def training_status(
    completion: Optional[date],
    validity_years: Optional[int],
    today: date,
) -> TrainingStatus:
    if completion is None:
        return TrainingStatus.NOT_TRAINED
    if validity_years is None:
        return TrainingStatus.VALID

    days = days_remaining(expiry_date(completion, validity_years), today)
    if days < 0:
        return TrainingStatus.EXPIRED
    if days <= EXPIRING_WINDOW_DAYS:
        return TrainingStatus.EXPIRING
    return TrainingStatus.VALID


def build_training_record(course: Course, raw_completion: Any, today: date) -> TrainingRecordItem:
    """
    Full matrix cell for `course` from a raw cell value (or a date).
    Unparseable values yield a NOT_TRAINED record.
    """
    completion = parse_flexible_date(raw_completion)
    expiry = expiry_date(completion, course.validity_years)
    return TrainingRecordItem(
        course_id=course.id,
        completion_date=completion,
        expiry_date=expiry,
        days_remaining=days_remaining(expiry, today),
        status=training_status(completion, course.validity_years, today),
    )
