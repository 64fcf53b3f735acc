# backend/sstdb/apps/training/services.py
"""
Read path and manual edits on top of `EmployeeStore`.

Every record handed out here has had its statuses recomputed for `today`
by the store; nothing in this module trusts a stored status.
"""

from __future__ import annotations

import logging
import unicodedata
from collections import OrderedDict
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence

from .catalog import NR_COURSES, get_course
from .compliance import build_training_record
from .models import TrainingStatus
from .schemas import (
    ComplianceSummary,
    EmployeeCreate,
    EmployeeRecord,
    EmployeeUpdate,
    SectorCompliance,
)
from .store import EmployeeStore, UpsertResult

logger = logging.getLogger(__name__)

VISITOR_SEARCH_MIN_CHARS = 2
VISITOR_SEARCH_LIMIT = 5
RECENT_TRAINING_DAYS = 30
URGENT_EXPIRY_DAYS = 15


def clean_text(value: Optional[str]) -> str:
    """Lowercase, trimmed, accent-free text for comparisons."""
    text = unicodedata.normalize("NFD", str(value or "").strip())
    return "".join(ch for ch in text if not unicodedata.combining(ch)).lower()


class EmployeeSaveError(Exception):
    """The store rejected a manual edit; nothing was changed."""


def _raise_on_failure(result: UpsertResult, employee_id: str) -> None:
    if result.failures:
        raise EmployeeSaveError(f"Could not save employee {employee_id}: {result.failures[0].error}")


# ---------------------------------------------------------------------------
# LISTING / SEARCH
# ---------------------------------------------------------------------------


def list_employees(
    store: EmployeeStore,
    *,
    today: date,
    company: Optional[str] = None,
    sector: Optional[str] = None,
    search: Optional[str] = None,
) -> List[EmployeeRecord]:
    """
    Employees filtered by exact company/sector (trimmed) and a free-text
    term matched against name, registration and role.
    """
    term = clean_text(search)
    company = company.strip() if company else None
    sector = sector.strip() if sector else None

    matches = []
    for employee in store.select_all(today=today):
        if company and employee.company.strip() != company:
            continue
        if sector and employee.sector.strip() != sector:
            continue
        if term and not any(
            term in clean_text(value) for value in (employee.name, employee.registration, employee.role)
        ):
            continue
        matches.append(employee)
    return matches


def visitor_search(store: EmployeeStore, term: str, *, today: date) -> List[EmployeeRecord]:
    """Lookup by name or registration for the public screen."""
    needle = clean_text(term)
    if len(needle) < VISITOR_SEARCH_MIN_CHARS:
        return []
    found = [
        employee
        for employee in store.select_all(today=today)
        if needle in clean_text(employee.name) or needle in clean_text(employee.registration)
    ]
    return found[:VISITOR_SEARCH_LIMIT]


# ---------------------------------------------------------------------------
# MANUAL EDITS
# ---------------------------------------------------------------------------


def create_employee(store: EmployeeStore, data: EmployeeCreate, *, today: date) -> EmployeeRecord:
    registration = data.registration.strip()
    record = EmployeeRecord(
        id=(data.id or registration).strip(),
        name=data.name.strip(),
        registration=registration,
        role=data.role,
        sector=data.sector,
        company=data.company,
        photo_url=data.photo_url,
        trainings={
            course.id: build_training_record(course, data.completions.get(course.id), today)
            for course in NR_COURSES
        },
    )
    _raise_on_failure(store.upsert([record]), record.id)
    return record


def update_employee(
    store: EmployeeStore,
    employee_id: str,
    data: EmployeeUpdate,
    *,
    today: date,
) -> EmployeeRecord:
    """Patch identity fields; the training map is left as stored."""
    current = store.get(employee_id, today=today)
    if current is None:
        raise LookupError(f"Employee {employee_id} not found.")

    # Only photo_url may be cleared; null for any other field means "unchanged".
    changes = {
        key: value
        for key, value in data.model_dump(exclude_unset=True).items()
        if value is not None or key == "photo_url"
    }
    updated = current.model_copy(update=changes)
    _raise_on_failure(store.upsert([updated]), employee_id)
    return updated


def set_training_date(
    store: EmployeeStore,
    employee_id: str,
    course_id: str,
    completion_date: Optional[date],
    *,
    today: date,
) -> EmployeeRecord:
    course = get_course(course_id)
    if course is None:
        raise ValueError(f"Unknown course {course_id}.")
    current = store.get(employee_id, today=today)
    if current is None:
        raise LookupError(f"Employee {employee_id} not found.")

    trainings = dict(current.trainings)
    trainings[course.id] = build_training_record(course, completion_date, today)
    updated = current.model_copy(update={"trainings": trainings})
    _raise_on_failure(store.upsert([updated]), employee_id)
    return updated


def delete_employee(store: EmployeeStore, employee_id: str) -> None:
    if not store.delete(employee_id):
        raise LookupError(f"Employee {employee_id} not found.")
    logger.info("Employee deleted", extra={"employee_id": employee_id})


# ---------------------------------------------------------------------------
# SUMMARY
# ---------------------------------------------------------------------------


def compliance_summary(
    employees: Sequence[EmployeeRecord],
    *,
    today: date,
    company: Optional[str] = None,
) -> ComplianceSummary:
    """
    Dashboard numbers. An employee counts as compliant in their sector when
    at least one training is VALID or EXPIRING.
    """
    if company:
        employees = [employee for employee in employees if employee.company == company]

    summary = ComplianceSummary(employees=len(employees))
    recent_cutoff = today - timedelta(days=RECENT_TRAINING_DAYS)
    sectors: Dict[str, SectorCompliance] = OrderedDict()

    for employee in employees:
        sector_name = (employee.sector or "").strip()
        if sector_name in ("", "-"):
            sector_name = "Geral"
        sector = sectors.setdefault(sector_name, SectorCompliance(sector=sector_name))
        sector.total += 1

        compliant = False
        for record in employee.trainings.values():
            if record.status == TrainingStatus.VALID:
                summary.valid += 1
                compliant = True
            elif record.status == TrainingStatus.EXPIRING:
                summary.expiring += 1
                compliant = True
                if record.days_remaining is not None and record.days_remaining <= URGENT_EXPIRY_DAYS:
                    summary.expiring_within_15_days += 1
            elif record.status == TrainingStatus.EXPIRED:
                summary.expired += 1
            else:
                summary.not_trained += 1

            if record.completion_date and record.completion_date >= recent_cutoff:
                summary.trained_last_30_days += 1

        if compliant:
            sector.compliant += 1

    summary.sectors = sorted(sectors.values(), key=lambda item: item.total, reverse=True)
    return summary
