# backend/sstdb/apps/training/schemas.py

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .catalog import course_ids
from .models import TrainingStatus

DEFAULT_COMPANY = "Empresa Padrão"


def _check_course_keys(value: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(value) - set(course_ids()))
    if unknown:
        raise ValueError(f"Unknown course id(s): {', '.join(unknown)}")
    return value


# ---------------------------------------------------------------------------
# COURSES
# ---------------------------------------------------------------------------


class CourseRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    validity_years: Optional[int] = Field(
        None,
        description="Recurrent interval in years. NULL means the course never expires once completed.",
    )
    workload: str = ""
    description: str = ""


# ---------------------------------------------------------------------------
# CANONICAL EMPLOYEE / TRAINING RECORDS
# ---------------------------------------------------------------------------


class TrainingRecordItem(BaseModel):
    """
    One cell of the compliance matrix.

    Only `completion_date` is an input; the rest is derived by
    `compliance.build_training_record` for a given day.
    """

    course_id: str
    completion_date: Optional[date] = None
    expiry_date: Optional[date] = None
    days_remaining: Optional[int] = None
    status: TrainingStatus = TrainingStatus.NOT_TRAINED


class EmployeeRecord(BaseModel):
    """
    Canonical employee as produced by the normaliser and returned by the
    store. `trainings` is dense over the course catalog.
    """

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    registration: str
    role: str = "-"
    sector: str = "-"
    company: str = DEFAULT_COMPANY
    photo_url: Optional[str] = None
    trainings: Dict[str, TrainingRecordItem] = Field(default_factory=dict)

    @field_validator("trainings")
    @classmethod
    def _trainings_within_catalog(cls, value: Dict[str, TrainingRecordItem]) -> Dict[str, TrainingRecordItem]:
        return _check_course_keys(value)


class EmployeeCreate(BaseModel):
    """
    Manual admin entry. `id` defaults to the registration so that a later
    spreadsheet sync of the same person updates this record.
    """

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    registration: str = Field(..., min_length=1)
    role: str = "-"
    sector: str = "-"
    company: str = DEFAULT_COMPANY
    photo_url: Optional[str] = None
    completions: Dict[str, Optional[date]] = Field(
        default_factory=dict,
        description="Course id -> completion date. Courses left out are NOT_TRAINED.",
    )

    @field_validator("completions")
    @classmethod
    def _completions_within_catalog(cls, value: Dict[str, Optional[date]]) -> Dict[str, Optional[date]]:
        return _check_course_keys(value)


class EmployeeUpdate(BaseModel):
    """Partial update of identity fields. Trainings have their own endpoint."""

    name: Optional[str] = Field(None, min_length=1)
    registration: Optional[str] = Field(None, min_length=1)
    role: Optional[str] = None
    sector: Optional[str] = None
    company: Optional[str] = None
    photo_url: Optional[str] = None


class TrainingDateUpdate(BaseModel):
    completion_date: Optional[date] = Field(
        None,
        description="New completion date; null clears the training (NOT_TRAINED).",
    )


# ---------------------------------------------------------------------------
# SYNC
# ---------------------------------------------------------------------------


class SyncOutcomeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    success: bool
    state: str
    rows_fetched: int = 0
    records_saved: int = 0
    failed_record_ids: List[str] = Field(default_factory=list)
    dropped_fields: List[str] = Field(default_factory=list)
    error_kind: Optional[str] = None
    message: Optional[str] = None
    started_at: datetime
    finished_at: Optional[datetime] = None


class SyncStatusRead(BaseModel):
    last_sync_at: Optional[str] = None
    in_progress: bool = False
    source_configured: bool = False


class SyncSourceUpdate(BaseModel):
    url: str = Field(..., description="Apps Script web app URL ending in /exec.")

    @field_validator("url")
    @classmethod
    def _google_script_url(cls, value: str) -> str:
        value = value.strip()
        if "script.google.com" not in value:
            raise ValueError("The URL is not a Google Apps Script web app link.")
        return value


class PastedTableImport(BaseModel):
    text: str = Field(..., description="Header line plus rows copied from the spreadsheet.")


class RowsImport(BaseModel):
    rows: List[Any] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# SUMMARY
# ---------------------------------------------------------------------------


class SectorCompliance(BaseModel):
    sector: str
    total: int = 0
    compliant: int = 0


class ComplianceSummary(BaseModel):
    """
    Headline numbers for the dashboard. Counts are per training record,
    except `employees` and the sector breakdown which count people.
    """

    employees: int = 0
    valid: int = 0
    expiring: int = 0
    expiring_within_15_days: int = 0
    expired: int = 0
    not_trained: int = 0
    trained_last_30_days: int = 0
    sectors: List[SectorCompliance] = Field(default_factory=list)
