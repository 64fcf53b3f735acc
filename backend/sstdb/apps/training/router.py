# backend/sstdb/apps/training/router.py

from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from ...database import get_db, get_read_db
from ...security import get_current_role, require_admin
from . import services as training_services
from . import schemas as training_schemas
from .catalog import NR_COURSES
from .errors import SyncErrorKind
from .models import LAST_SYNC_KEY, SHEETS_URL_KEY
from .sources import ExternalSource, PastedTableSource, StaticRowsSource
from .store import SqlEmployeeStore, SqlSyncMarker, get_setting, set_setting
from .sync import SyncConfig, SyncOutcome, SyncReconciler, sync_in_progress

router = APIRouter(prefix="/training", tags=["training"])

# EMPTY is a soft failure and answers 200 with success=false.
_SYNC_ERROR_STATUS = {
    SyncErrorKind.TRANSPORT: status.HTTP_502_BAD_GATEWAY,
    SyncErrorKind.AUTHORIZATION: status.HTTP_424_FAILED_DEPENDENCY,
    SyncErrorKind.SCHEMA: status.HTTP_422_UNPROCESSABLE_ENTITY,
    SyncErrorKind.BUSY: status.HTTP_409_CONFLICT,
}


# ---------------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------------


def _today() -> date:
    return date.today()


def _not_found(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc) or "Not found.")


def _not_saved(exc: training_services.EmployeeSaveError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


def _sync_config(db: Session) -> SyncConfig:
    """Environment defaults, overridden by the URL the admin saved."""
    return SyncConfig.from_env().with_url(get_setting(db, SHEETS_URL_KEY))


def _outcome_response(outcome: SyncOutcome) -> training_schemas.SyncOutcomeRead:
    body = training_schemas.SyncOutcomeRead(
        success=outcome.success,
        state=outcome.state.value,
        rows_fetched=outcome.rows_fetched,
        records_saved=outcome.records_saved,
        failed_record_ids=outcome.failed_record_ids,
        dropped_fields=outcome.dropped_fields,
        error_kind=outcome.error_kind.value if outcome.error_kind else None,
        message=outcome.message,
        started_at=outcome.started_at,
        finished_at=outcome.finished_at,
    )
    error_status = _SYNC_ERROR_STATUS.get(outcome.error_kind)
    if error_status is not None:
        raise HTTPException(status_code=error_status, detail=body.model_dump(mode="json"))
    return body


def _run_sync(db: Session, source: ExternalSource) -> training_schemas.SyncOutcomeRead:
    reconciler = SyncReconciler(
        source=source,
        store=SqlEmployeeStore(db),
        marker=SqlSyncMarker(db),
    )
    return _outcome_response(reconciler.run(today=_today()))


# ---------------------------------------------------------------------------
# COURSES
# ---------------------------------------------------------------------------


@router.get(
    "/courses",
    response_model=List[training_schemas.CourseRead],
    summary="NR course catalog",
)
def list_courses(role: str = Depends(get_current_role)):
    return [training_schemas.CourseRead.model_validate(course) for course in NR_COURSES]


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


@router.get(
    "/employees",
    response_model=List[training_schemas.EmployeeRecord],
    summary="Employees with training statuses computed for today",
)
def list_employees(
    company: Optional[str] = None,
    sector: Optional[str] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_read_db),
    role: str = Depends(get_current_role),
):
    return training_services.list_employees(
        SqlEmployeeStore(db),
        today=_today(),
        company=company,
        sector=sector,
        search=search,
    )


@router.get(
    "/employees/search",
    response_model=List[training_schemas.EmployeeRecord],
    summary="Visitor lookup by name or registration (at least 2 characters)",
)
def search_employees(
    q: str = "",
    db: Session = Depends(get_read_db),
    role: str = Depends(get_current_role),
):
    return training_services.visitor_search(SqlEmployeeStore(db), q, today=_today())


@router.get(
    "/employees/{employee_id}",
    response_model=training_schemas.EmployeeRecord,
)
def get_employee(
    employee_id: str,
    db: Session = Depends(get_read_db),
    role: str = Depends(get_current_role),
):
    employee = SqlEmployeeStore(db).get(employee_id, today=_today())
    if employee is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found.")
    return employee


@router.post(
    "/employees",
    response_model=training_schemas.EmployeeRecord,
    status_code=status.HTTP_201_CREATED,
    summary="Manual employee entry (admin only)",
)
def create_employee(
    payload: training_schemas.EmployeeCreate,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    store = SqlEmployeeStore(db)
    employee_id = (payload.id or payload.registration).strip()
    if store.get(employee_id, today=_today()) is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Employee {employee_id} already exists.",
        )
    try:
        return training_services.create_employee(store, payload, today=_today())
    except training_services.EmployeeSaveError as exc:
        raise _not_saved(exc)


@router.patch(
    "/employees/{employee_id}",
    response_model=training_schemas.EmployeeRecord,
    summary="Update identity fields of an employee (admin only)",
)
def update_employee(
    employee_id: str,
    payload: training_schemas.EmployeeUpdate,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    try:
        return training_services.update_employee(SqlEmployeeStore(db), employee_id, payload, today=_today())
    except LookupError as exc:
        raise _not_found(exc)
    except training_services.EmployeeSaveError as exc:
        raise _not_saved(exc)


@router.put(
    "/employees/{employee_id}/trainings/{course_id}",
    response_model=training_schemas.EmployeeRecord,
    summary="Set or clear one completion date (admin only)",
)
def set_training_date(
    employee_id: str,
    course_id: str,
    payload: training_schemas.TrainingDateUpdate,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    today = _today()
    if payload.completion_date and payload.completion_date > today:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Completion date cannot be in the future.",
        )
    try:
        return training_services.set_training_date(
            SqlEmployeeStore(db),
            employee_id,
            course_id,
            payload.completion_date,
            today=today,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    except LookupError as exc:
        raise _not_found(exc)
    except training_services.EmployeeSaveError as exc:
        raise _not_saved(exc)


@router.delete(
    "/employees/{employee_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an employee (admin only)",
)
def delete_employee(
    employee_id: str,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    try:
        training_services.delete_employee(SqlEmployeeStore(db), employee_id)
    except LookupError as exc:
        raise _not_found(exc)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# ---------------------------------------------------------------------------
# SUMMARY
# ---------------------------------------------------------------------------


@router.get(
    "/summary",
    response_model=training_schemas.ComplianceSummary,
    summary="Compliance counts for the dashboard",
)
def get_summary(
    company: Optional[str] = None,
    db: Session = Depends(get_read_db),
    role: str = Depends(get_current_role),
):
    today = _today()
    employees = SqlEmployeeStore(db).select_all(today=today)
    return training_services.compliance_summary(employees, today=today, company=company)


# ---------------------------------------------------------------------------
# SYNC
# ---------------------------------------------------------------------------


@router.get(
    "/sync/status",
    response_model=training_schemas.SyncStatusRead,
    summary="Last successful sync and whether one is running",
)
def get_sync_status(
    db: Session = Depends(get_read_db),
    role: str = Depends(get_current_role),
):
    return training_schemas.SyncStatusRead(
        last_sync_at=get_setting(db, LAST_SYNC_KEY),
        in_progress=sync_in_progress(),
        source_configured=bool(_sync_config(db).source_url),
    )


@router.put(
    "/sync/source",
    response_model=training_schemas.SyncStatusRead,
    summary="Save the Apps Script web app URL (admin only)",
)
def set_sync_source(
    payload: training_schemas.SyncSourceUpdate,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    set_setting(db, SHEETS_URL_KEY, payload.url)
    return training_schemas.SyncStatusRead(
        last_sync_at=get_setting(db, LAST_SYNC_KEY),
        in_progress=sync_in_progress(),
        source_configured=True,
    )


@router.post(
    "/sync",
    response_model=training_schemas.SyncOutcomeRead,
    summary="Pull the spreadsheet and merge it into the database (admin only)",
)
def run_sync(
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    try:
        source = _sync_config(db).build_source()
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _run_sync(db, source)


@router.post(
    "/import/text",
    response_model=training_schemas.SyncOutcomeRead,
    summary="Import rows pasted from the spreadsheet (admin only)",
)
def import_text(
    payload: training_schemas.PastedTableImport,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    return _run_sync(db, PastedTableSource(payload.text))


@router.post(
    "/import/rows",
    response_model=training_schemas.SyncOutcomeRead,
    summary="Import rows posted as JSON objects (admin only)",
)
def import_rows(
    payload: training_schemas.RowsImport,
    db: Session = Depends(get_db),
    role: str = Depends(require_admin),
):
    return _run_sync(db, StaticRowsSource(payload.rows))
