# backend/sstdb/apps/training/sync.py
"""
Spreadsheet -> database reconciliation.

One attempt walks IDLE -> FETCHING -> NORMALIZING -> PERSISTING and ends
in SUCCEEDED or FAILED. Only a SUCCEEDED attempt moves the last-sync
marker, and an empty or failed fetch never touches stored employees.
"""

from __future__ import annotations

import enum
import logging
import os
import threading
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Callable, Iterable, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .catalog import NR_COURSES, Course
from .errors import (
    EmptyResultError,
    SchemaError,
    SyncError,
    SyncErrorKind,
    SyncInProgressError,
    TransportError,
)
from .normalizer import normalize_rows, rows_recognized
from .sources import DEFAULT_TIMEOUT_SEC, ExternalSource, SheetsWebAppSource
from .store import EmployeeStore, SyncMarker

logger = logging.getLogger(__name__)

# Process-wide: overlapping triggers are rejected, not queued.
_SYNC_GUARD = threading.Lock()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def sync_in_progress(guard: threading.Lock = _SYNC_GUARD) -> bool:
    return guard.locked()


class SyncState(str, enum.Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    NORMALIZING = "NORMALIZING"
    PERSISTING = "PERSISTING"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


@dataclass
class SyncConfig:
    """
    Explicit sync settings. The router builds one per request from the
    environment and the admin-stored URL; tests build them directly.
    """

    source_url: Optional[str] = None
    timeout_sec: float = DEFAULT_TIMEOUT_SEC

    @classmethod
    def from_env(cls) -> "SyncConfig":
        try:
            timeout = float(os.getenv("SST_SYNC_TIMEOUT_SEC", str(DEFAULT_TIMEOUT_SEC)))
        except ValueError:
            timeout = DEFAULT_TIMEOUT_SEC
        return cls(source_url=os.getenv("SST_SHEETS_URL") or None, timeout_sec=timeout)

    def with_url(self, url: Optional[str]) -> "SyncConfig":
        if not url:
            return self
        return SyncConfig(source_url=url, timeout_sec=self.timeout_sec)

    def build_source(self) -> ExternalSource:
        if not self.source_url:
            raise ValueError("No spreadsheet source URL is configured.")
        return SheetsWebAppSource(self.source_url, timeout_sec=self.timeout_sec)


@dataclass
class SyncOutcome:
    started_at: datetime
    state: SyncState = SyncState.IDLE
    rows_fetched: int = 0
    records_saved: int = 0
    failed_record_ids: List[str] = field(default_factory=list)
    dropped_fields: List[str] = field(default_factory=list)
    error_kind: Optional[SyncErrorKind] = None
    message: Optional[str] = None
    finished_at: Optional[datetime] = None

    @property
    def success(self) -> bool:
        return self.state == SyncState.SUCCEEDED


class SyncReconciler:
    """
    Pulls rows from `source`, normalises them against the course catalog
    and upserts them into `store`.

    `run()` never raises a classified failure: it returns a `SyncOutcome`
    whose `error_kind` tells the caller what went wrong.
    """

    def __init__(
        self,
        *,
        source: ExternalSource,
        store: EmployeeStore,
        marker: SyncMarker,
        catalog: Iterable[Course] = NR_COURSES,
        clock: Callable[[], datetime] = _utcnow,
        guard: threading.Lock = _SYNC_GUARD,
    ) -> None:
        self.source = source
        self.store = store
        self.marker = marker
        self.catalog = tuple(catalog)
        self.clock = clock
        self.guard = guard
        self.state = SyncState.IDLE

    def _fail(self, outcome: SyncOutcome, error: SyncError) -> SyncOutcome:
        self.state = SyncState.FAILED
        outcome.state = SyncState.FAILED
        outcome.error_kind = error.kind
        outcome.message = error.message
        outcome.finished_at = self.clock()
        logger.warning(
            "Spreadsheet sync failed",
            extra={
                "source": self.source.describe(),
                "error_kind": error.kind.value,
                "sync_error": error.message,
                "retryable": error.retryable,
            },
        )
        return outcome

    def run(self, *, today: Optional[date] = None) -> SyncOutcome:
        outcome = SyncOutcome(started_at=self.clock())

        if not self.guard.acquire(blocking=False):
            return self._fail(outcome, SyncInProgressError("A sync is already running."))

        try:
            return self._run(outcome, today=today or outcome.started_at.date())
        except SyncError as exc:
            return self._fail(outcome, exc)
        finally:
            self.guard.release()

    def _run(self, outcome: SyncOutcome, *, today: date) -> SyncOutcome:
        self.state = SyncState.FETCHING
        rows = self.source.fetch_rows()
        outcome.rows_fetched = len(rows)
        if not rows:
            raise EmptyResultError("The spreadsheet returned no rows; existing data was kept.")

        self.state = SyncState.NORMALIZING
        if not rows_recognized(rows):
            raise SchemaError(
                "No row has a recognised name or registration column (e.g. 'Nome', 'Matrícula')."
            )
        employees = normalize_rows(rows, today=today, catalog=self.catalog)

        self.state = SyncState.PERSISTING
        try:
            result = self.store.upsert(employees)
        except SQLAlchemyError as exc:
            raise TransportError(f"The database could not be reached: {exc}") from exc
        outcome.records_saved = len(result.saved_ids)
        outcome.failed_record_ids = [failure.employee_id for failure in result.failures]
        outcome.dropped_fields = list(result.dropped_fields)
        if result.all_failed:
            raise SchemaError(
                f"The database rejected all {len(result.failures)} record(s): {result.failures[0].error}"
            )

        finished_at = self.clock()
        try:
            self.marker.write(finished_at.isoformat())
        except SQLAlchemyError as exc:
            raise TransportError(
                f"{outcome.records_saved} record(s) were saved but the last-sync time could not be recorded: {exc}"
            ) from exc
        self.state = SyncState.SUCCEEDED
        outcome.state = SyncState.SUCCEEDED
        outcome.finished_at = finished_at
        if result.failures:
            outcome.message = f"{len(result.failures)} record(s) could not be saved."
        logger.info(
            "Spreadsheet sync succeeded",
            extra={
                "source": self.source.describe(),
                "rows_fetched": outcome.rows_fetched,
                "records_saved": outcome.records_saved,
                "records_failed": len(result.failures),
            },
        )
        return outcome
