# backend/sstdb/apps/training/store.py
"""
Persistence for canonical employees and the last-sync marker.

The store is reached through `EmployeeStore` so the reconciler can be
tested against any implementation. `SqlEmployeeStore` writes through
SQLAlchemy Core against the *live* table shape: older deployments whose
`sst_employees` table predates an optional column keep syncing, with the
missing column reported as dropped.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Tuple

import sqlalchemy as sa
from sqlalchemy.exc import NoSuchTableError, SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .catalog import NR_COURSES
from .compliance import build_training_record
from .schemas import DEFAULT_COMPANY, EmployeeRecord

logger = logging.getLogger(__name__)

REQUIRED_EMPLOYEE_COLUMNS = frozenset(
    {"id", "name", "registration", "role", "sector", "company", "trainings"}
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# RESULTS
# ---------------------------------------------------------------------------


@dataclass
class RecordFailure:
    employee_id: str
    error: str


@dataclass
class UpsertResult:
    saved_ids: List[str] = field(default_factory=list)
    failures: List[RecordFailure] = field(default_factory=list)
    dropped_fields: List[str] = field(default_factory=list)

    @property
    def all_failed(self) -> bool:
        return bool(self.failures) and not self.saved_ids


# ---------------------------------------------------------------------------
# CONVERSION
# ---------------------------------------------------------------------------


def completions_of(record: EmployeeRecord) -> Dict[str, Optional[str]]:
    """Course id -> ISO completion date: the only training data persisted."""
    return {
        course_id: item.completion_date.isoformat() if item.completion_date else None
        for course_id, item in record.trainings.items()
    }


def _stored_completion(value: Any) -> Any:
    # Rows written by the first web version stored the whole record object.
    if isinstance(value, Mapping):
        return value.get("completion_date") or value.get("completionDate")
    return value


def record_from_row(row: Mapping[str, Any], *, today: date) -> EmployeeRecord:
    """
    Rebuild a canonical employee from a stored row, recomputing every
    training from its completion date. Stored keys for courses no longer
    in the catalog are ignored; missing courses come back NOT_TRAINED.
    """
    stored = row.get("trainings") or {}
    if not isinstance(stored, Mapping):
        stored = {}
    trainings = {
        course.id: build_training_record(course, _stored_completion(stored.get(course.id)), today)
        for course in NR_COURSES
    }
    return EmployeeRecord(
        id=row["id"],
        name=row.get("name") or "",
        registration=row.get("registration") or row["id"],
        role=row.get("role") or "-",
        sector=row.get("sector") or "-",
        company=row.get("company") or DEFAULT_COMPANY,
        photo_url=row.get("photo_url"),
        trainings=trainings,
    )


# ---------------------------------------------------------------------------
# INTERFACES
# ---------------------------------------------------------------------------


class EmployeeStore(abc.ABC):
    @abc.abstractmethod
    def upsert(self, records: Sequence[EmployeeRecord]) -> UpsertResult:
        """Insert-or-replace each record by id. Each record commits on its own."""

    @abc.abstractmethod
    def select_all(self, *, today: date) -> List[EmployeeRecord]:
        ...

    @abc.abstractmethod
    def get(self, employee_id: str, *, today: date) -> Optional[EmployeeRecord]:
        ...

    @abc.abstractmethod
    def delete(self, employee_id: str) -> bool:
        ...


class SyncMarker(abc.ABC):
    @abc.abstractmethod
    def read(self) -> Optional[str]:
        ...

    @abc.abstractmethod
    def write(self, value: str) -> None:
        ...


# ---------------------------------------------------------------------------
# SQLALCHEMY IMPLEMENTATION
# ---------------------------------------------------------------------------


class SqlEmployeeStore(EmployeeStore):
    def __init__(self, db: Session) -> None:
        self.db = db
        self.table = models.Employee.__table__

    def _live_table(self) -> Tuple[sa.TableClause, Set[str]]:
        """
        Lightweight table over the columns that exist in the database.

        Built from `sa.column` so no client-side defaults are emitted for
        columns the live table does not have.
        """
        try:
            inspector = sa.inspect(self.db.connection())
            live = {col["name"] for col in inspector.get_columns(self.table.name)}
        except NoSuchTableError:
            live = set()
        columns = [sa.column(col.name, col.type) for col in self.table.columns if col.name in live]
        return sa.table(self.table.name, *columns), live

    def _values(self, record: EmployeeRecord, live: Set[str]) -> Dict[str, Any]:
        values = {
            "id": record.id,
            "name": record.name,
            "registration": record.registration,
            "role": record.role,
            "sector": record.sector,
            "company": record.company,
            "photo_url": record.photo_url,
            "trainings": completions_of(record),
            "updated_at": _utcnow(),
        }
        return {key: value for key, value in values.items() if key in live}

    def upsert(self, records: Sequence[EmployeeRecord]) -> UpsertResult:
        result = UpsertResult()
        try:
            table, live = self._live_table()
        except SQLAlchemyError:
            self.db.rollback()
            raise

        missing_required = sorted(REQUIRED_EMPLOYEE_COLUMNS - live)
        if missing_required:
            error = f"Table {self.table.name} is missing required column(s): {', '.join(missing_required)}"
            logger.warning("Employee store rejected batch", extra={"error": error, "records": len(records)})
            self.db.rollback()
            result.failures = [RecordFailure(employee_id=record.id, error=error) for record in records]
            return result

        result.dropped_fields = [name for name in models.OPTIONAL_EMPLOYEE_COLUMNS if name not in live]
        if result.dropped_fields:
            logger.warning(
                "Employee store lacks optional columns; values dropped",
                extra={"dropped_fields": result.dropped_fields},
            )

        for record in records:
            values = self._values(record, live)
            try:
                exists = self.db.execute(
                    sa.select(table.c.id).where(table.c.id == record.id)
                ).first()
                if exists:
                    self.db.execute(sa.update(table).where(table.c.id == record.id).values(**values))
                else:
                    if "created_at" in live:
                        values["created_at"] = _utcnow()
                    self.db.execute(sa.insert(table).values(**values))
                self.db.commit()
            except SQLAlchemyError as exc:
                self.db.rollback()
                logger.warning(
                    "Failed to persist employee",
                    extra={"employee_id": record.id, "error": str(exc)},
                )
                result.failures.append(RecordFailure(employee_id=record.id, error=str(exc)))
                continue
            result.saved_ids.append(record.id)

        return result

    def select_all(self, *, today: date) -> List[EmployeeRecord]:
        table, live = self._live_table()
        if not live:
            return []
        rows = self.db.execute(sa.select(table).order_by(table.c.name, table.c.id)).mappings().all()
        return [record_from_row(row, today=today) for row in rows]

    def get(self, employee_id: str, *, today: date) -> Optional[EmployeeRecord]:
        table, live = self._live_table()
        if not live:
            return None
        row = self.db.execute(sa.select(table).where(table.c.id == employee_id)).mappings().first()
        if row is None:
            return None
        return record_from_row(row, today=today)

    def delete(self, employee_id: str) -> bool:
        table, live = self._live_table()
        if not live:
            return False
        deleted = self.db.execute(sa.delete(table).where(table.c.id == employee_id)).rowcount
        self.db.commit()
        return bool(deleted)


# ---------------------------------------------------------------------------
# APP SETTINGS
# ---------------------------------------------------------------------------


def get_setting(db: Session, key: str) -> Optional[str]:
    setting = db.query(models.AppSetting).filter(models.AppSetting.key == key).first()
    return setting.value if setting else None


def set_setting(db: Session, key: str, value: Optional[str]) -> None:
    setting = db.query(models.AppSetting).filter(models.AppSetting.key == key).first()
    if setting is None:
        setting = models.AppSetting(key=key)
        db.add(setting)
    setting.value = value
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


class SqlSyncMarker(SyncMarker):
    def __init__(self, db: Session, *, key: str = models.LAST_SYNC_KEY) -> None:
        self.db = db
        self.key = key

    def read(self) -> Optional[str]:
        return get_setting(self.db, self.key)

    def write(self, value: str) -> None:
        set_setting(self.db, self.key, value)
