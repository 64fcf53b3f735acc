# backend/sstdb/apps/training/models.py

from __future__ import annotations

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    DateTime,
    Index,
    JSON,
    String,
    Text,
)

from ...database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# ENUMS
# ---------------------------------------------------------------------------


class TrainingStatus(str, enum.Enum):
    """
    Derived lifecycle of one (employee, course) training.

    Never stored: always recomputed from the completion date, the course
    validity and today's date.
    """

    NOT_TRAINED = "NOT_TRAINED"
    VALID = "VALID"
    EXPIRING = "EXPIRING"
    EXPIRED = "EXPIRED"


# ---------------------------------------------------------------------------
# EMPLOYEES
# ---------------------------------------------------------------------------


class Employee(Base):
    """
    One person on the compliance matrix.

    `id` is the stable upsert key: the spreadsheet's own id column when it
    has one, otherwise the registration number (matrícula).

    `trainings` maps course id -> ISO completion date (or null). Expiry and
    status are projections computed on read.
    """

    __tablename__ = "sst_employees"
    __table_args__ = (
        Index("idx_sst_employees_company_sector", "company", "sector"),
    )

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    registration = Column(String(64), nullable=False, index=True)
    role = Column(String(255), nullable=False, default="-")
    sector = Column(String(255), nullable=False, default="-")
    company = Column(String(255), nullable=False)
    photo_url = Column(Text, nullable=True)

    trainings = Column(JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Employee id={self.id} registration={self.registration}>"


# Columns the store may drop when a legacy table lacks them.
OPTIONAL_EMPLOYEE_COLUMNS = ("photo_url", "created_at", "updated_at")


# ---------------------------------------------------------------------------
# APP SETTINGS
# ---------------------------------------------------------------------------


class AppSetting(Base):
    """
    Small key/value table for deployment-level settings:
    - last_sync_at : ISO timestamp of the last successful sync
    - sheets_url   : Apps Script web app URL chosen by the admin
    """

    __tablename__ = "app_settings"

    key = Column(String(64), primary_key=True)
    value = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<AppSetting key={self.key}>"


LAST_SYNC_KEY = "last_sync_at"
SHEETS_URL_KEY = "sheets_url"
