from __future__ import annotations

import json
from datetime import date

import pytest
from sqlalchemy import text
from sqlalchemy.orm import sessionmaker

from sstdb.apps.training.models import Employee, LAST_SYNC_KEY, TrainingStatus
from sstdb.apps.training.normalizer import normalize_rows
from sstdb.apps.training.store import (
    SqlEmployeeStore,
    SqlSyncMarker,
    completions_of,
    get_setting,
    record_from_row,
    set_setting,
)

TODAY = date(2025, 1, 20)


def _records(*rows):
    return normalize_rows(list(rows), today=TODAY)


def _session_with_ddl(engine, ddl: str):
    with engine.begin() as conn:
        conn.execute(text(ddl))
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False)()


@pytest.fixture()
def legacy_session(engine):
    # Table created before photo and timestamp columns existed.
    session = _session_with_ddl(
        engine,
        """
        CREATE TABLE sst_employees (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            registration VARCHAR(64) NOT NULL,
            role VARCHAR(255) NOT NULL,
            sector VARCHAR(255) NOT NULL,
            company VARCHAR(255) NOT NULL,
            trainings TEXT NOT NULL
        )
        """,
    )
    try:
        yield session
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Current schema
# ---------------------------------------------------------------------------


def test_upsert_and_select(db_session):
    store = SqlEmployeeStore(db_session)
    records = _records(
        {"Nome": "Bia", "Matrícula": "2", "NR35": "2024-06-01", "Foto": "http://x/b.png"},
        {"Nome": "Ana", "Matrícula": "1", "NR10": "15/01/2023"},
    )

    result = store.upsert(records)

    assert result.saved_ids == ["2", "1"]
    assert result.failures == []
    assert result.dropped_fields == []
    assert not result.all_failed

    stored = store.select_all(today=TODAY)
    assert [e.name for e in stored] == ["Ana", "Bia"]
    assert stored[0].trainings["NR10"].status == TrainingStatus.EXPIRED
    assert stored[1].photo_url == "http://x/b.png"
    assert stored == sorted(records, key=lambda e: e.name)


def test_upsert_replaces_by_id(db_session):
    store = SqlEmployeeStore(db_session)
    store.upsert(_records({"Nome": "Ana", "Matrícula": "1", "Setor": "Campo"}))
    store.upsert(_records({"Nome": "Ana Lima", "Matrícula": "1", "Setor": "Oficina"}))

    stored = store.select_all(today=TODAY)
    assert len(stored) == 1
    assert stored[0].name == "Ana Lima"
    assert stored[0].sector == "Oficina"
    assert db_session.query(Employee).count() == 1


def test_only_completion_dates_are_persisted(db_session):
    store = SqlEmployeeStore(db_session)
    store.upsert(_records({"Nome": "Ana", "Matrícula": "1", "NR35": "2024-06-01"}))

    row = db_session.query(Employee).one()
    assert row.trainings["NR35"] == "2024-06-01"
    assert row.trainings["NR10"] is None
    assert row.created_at is not None


def test_status_is_recomputed_on_read(db_session):
    store = SqlEmployeeStore(db_session)
    store.upsert(_records({"Nome": "Ana", "Matrícula": "1", "NR35": "2023-03-01"}))

    assert store.get("1", today=date(2024, 1, 1)).trainings["NR35"].status == TrainingStatus.VALID
    assert store.get("1", today=date(2025, 2, 1)).trainings["NR35"].status == TrainingStatus.EXPIRING
    assert store.get("1", today=date(2025, 3, 2)).trainings["NR35"].status == TrainingStatus.EXPIRED


def test_get_and_delete(db_session):
    store = SqlEmployeeStore(db_session)
    store.upsert(_records({"Nome": "Ana", "Matrícula": "1"}))

    assert store.get("1", today=TODAY).name == "Ana"
    assert store.get("missing", today=TODAY) is None
    assert store.delete("1") is True
    assert store.delete("1") is False
    assert store.select_all(today=TODAY) == []


def test_completions_of():
    record = _records({"Nome": "Ana", "NR05": "2024-10-01"})[0]
    completions = completions_of(record)

    assert completions["NR05"] == "2024-10-01"
    assert completions["NR06"] is None


def test_record_from_legacy_row_shapes():
    row = {
        "id": "7",
        "name": "Caio",
        "registration": None,
        "role": None,
        "sector": "",
        "company": None,
        "trainings": {
            "NR35": {"completionDate": "2024-01-10", "status": "EXPIRED"},
            "NR10": {"completion_date": "2024-02-01"},
            "NR99": "2024-01-01",
        },
    }
    record = record_from_row(row, today=TODAY)

    assert record.registration == "7"
    assert record.role == "-"
    assert record.sector == "-"
    assert record.trainings["NR35"].status == TrainingStatus.VALID
    assert record.trainings["NR10"].completion_date == date(2024, 2, 1)
    assert "NR99" not in record.trainings


# ---------------------------------------------------------------------------
# Schema drift
# ---------------------------------------------------------------------------


def test_legacy_table_drops_optional_columns(legacy_session):
    store = SqlEmployeeStore(legacy_session)
    records = _records({"Nome": "Ana", "Matrícula": "1", "Foto": "http://x/a.png", "NR06": "2020-01-01"})

    result = store.upsert(records)

    assert result.saved_ids == ["1"]
    assert result.failures == []
    assert result.dropped_fields == ["photo_url", "created_at", "updated_at"]

    stored = store.get("1", today=TODAY)
    assert stored.photo_url is None
    assert stored.trainings["NR06"].status == TrainingStatus.VALID

    raw = legacy_session.execute(text("SELECT trainings FROM sst_employees")).scalar_one()
    assert json.loads(raw)["NR06"] == "2020-01-01"


def test_missing_required_column_fails_every_record(engine):
    session = _session_with_ddl(
        engine,
        "CREATE TABLE sst_employees (id VARCHAR(64) PRIMARY KEY, name VARCHAR(255))",
    )
    try:
        result = SqlEmployeeStore(session).upsert(_records({"Nome": "Ana"}, {"Nome": "Bia"}))

        assert result.saved_ids == []
        assert [f.employee_id for f in result.failures] == ["ID-0", "ID-1"]
        assert "trainings" in result.failures[0].error
        assert result.all_failed
        assert session.execute(text("SELECT COUNT(*) FROM sst_employees")).scalar_one() == 0
    finally:
        session.close()


def test_one_bad_record_does_not_block_the_others(engine):
    session = _session_with_ddl(
        engine,
        """
        CREATE TABLE sst_employees (
            id VARCHAR(64) PRIMARY KEY,
            name VARCHAR(255) NOT NULL,
            registration VARCHAR(64) NOT NULL CHECK (length(registration) < 6),
            role VARCHAR(255) NOT NULL,
            sector VARCHAR(255) NOT NULL,
            company VARCHAR(255) NOT NULL,
            trainings TEXT NOT NULL
        )
        """,
    )
    try:
        store = SqlEmployeeStore(session)
        result = store.upsert(
            _records(
                {"Nome": "Ana", "Matrícula": "1"},
                {"Nome": "Longo", "Matrícula": "123456789"},
                {"Nome": "Bia", "Matrícula": "2"},
            )
        )

        assert result.saved_ids == ["1", "2"]
        assert [f.employee_id for f in result.failures] == ["123456789"]
        assert not result.all_failed
        assert [e.id for e in store.select_all(today=TODAY)] == ["1", "2"]
    finally:
        session.close()


def test_missing_table_reads_as_empty(engine):
    session = sessionmaker(bind=engine)()
    try:
        store = SqlEmployeeStore(session)
        assert store.select_all(today=TODAY) == []
        assert store.get("1", today=TODAY) is None
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Settings / sync marker
# ---------------------------------------------------------------------------


def test_settings_roundtrip(db_session):
    assert get_setting(db_session, "sheets_url") is None
    set_setting(db_session, "sheets_url", "https://script.google.com/macros/s/a/exec")
    set_setting(db_session, "sheets_url", "https://script.google.com/macros/s/b/exec")

    assert get_setting(db_session, "sheets_url") == "https://script.google.com/macros/s/b/exec"


def test_sync_marker(db_session):
    marker = SqlSyncMarker(db_session)
    assert marker.read() is None

    marker.write("2025-01-20T12:00:00+00:00")

    assert marker.read() == "2025-01-20T12:00:00+00:00"
    assert get_setting(db_session, LAST_SYNC_KEY) == "2025-01-20T12:00:00+00:00"
