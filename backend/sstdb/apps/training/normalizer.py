# backend/sstdb/apps/training/normalizer.py
"""
Map loosely structured spreadsheet rows onto canonical employees.

Headers are typed by people: 'Nome Completo', 'NOME_COMPLETO', 'Matrícula',
'nr-35'. Every header is reduced to a bare uppercase ASCII token before
lookup, and every catalog course id is looked up the same way.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from .catalog import NR_COURSES, Course
from .compliance import build_training_record
from .schemas import DEFAULT_COMPANY, EmployeeRecord

logger = logging.getLogger(__name__)

DEFAULT_NAME = "Sem Nome"
DEFAULT_ROLE = "-"
DEFAULT_SECTOR = "-"

_SEPARATORS = re.compile(r"[-_\s.]")

# Normalised header aliases, first present wins.
ID_KEYS = ("ID",)
NAME_KEYS = ("NOMECOMPLETO", "NOME")
REGISTRATION_KEYS = ("MATRICULA", "REGISTRO")
ROLE_KEYS = ("FUNCAO", "CARGO")
SECTOR_KEYS = ("SETOR", "DEPARTAMENTO")
COMPANY_KEYS = ("EMPRESA", "UNIDADE")
PHOTO_KEYS = ("FOTO", "URLFOTO")


def normalize_key(key: Any) -> str:
    """Uppercase, strip accents and drop spaces, hyphens, underscores and dots."""
    text = unicodedata.normalize("NFD", str(key if key is not None else "").upper())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    return _SEPARATORS.sub("", text)


# ---------------------------------------------------------------------------
# ROW SHAPES
# ---------------------------------------------------------------------------


@dataclass
class ValidRow:
    index: int
    fields: Dict[str, Any] = field(default_factory=dict)


@dataclass
class MalformedRow:
    index: int
    reason: str
    raw: Any = None


ParsedRow = Union[ValidRow, MalformedRow]


def parse_row(raw: Any, index: int) -> ParsedRow:
    if not isinstance(raw, Mapping):
        return MalformedRow(index=index, reason=f"expected a mapping, got {type(raw).__name__}", raw=raw)

    fields: Dict[str, Any] = {}
    for key, value in raw.items():
        token = normalize_key(key)
        if not token:
            continue
        # Two headers collapsing onto one token: keep the first non-blank.
        if token in fields and not _is_blank(fields[token]):
            continue
        fields[token] = value
    return ValidRow(index=index, fields=fields)


# ---------------------------------------------------------------------------
# FIELD RESOLUTION
# ---------------------------------------------------------------------------


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _first(fields: Mapping[str, Any], keys: Sequence[str]) -> Optional[str]:
    for key in keys:
        value = fields.get(key)
        if not _is_blank(value):
            text = _as_text(value)
            if text:
                return text
    return None


def normalize_row(
    row: ParsedRow,
    *,
    today: date,
    catalog: Iterable[Course] = NR_COURSES,
) -> EmployeeRecord:
    """
    Build one canonical employee from a parsed row.

    Never raises on cell content: unparseable dates become NOT_TRAINED and
    a malformed row becomes a placeholder employee ('ID-<index>').
    """
    fields = row.fields if isinstance(row, ValidRow) else {}

    registration = _first(fields, REGISTRATION_KEYS) or f"ID-{row.index}"
    employee_id = _first(fields, ID_KEYS) or registration

    trainings = {
        course.id: build_training_record(course, fields.get(normalize_key(course.id)), today)
        for course in catalog
    }

    return EmployeeRecord(
        id=employee_id,
        name=_first(fields, NAME_KEYS) or DEFAULT_NAME,
        registration=registration,
        role=_first(fields, ROLE_KEYS) or DEFAULT_ROLE,
        sector=_first(fields, SECTOR_KEYS) or DEFAULT_SECTOR,
        company=_first(fields, COMPANY_KEYS) or DEFAULT_COMPANY,
        photo_url=_first(fields, PHOTO_KEYS),
        trainings=trainings,
    )


def normalize_rows(
    raw_rows: Sequence[Any],
    *,
    today: date,
    catalog: Iterable[Course] = NR_COURSES,
) -> List[EmployeeRecord]:
    catalog = tuple(catalog)
    employees: List[EmployeeRecord] = []
    for index, raw in enumerate(raw_rows):
        parsed = parse_row(raw, index)
        if isinstance(parsed, MalformedRow):
            logger.warning(
                "Malformed spreadsheet row replaced by placeholder",
                extra={"row_index": index, "reason": parsed.reason},
            )
        employees.append(normalize_row(parsed, today=today, catalog=catalog))
    return employees


def rows_recognized(raw_rows: Sequence[Any]) -> bool:
    """
    True when at least one row carries a name or registration column.

    A sheet failing this check has headers we do not understand at all;
    importing it would only create 'Sem Nome' placeholders.
    """
    for index, raw in enumerate(raw_rows):
        parsed = parse_row(raw, index)
        if isinstance(parsed, ValidRow) and (
            _first(parsed.fields, NAME_KEYS) or _first(parsed.fields, REGISTRATION_KEYS)
        ):
            return True
    return False
