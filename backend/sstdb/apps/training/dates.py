# backend/sstdb/apps/training/dates.py
"""
Tolerant date parsing for spreadsheet cells.

Cells arrive as ISO strings (Apps Script serialises Date cells as
'2023-01-15T03:00:00.000Z'), Brazilian 'DD/MM/YYYY' text typed by hand,
spreadsheet serial numbers, native dates, or sentinels such as '-'.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta
from typing import Any, Optional

_ABSENT_SENTINELS = {"", "-", "n/a"}

_ISO_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")
_DAY_FIRST = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})(?!\d)")

# Spreadsheet serial day numbers use the 1899-12-30 epoch.
_SERIAL_EPOCH = date(1899, 12, 30)
_SERIAL_MIN = 1        # 1899-12-31
_SERIAL_MAX = 109574   # 2199-12-31

_TEXT_FORMATS = (
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d %b %Y",
    "%b %d %Y",
    "%d %B %Y",
    "%B %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a %b %d %Y",
)


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _from_serial(value: float) -> Optional[date]:
    if value != value or not _SERIAL_MIN <= value <= _SERIAL_MAX:  # NaN or out of range
        return None
    return _SERIAL_EPOCH + timedelta(days=int(value))


def _from_text(text: str) -> Optional[date]:
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        pass

    # JS Date.toString() output carries a time and zone after the year.
    candidates = {text, " ".join(text.split()[:4])}
    for candidate in candidates:
        for fmt in _TEXT_FORMATS:
            try:
                return datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
    return None


def parse_flexible_date(raw: Any) -> Optional[date]:
    """
    Convert a heterogeneous cell value to a calendar date, or None.

    - None, blanks, '-' and 'N/A' (any case) are absent.
    - 'YYYY-MM-DD...' is read as year-month-day; anything after the day
      (time, zone) is ignored.
    - 'D/M/YYYY' and 'DD/MM/YYYY' are day-first, never month-first.
    - datetime/date values are taken as-is (datetimes keep their date).
    - Numbers are spreadsheet serial days when in range.
    - Other text goes through ISO parsing and a fixed list of formats.

    Impossible dates (31/02/2024) are absent. This function never raises.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    if isinstance(raw, (int, float)):
        try:
            return _from_serial(float(raw))
        except OverflowError:
            return None

    text = str(raw).strip()
    if text.lower() in _ABSENT_SENTINELS:
        return None

    match = _ISO_PREFIX.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    match = _DAY_FIRST.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_date(year, month, day)

    return _from_text(text)
