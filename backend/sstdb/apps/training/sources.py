# backend/sstdb/apps/training/sources.py
"""
External row sources for the sync.

Each source returns a list of loosely typed rows or raises a classified
`SyncError`. An empty list is a valid return value; the reconciler decides
what an empty result means.
"""

from __future__ import annotations

import abc
import csv
import http.client
import io
import json
import logging
import urllib.error
import urllib.request
from typing import Any, List, Optional, Sequence, Tuple

from .errors import AuthorizationError, SchemaError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SEC = 20

# Hosts Google redirects to when a web app is not deployed for "Anyone".
_SIGN_IN_MARKERS = ("accounts.google.com", "ServiceLogin", "/signin")
_WRAPPER_KEYS = ("rows", "data")
_EMPTY_CELLS = {"", "-", "N/A"}


class ExternalSource(abc.ABC):
    """Pull endpoint returning spreadsheet rows."""

    @abc.abstractmethod
    def fetch_rows(self) -> List[Any]:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


# ---------------------------------------------------------------------------
# GOOGLE APPS SCRIPT WEB APP
# ---------------------------------------------------------------------------


def _http_get(url: str, timeout: float) -> Tuple[int, str, str, str]:
    req = urllib.request.Request(url, method="GET")
    req.add_header("Accept", "application/json")
    with urllib.request.urlopen(req, timeout=timeout) as resp:
        body = resp.read().decode("utf-8", errors="replace")
        content_type = resp.headers.get("Content-Type", "") or ""
        return resp.status, resp.geturl(), content_type, body


def decode_payload(status_code: int, final_url: str, content_type: str, body: str) -> List[Any]:
    """
    Turn a raw HTTP answer from the web app into rows, or raise.

    - 401/403, a redirect to a sign-in page, or an HTML body mean the
      deployment is not public: AuthorizationError.
    - Other non-2xx statuses: TransportError.
    - Undecodable JSON, an `{"error": ...}` object, or a non-list payload:
      SchemaError.
    """
    if status_code in (401, 403):
        raise AuthorizationError(f"Source refused access (HTTP {status_code}).")
    if not 200 <= status_code < 300:
        raise TransportError(f"Source answered HTTP {status_code}.")

    if any(marker in (final_url or "") for marker in _SIGN_IN_MARKERS):
        raise AuthorizationError(
            "Source redirected to a sign-in page. Deploy the web app with access set to 'Anyone'."
        )

    text = (body or "").lstrip()
    if text.startswith("<") or "text/html" in (content_type or "").lower():
        raise AuthorizationError(
            "Source returned an HTML page instead of data. Check the web app deployment permissions."
        )

    try:
        payload = json.loads(text)
    except ValueError as exc:
        raise SchemaError(f"Source payload is not valid JSON: {exc}") from exc

    if isinstance(payload, dict):
        if payload.get("error"):
            raise SchemaError(f"Source reported an error: {payload['error']}")
        for key in _WRAPPER_KEYS:
            if isinstance(payload.get(key), list):
                return payload[key]
        raise SchemaError("Source payload is an object without a list of rows.")

    if not isinstance(payload, list):
        raise SchemaError(f"Source payload must be a list of rows, got {type(payload).__name__}.")
    return payload


class SheetsWebAppSource(ExternalSource):
    """
    Apps Script web app publishing the first sheet as a JSON array of
    {header: value} objects (see docs in the admin configuration screen).
    """

    def __init__(self, url: str, *, timeout_sec: float = DEFAULT_TIMEOUT_SEC) -> None:
        self.url = url
        self.timeout_sec = timeout_sec

    def describe(self) -> str:
        return f"sheets:{self.url}"

    def fetch_rows(self) -> List[Any]:
        try:
            status_code, final_url, content_type, body = _http_get(self.url, self.timeout_sec)
        except urllib.error.HTTPError as exc:
            return decode_payload(exc.code, self.url, "", "")
        except (OSError, ValueError, http.client.HTTPException) as exc:
            # URLError, timeouts and refused connections are all OSError;
            # malformed or truncated responses raise http.client errors.
            logger.warning("Sheets fetch failed", extra={"url": self.url, "error": str(exc)})
            raise TransportError(f"Could not reach the spreadsheet source: {exc}") from exc
        return decode_payload(status_code, final_url, content_type, body)


# ---------------------------------------------------------------------------
# PASTED SPREADSHEET TEXT
# ---------------------------------------------------------------------------


def _detect_delimiter(header_line: str) -> str:
    if "\t" in header_line:
        return "\t"
    if ";" in header_line:
        return ";"
    if "," in header_line:
        return ","
    return "\t"


def _clean_cell(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    if value.upper() in _EMPTY_CELLS:
        return None
    return value


class PastedTableSource(ExternalSource):
    """
    Rows copied from a spreadsheet and pasted as text: a header line then
    one line per employee, separated by tabs (Excel/Sheets copy), ';' or ','.
    """

    def __init__(self, text: str) -> None:
        self.text = text or ""

    def fetch_rows(self) -> List[Any]:
        lines = [line for line in self.text.strip().splitlines() if line.strip()]
        if len(lines) < 2:
            return []

        reader = csv.reader(io.StringIO("\n".join(lines)), delimiter=_detect_delimiter(lines[0]))
        records = list(reader)
        headers = [header.strip() for header in records[0]]

        rows: List[dict] = []
        for values in records[1:]:
            row = {}
            for position, header in enumerate(headers):
                if not header:
                    continue
                cell = values[position] if position < len(values) else None
                row[header] = _clean_cell(cell)
            rows.append(row)
        return rows


# ---------------------------------------------------------------------------
# ALREADY-DECODED ROWS
# ---------------------------------------------------------------------------


class StaticRowsSource(ExternalSource):
    """Rows posted directly as JSON (or built in code)."""

    def __init__(self, rows: Sequence[Any]) -> None:
        self.rows = rows

    def fetch_rows(self) -> List[Any]:
        if not isinstance(self.rows, (list, tuple)):
            raise SchemaError(f"Rows must be a list, got {type(self.rows).__name__}.")
        return list(self.rows)
