from __future__ import annotations

import http.client
import socket
import urllib.error

import pytest

from sstdb.apps.training import sources
from sstdb.apps.training.errors import (
    AuthorizationError,
    SchemaError,
    SyncErrorKind,
    TransportError,
)
from sstdb.apps.training.sources import (
    PastedTableSource,
    SheetsWebAppSource,
    StaticRowsSource,
    decode_payload,
)

EXEC_URL = "https://script.google.com/macros/s/abc/exec"
JSON = "application/json; charset=utf-8"


# ---------------------------------------------------------------------------
# decode_payload
# ---------------------------------------------------------------------------


def test_decode_plain_list():
    rows = decode_payload(200, EXEC_URL, JSON, '[{"Nome": "Ana"}, {"Nome": "Bia"}]')
    assert rows == [{"Nome": "Ana"}, {"Nome": "Bia"}]


def test_decode_empty_list_is_not_an_error():
    assert decode_payload(200, EXEC_URL, JSON, "[]") == []


@pytest.mark.parametrize("wrapper", ["rows", "data"])
def test_decode_wrapped_rows(wrapper):
    assert decode_payload(200, EXEC_URL, JSON, '{"%s": [{"Nome": "Ana"}]}' % wrapper) == [{"Nome": "Ana"}]


@pytest.mark.parametrize("status_code", [401, 403])
def test_decode_refused_access(status_code):
    with pytest.raises(AuthorizationError):
        decode_payload(status_code, EXEC_URL, JSON, "")


@pytest.mark.parametrize("status_code", [404, 500, 503])
def test_decode_other_http_errors_are_transport(status_code):
    with pytest.raises(TransportError) as excinfo:
        decode_payload(status_code, EXEC_URL, JSON, "")
    assert excinfo.value.retryable


def test_decode_sign_in_redirect():
    with pytest.raises(AuthorizationError):
        decode_payload(200, "https://accounts.google.com/ServiceLogin?continue=x", JSON, "[]")


def test_decode_html_body():
    with pytest.raises(AuthorizationError) as excinfo:
        decode_payload(200, EXEC_URL, "text/html; charset=utf-8", "<!DOCTYPE html><html></html>")
    assert excinfo.value.kind == SyncErrorKind.AUTHORIZATION
    assert not excinfo.value.retryable


@pytest.mark.parametrize(
    "body",
    ['{"error": "Sheet not found"}', '{"ok": true}', "42", '"text"', "not json"],
)
def test_decode_schema_errors(body):
    with pytest.raises(SchemaError):
        decode_payload(200, EXEC_URL, JSON, body)


# ---------------------------------------------------------------------------
# SheetsWebAppSource
# ---------------------------------------------------------------------------


def test_sheets_source_passes_timeout(monkeypatch):
    calls = []

    def fake_get(url, timeout):
        calls.append((url, timeout))
        return 200, url, JSON, '[{"Nome": "Ana"}]'

    monkeypatch.setattr(sources, "_http_get", fake_get)

    rows = SheetsWebAppSource(EXEC_URL, timeout_sec=7).fetch_rows()

    assert rows == [{"Nome": "Ana"}]
    assert calls == [(EXEC_URL, 7)]


@pytest.mark.parametrize(
    "error",
    [
        urllib.error.URLError("Name or service not known"),
        socket.timeout("timed out"),
        ConnectionRefusedError("refused"),
        http.client.BadStatusLine("garbage-not-http"),
        http.client.IncompleteRead(b"[{\"Nome\": "),
        http.client.LineTooLong("header line"),
    ],
)
def test_sheets_source_network_failures(monkeypatch, error):
    def fake_get(url, timeout):
        raise error

    monkeypatch.setattr(sources, "_http_get", fake_get)

    with pytest.raises(TransportError):
        SheetsWebAppSource(EXEC_URL).fetch_rows()


def test_sheets_source_http_error_is_classified(monkeypatch):
    def fake_get(url, timeout):
        raise urllib.error.HTTPError(url, 403, "Forbidden", hdrs=None, fp=None)

    monkeypatch.setattr(sources, "_http_get", fake_get)

    with pytest.raises(AuthorizationError):
        SheetsWebAppSource(EXEC_URL).fetch_rows()


def test_sheets_source_describe():
    assert SheetsWebAppSource(EXEC_URL).describe() == f"sheets:{EXEC_URL}"


# ---------------------------------------------------------------------------
# PastedTableSource / StaticRowsSource
# ---------------------------------------------------------------------------


def test_pasted_tab_separated_rows():
    text = "Nome\tMatrícula\tNR35\nAna\t10\t01/02/2024\nBia\t11\t-\n"

    rows = PastedTableSource(text).fetch_rows()

    assert rows == [
        {"Nome": "Ana", "Matrícula": "10", "NR35": "01/02/2024"},
        {"Nome": "Bia", "Matrícula": "11", "NR35": None},
    ]


def test_pasted_semicolon_rows_with_short_lines():
    text = "Nome;Setor;NR10\n\nCarlos;Campo\n"

    rows = PastedTableSource(text).fetch_rows()

    assert rows == [{"Nome": "Carlos", "Setor": "Campo", "NR10": None}]


def test_pasted_comma_rows_with_quotes_and_na():
    text = 'Nome,Cargo,NR06\n"Souza, Ana",n/a,2020-01-01'

    rows = PastedTableSource(text).fetch_rows()

    assert rows == [{"Nome": "Souza, Ana", "Cargo": None, "NR06": "2020-01-01"}]


@pytest.mark.parametrize("text", ["", "   ", "Nome\tMatrícula", None])
def test_pasted_without_data_lines_is_empty(text):
    assert PastedTableSource(text).fetch_rows() == []


def test_static_rows():
    assert StaticRowsSource([{"Nome": "A"}]).fetch_rows() == [{"Nome": "A"}]
    with pytest.raises(SchemaError):
        StaticRowsSource({"Nome": "A"}).fetch_rows()
