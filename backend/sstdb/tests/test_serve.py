from __future__ import annotations

from sstdb import serve


def test_defaults(monkeypatch):
    for name in ("HOST", "PORT", "RELOAD", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)

    assert serve.uvicorn_options() == {
        "host": "0.0.0.0",
        "port": 8000,
        "reload": False,
        "log_level": "info",
        "proxy_headers": True,
    }


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9100")
    monkeypatch.setenv("RELOAD", " Yes ")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    options = serve.uvicorn_options()

    assert options["host"] == "127.0.0.1"
    assert options["port"] == 9100
    assert options["reload"] is True
    assert options["log_level"] == "debug"


def test_main_runs_the_app(monkeypatch):
    calls = []
    monkeypatch.setattr(serve.uvicorn, "run", lambda app, **kwargs: calls.append((app, kwargs)))

    serve.main()

    assert calls == [("sstdb.main:app", serve.uvicorn_options())]
