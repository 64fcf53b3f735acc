"""Console entry point (`sstdb-serve`). TLS is terminated by the reverse proxy."""

import os
from typing import Any, Dict

import uvicorn

_TRUTHY = {"1", "true", "yes", "on"}


def uvicorn_options() -> Dict[str, Any]:
    return {
        "host": os.getenv("HOST", "0.0.0.0"),
        "port": int(os.getenv("PORT", "8000")),
        "reload": os.getenv("RELOAD", "false").strip().lower() in _TRUTHY,
        "log_level": os.getenv("LOG_LEVEL", "info").lower(),
        "proxy_headers": True,
    }


def main() -> None:
    uvicorn.run("sstdb.main:app", **uvicorn_options())


if __name__ == "__main__":
    main()
