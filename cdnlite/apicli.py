"""CLI runner for cdnlite API."""

from __future__ import annotations

import argparse
from pathlib import Path

import uvicorn

from .api import mk_api
from .log import setup_logging


def _ap() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="cdnlite-api", add_help=True)
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", default=8010, type=int)
    p.add_argument("--db", default="data/cdn_opts.json", help="options db path (json)")
    p.add_argument("--local-host", dest="local_host", required=True, help="site host name")
    p.add_argument("--ssl", action="store_true")
    p.add_argument("--ms", action="store_true")
    p.add_argument("--s2m", action="store_true")
    p.add_argument("--adm", action="store_true", help="admin-area requests (filters off)")
    p.add_argument("--debug", action="store_true")
    return p


def run_api(argv: list[str] | None = None) -> int:
    """Run API server.

    Args:
        argv: Arg list.

    Returns:
        Exit code.
    """
    a = _ap().parse_args(argv)
    setup_logging(a.debug)
    app = mk_api(Path(a.db), a.local_host, is_ssl=a.ssl, ms=a.ms, s2m=a.s2m, adm=a.adm)
    uvicorn.run(app, host=a.host, port=a.port, log_level="debug" if a.debug else "info")
    return 0


def main() -> None:
    raise SystemExit(run_api())
