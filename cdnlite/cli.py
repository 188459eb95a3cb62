"""CLI for cdnlite."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

from .core import CdnErr
from .io import rdln, rd_txt, wr_txt
from .log import setup_logging
from .rep import mk_row, wr_jsonl, wr_csv
from .rules import ld_cfg, mk_cdn

log = logging.getLogger(__name__)


def _ap() -> argparse.ArgumentParser:
    """Build argparse parser."""
    p = argparse.ArgumentParser(prog="cdnlite", add_help=True)
    p.add_argument("--in", dest="inp", required=True, help="input file path")
    p.add_argument("--mode", dest="mode", default="url", choices=["url", "html"])
    p.add_argument("--out", dest="outp", required=True, help="output file path")
    p.add_argument("--ofmt", dest="ofmt", default="jsonl", choices=["jsonl", "csv"])
    p.add_argument("--cfg", dest="cfg", default="", help="options JSON path (optional)")
    p.add_argument("--host", dest="host", required=True, help="local host name")
    p.add_argument("--ssl", action="store_true", help="treat request as SSL")
    p.add_argument("--ms", action="store_true", help="multisite install")
    p.add_argument("--ms-sub", dest="ms_sub", action="store_true", help="sub-domain network site")
    p.add_argument("--adm", action="store_true", help="admin-area request (filters off)")
    p.add_argument("--s2m", action="store_true", help="membership plugin files present")
    p.add_argument("--on", action="store_true", help="force enb=true")
    p.add_argument("--debug", action="store_true")
    p.add_argument("--log", dest="log_file", default="", help="log file path (optional)")
    return p


def run_cli(argv: list[str] | None = None) -> int:
    """Run CLI.

    Args:
        argv: Arguments list without program name.

    Returns:
        Exit code (0 ok).

    Raises:
        SystemExit: With "err: ..." on handled errors.
    """
    a = _ap().parse_args(argv)
    setup_logging(a.debug, a.log_file or None)
    ip = Path(a.inp)
    op = Path(a.outp)
    cp = Path(a.cfg) if str(a.cfg).strip() else None

    try:
        d = ld_cfg(cp)
        if a.on:
            d["enb"] = True
        cdn = mk_cdn(d, a.host, is_ssl=a.ssl, ms=a.ms, ms_sub=a.ms_sub, s2m=a.s2m, adm=a.adm)
        if not cdn.on:
            log.warning("filters inactive (enb/cdn_host/host/ssl/adm)")

        if a.mode == "html":
            wr_txt(op, cdn.rw_cnt(rd_txt(ip)))
            return 0

        rows: list[dict[str, Any]] = []
        for u in rdln(ip):
            rows.append(mk_row(u, cdn.rw_url(u), cdn.why(u)))
        if a.ofmt == "jsonl":
            wr_jsonl(op, rows)
        else:
            wr_csv(op, rows)
        log.info("%d urls, %d rewritten", len(rows), sum(1 for r in rows if r["chg"]))
    except CdnErr as e:
        raise SystemExit(f"err: {e}") from e
    return 0


def main() -> None:
    raise SystemExit(run_cli())
