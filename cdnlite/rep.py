"""Rewrite reports."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterable, Mapping, Any

from .io import OutErr

COLS = ("u", "out", "chg", "why")


def mk_row(u: str, out: str, why: str) -> dict[str, Any]:
    """Report row for one URL.

    Args:
        u: Input URL.
        out: Rewritten URL (or input if unchanged).
        why: Reason from Cdn.why.

    Returns:
        Dict with keys: u, out, chg, why.
    """
    return {"u": u, "out": out, "chg": out != u, "why": why}


def wr_jsonl(p: Path, rows: Iterable[Mapping[str, Any]]) -> None:
    """Write report as JSON Lines.

    Raises:
        OutErr: On write errors.
    """
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("w", encoding="utf-8") as f:
            for r in rows:
                f.write(json.dumps(dict(r), ensure_ascii=False) + "\n")
    except OSError as e:
        raise OutErr(f"cannot write: {p}") from e


def wr_csv(p: Path, rows: Iterable[Mapping[str, Any]]) -> None:
    """Write report as CSV with a fixed header (even when empty).

    Raises:
        OutErr: On write errors.
    """
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("w", encoding="utf-8", newline="") as f:
            w = csv.DictWriter(f, fieldnames=list(COLS))
            w.writeheader()
            for r in rows:
                w.writerow({k: r.get(k, "") for k in COLS})
    except OSError as e:
        raise OutErr(f"cannot write: {p}") from e
