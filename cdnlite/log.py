"""Logging setup for cdnlite."""

from __future__ import annotations

import logging
from pathlib import Path

log = logging.getLogger("cdnlite")

_FMT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"
_CON_DATEFMT = "%H:%M:%S"


def setup_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Configure the package logger.

    Args:
        debug: Enable DEBUG output (default INFO).
        log_file: Also write full-detail logs to this path.
    """
    log.setLevel(logging.DEBUG if debug else logging.INFO)
    log.handlers.clear()

    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(_FMT, datefmt=_CON_DATEFMT))
    log.addHandler(h)

    if log_file:
        lp = Path(log_file)
        lp.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(str(lp), encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter(_FMT, datefmt=_DATEFMT))
        log.addHandler(fh)
        log.info("logging to file: %s", lp.resolve())
