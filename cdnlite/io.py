"""I/O helpers for rewrite inputs.

Supports:
- URL lists (one URL per line)
- whole HTML documents
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

from .core import CdnErr


class InpErr(CdnErr):
    """Raised when input cannot be read."""


class OutErr(CdnErr):
    """Raised when output cannot be written."""


def rdln(p: Path) -> Iterator[str]:
    """Read non-empty lines from a UTF-8 text file.

    Lines starting with ``#`` are comments.

    Args:
        p: Path to input file.

    Yields:
        Stripped lines.

    Raises:
        InpErr: If file cannot be read as UTF-8.
    """
    try:
        with p.open("r", encoding="utf-8") as f:
            for ln in f:
                s = ln.strip()
                if s and not s.startswith("#"):
                    yield s
    except UnicodeDecodeError as e:
        raise InpErr("file must be UTF-8") from e
    except OSError as e:
        raise InpErr(f"cannot read: {p}") from e


def rd_txt(p: Path) -> str:
    """Read a whole UTF-8 document.

    Raises:
        InpErr: If file cannot be read as UTF-8.
    """
    try:
        return p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InpErr("file must be UTF-8") from e
    except OSError as e:
        raise InpErr(f"cannot read: {p}") from e


def wr_txt(p: Path, s: str) -> None:
    """Write a whole UTF-8 document.

    Raises:
        OutErr: On write errors.
    """
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(s, encoding="utf-8")
    except OSError as e:
        raise OutErr(f"cannot write: {p}") from e
