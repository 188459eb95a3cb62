"""ASGI middleware: rewrite HTML responses of a host app."""

from __future__ import annotations

from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import Response

from .core import Cdn


def _cs(ct: str) -> str:
    """Charset from a content-type header (utf-8 default)."""
    for x in ct.split(";")[1:]:
        k, _, v = x.strip().partition("=")
        if k.lower() == "charset" and v:
            return v.strip('"')
    return "utf-8"


def add_cdn_mw(app: FastAPI, gcdn: Callable[[], Cdn]) -> None:
    """Install HTML rewrite middleware.

    Args:
        app: Host app.
        gcdn: Returns the engine to use for the current request.
    """

    @app.middleware("http")
    async def cdn_mw(req: Request, call_next):
        resp = await call_next(req)
        ct = resp.headers.get("content-type", "")
        if not ct.startswith("text/html"):
            return resp
        body = b"".join([c async for c in resp.body_iterator])
        cs = _cs(ct)
        try:
            out = gcdn().rw_cnt(body.decode(cs)).encode(cs)
        except (UnicodeError, LookupError):
            out = body
        r = Response(content=out, status_code=resp.status_code, background=resp.background)
        r.raw_headers = [(k, v) for k, v in resp.raw_headers if k.lower() != b"content-length"]
        r.raw_headers.append((b"content-length", str(len(out)).encode("latin-1")))
        return r
