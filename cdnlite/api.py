"""HTTP API for the CDN rewrite engine.

Separate API (no UI) to:
- rewrite a single URL (url) or a batch (batch)
- rewrite HTML content (html)
- run a named host filter hook (hook)
- manage the options store (get/put)
- get runtime stats (stats)

Built on FastAPI for live Swagger/OpenAPI docs at ``/docs`` and easy
testing through TestClient.

Options store format (json): see ``rules.dfl_opts``.
"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Any

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .core import Cdn, CfgErr
from .hooks import HkErr, flt
from .rules import dfl_opts, ld_cfg, mk_cdn, sv_cfg


class UrlIn(BaseModel):
    """Input schema for URL endpoints.

    Attributes:
        u: URL, URI or query.
        sch: Explicit scheme (http, https, relative, ...) or None.
    """

    u: str = Field(..., min_length=1)
    sch: str | None = None


class UrlOut(BaseModel):
    """Output schema for URL endpoints.

    Attributes:
        u: Input URL.
        out: Rewritten URL (input if unchanged).
        chg: True if rewritten.
        why: Reason (ok, not_local, wl_ext, ...).
    """

    u: str
    out: str
    chg: bool
    why: str


class BatchIn(BaseModel):
    """Input schema for batch rewrite."""

    items: list[UrlIn]


class BatchOut(BaseModel):
    """Output schema for batch rewrite."""

    items: list[UrlOut]
    n: int


class HtmlIn(BaseModel):
    html: str


class HtmlOut(BaseModel):
    html: str
    chg: bool


class HookIn(BaseModel):
    """Input schema for hook dispatch.

    Attributes:
        v: Filtered value.
        a: Extra hook args (e.g. path, scheme, blog_id).
    """

    v: str
    a: list[Any] = Field(default_factory=list)


class HookOut(BaseModel):
    out: str


class StatsOut(BaseModel):
    """Simple runtime stats.

    Attributes:
        up_s: Uptime seconds.
        urls: Total URLs handled.
        chg: Total URLs rewritten.
    """

    up_s: float
    urls: int
    chg: int


def mk_api(
    dbp: Path,
    host: str,
    is_ssl: bool = False,
    ms: bool = False,
    s2m: bool = False,
    adm: bool = False,
) -> FastAPI:
    """Create FastAPI CDN rewrite API application.

    Args:
        dbp: Path to options json.
        host: Local host name.
        is_ssl: Treat requests as SSL.
        ms: Multisite install.
        s2m: Membership plugin files present.
        adm: Serve admin-area requests (filters off).

    Returns:
        FastAPI app.
    """
    app = FastAPI(title="cdnlite-api", version="0.1.0")
    t0 = time.time()
    st = {"urls": 0, "chg": 0}
    lk = threading.Lock()

    def gdb() -> dict[str, Any]:
        if not dbp.exists():
            return dfl_opts()
        try:
            return ld_cfg(dbp)
        except CfgErr as e:
            raise HTTPException(400, str(e)) from e

    def gcdn() -> Cdn:
        try:
            return mk_cdn(gdb(), host, is_ssl=is_ssl, ms=ms, s2m=s2m, adm=adm)
        except CfgErr as e:
            raise HTTPException(400, str(e)) from e

    def rw1(cdn: Cdn, x: UrlIn) -> UrlOut:
        out = cdn.rw_url(x.u, x.sch)
        with lk:
            st["urls"] += 1
            if out != x.u:
                st["chg"] += 1
        return UrlOut(u=x.u, out=out, chg=out != x.u, why=cdn.why(x.u))

    @app.get("/api/v1/health")
    def health() -> dict[str, Any]:
        """Healthcheck."""
        return {"ok": True}

    @app.get("/api/v1/opts")
    def opts_get() -> dict[str, Any]:
        """Get options store."""
        return gdb()

    @app.put("/api/v1/opts")
    def opts_put(d: dict[str, Any]) -> dict[str, Any]:
        """Replace options store.

        Raises:
            HTTPException: If payload is invalid.
        """
        x = dfl_opts()
        x.update(d)
        try:
            mk_cdn(x, host)
            sv_cfg(dbp, x)
        except CfgErr as e:
            raise HTTPException(400, str(e)) from e
        return {"ok": True}

    @app.post("/api/v1/url", response_model=UrlOut)
    def url(x: UrlIn) -> UrlOut:
        """Rewrite single URL."""
        return rw1(gcdn(), x)

    @app.post("/api/v1/batch", response_model=BatchOut)
    def batch(x: BatchIn) -> BatchOut:
        """Rewrite batch of URLs with one options snapshot."""
        cdn = gcdn()
        out = [rw1(cdn, it) for it in x.items]
        return BatchOut(items=out, n=len(out))

    @app.post("/api/v1/html", response_model=HtmlOut)
    def html(x: HtmlIn) -> HtmlOut:
        """Rewrite href/src URLs in HTML."""
        out = gcdn().rw_cnt(x.html)
        return HtmlOut(html=out, chg=out != x.html)

    @app.post("/api/v1/hook/{hk}", response_model=HookOut)
    def hook(hk: str, x: HookIn) -> HookOut:
        """Run a named host filter hook.

        Raises:
            HTTPException: 404 if hook is unknown.
        """
        try:
            return HookOut(out=flt(gcdn(), hk, x.v, *x.a))
        except HkErr as e:
            raise HTTPException(404, str(e)) from e

    @app.get("/api/v1/stats", response_model=StatsOut)
    def stats() -> StatsOut:
        """Get runtime stats."""
        with lk:
            n, c = st["urls"], st["chg"]
        return StatsOut(up_s=time.time() - t0, urls=n, chg=c)

    return app
