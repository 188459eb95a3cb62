"""Core CDN rewrite logic.

The module contains the rewrite config, local file classification,
URI glob compilation and the URL/content rewrite engine.
"""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import urlsplit

log = logging.getLogger(__name__)


class CdnErr(Exception):
    """Base exception for cdnlite."""


class CfgErr(CdnErr):
    """Raised when options/config are invalid."""


# Extensions known to the host media library, plus font files.
DFL_EXTS: frozenset[str] = frozenset(
    {
        # images
        "jpg", "jpeg", "jpe", "gif", "png", "bmp", "tiff", "tif", "ico",
        # video
        "asf", "asx", "wmv", "wmx", "wm", "avi", "divx", "flv", "mov", "qt",
        "mpeg", "mpg", "mpe", "mp4", "m4v", "ogv", "webm", "mkv",
        "3gp", "3gpp", "3g2", "3gp2",
        # text / web
        "txt", "asc", "c", "cc", "h", "srt", "csv", "tsv", "ics", "rtx",
        "css", "htm", "html", "vtt", "dfxp",
        # audio
        "mp3", "m4a", "m4b", "ra", "ram", "wav", "ogg", "oga", "mid", "midi",
        "wma", "wax", "mka",
        # misc
        "rtf", "js", "pdf", "swf", "class", "tar", "zip", "gz", "gzip", "rar",
        "7z", "exe", "psd", "xcf",
        # office
        "doc", "pot", "pps", "ppt", "wri", "xla", "xls", "xlt", "xlw", "mdb",
        "mpp", "docx", "docm", "dotx", "dotm", "xlsx", "xlsm", "xlsb", "xltx",
        "xltm", "xlam", "pptx", "pptm", "ppsx", "ppsm", "potx", "potm", "ppam",
        "sldx", "sldm", "onetoc", "onetoc2", "onetmp", "onepkg", "oxps", "xps",
        "odt", "odp", "ods", "odg", "odc", "odb", "odf", "wp", "wpd",
        "key", "numbers", "pages",
        # fonts
        "eot", "ttf", "otf", "woff",
    }
)

ADM_GL = "/wp-admin/*"


def cmp_gl(ps: Iterable[str]) -> re.Pattern[str] | None:
    """Compile URI glob patterns into one matcher.

    ``*`` matches anything (including ``/``), ``^`` matches anything
    except ``/``. Each pattern is anchored to a leading ``/``; the result
    is used with ``search``, i.e. a URI matches if it contains a match.

    Args:
        ps: Glob patterns.

    Returns:
        Case-insensitive compiled alternation, or None if no patterns.
    """
    xs: list[str] = []
    for p in ps:
        p = str(p).lower()
        if p and p not in xs:
            xs.append(p)
    if not xs:
        return None
    rx = []
    for p in xs:
        q = re.escape("/" + p.lstrip("/"))
        rx.append(q.replace(r"\*", ".*?").replace(r"\^", "[^/]*?"))
    return re.compile("(?:" + "|".join(rx) + ")", re.IGNORECASE)


@dataclass(frozen=True)
class RwCfg:
    """Immutable rewrite config snapshot.

    Built once per request lifecycle, normally by ``rules.mk_cfg``.

    Args:
        host: Local host name (lowercase).
        cdn_host: CDN host name (lowercase).
        ssl: CDN may be used over SSL connections.
        inv_var: Invalidation query var name ("" disables).
        inv_ctr: Invalidation counter (0 disables).
        wl_ext: Whitelisted extensions.
        bl_ext: Blacklisted extensions.
        wl_uri: Whitelisted URI matcher or None.
        bl_uri: Blacklisted URI matcher or None.
        enb: Master switch.
        is_ssl: Current request is over SSL.
        ms_sub: Non-main site of a sub-domain network install.
        adm: Current request is in the admin area.
        max_cnt: Max content length to scan (0 = no cap).
    """

    host: str
    cdn_host: str
    ssl: bool = False
    inv_var: str = ""
    inv_ctr: int = 0
    wl_ext: frozenset[str] = DFL_EXTS
    bl_ext: frozenset[str] = frozenset({"php"})
    wl_uri: re.Pattern[str] | None = None
    bl_uri: re.Pattern[str] | None = cmp_gl((ADM_GL,))
    enb: bool = True
    is_ssl: bool = False
    ms_sub: bool = False
    adm: bool = False
    max_cnt: int = 5 * 1024 * 1024


@dataclass(frozen=True)
class LcF:
    """Local file reference.

    Args:
        scheme: Lowercase scheme or None.
        ext: Lowercase file extension.
        uri: Path + optional ?query + optional #fragment.
    """

    scheme: str | None
    ext: str
    uri: str


# Whole tag up to the first ">"; never crosses "<".
_TAG_RE = re.compile(r"<[\w\-]+(?![\w\-])[^<>]*>")

_ATTR_RE = re.compile(
    r"(<)"  # open tag
    r"([\w\-]+)(?![\w\-])"  # tag name
    r"([^<>]*?)"  # others before
    r"(\s(?:href|src)\s*=\s*)"  # attr=
    r"([\"'])"  # open quote
    r"([^\"'<>]+?)"  # url
    r"(\5)"  # close quote
    r"([^<>]*?)"  # others after
    r"(>)",
    re.IGNORECASE,
)


def ext(path: str) -> str:
    """Lowercase extension of the last path segment ("" if none)."""
    b = (path or "").strip().rsplit("/", 1)[-1]
    if "." not in b:
        return ""
    return b.rpartition(".")[2].lower()


def add_qv(url: str, k: str, v: str) -> str:
    """Set query var ``k=v`` on url, replacing existing ``k``.

    Other query pairs are kept verbatim; a #fragment stays last.
    """
    url, hs, frag = url.partition("#")
    base, _, qs = url.partition("?")
    ps = [x for x in qs.split("&") if x and x.split("=", 1)[0] != k]
    ps.append(f"{k}={v}")
    return base + "?" + "&".join(ps) + hs + frag


class Cdn:
    """CDN URL/content rewrite engine.

    Stateless across calls apart from the config it holds; safe to share.

    Args:
        cfg: Rewrite config snapshot.
    """

    def __init__(self, cfg: RwCfg) -> None:
        self.cfg = cfg

    @property
    def on(self) -> bool:
        """True if filters apply for this config."""
        c = self.cfg
        if not c.enb or not c.host or not c.cdn_host:
            return False
        if not c.ssl and c.is_ssl:
            return False
        return not (c.ms_sub or c.adm)

    def lcf(self, u: str) -> LcF | None:
        """Classify URL/URI/query as a local file.

        Args:
            u: Input URL, URI or query.

        Returns:
            LcF, or None if not local or not a file.
        """
        u = str(u or "").strip()
        if not u:
            return None
        try:
            p = urlsplit(u)
            h = p.hostname
        except ValueError:
            return None
        if h and h.lower() != self.cfg.host.lower():
            return None
        path = p.path
        if not path.startswith("/"):
            return None
        if path.endswith("/"):
            return None
        if ".." in path or "./" in path:
            return None
        e = ext(path)
        if not e:
            return None
        uri = path
        if p.query:
            uri += "?" + p.query
        if p.fragment:
            uri += "#" + p.fragment
        return LcF(scheme=p.scheme.lower() or None, ext=e, uri=uri)

    def _chk(self, u: str) -> tuple[LcF | None, str]:
        if not self.on:
            return None, "off"
        if not str(u or "").strip():
            return None, "blank"
        lf = self.lcf(u)
        if lf is None:
            return None, "not_local"
        c = self.cfg
        if lf.ext not in c.wl_ext:
            return None, "wl_ext"
        if lf.ext in c.bl_ext:
            return None, "bl_ext"
        if c.wl_uri is not None and not c.wl_uri.search(lf.uri):
            return None, "wl_uri"
        if c.bl_uri is not None and c.bl_uri.search(lf.uri):
            return None, "bl_uri"
        return lf, "ok"

    def why(self, u: str, esc: bool = False) -> str:
        """Reason a URL is ("ok") or is not rewritten.

        Args:
            u: Input URL.
            esc: Input is HTML-attribute encoded.

        Returns:
            One of: ok, off, blank, not_local, wl_ext, bl_ext, wl_uri, bl_uri.
        """
        if esc:
            u = html.unescape(str(u or ""))
        return self._chk(u)[1]

    def _sch(self, sch: str | None) -> str:
        # same resolution as the host's set_url_scheme()
        if sch in ("http", "https", "relative"):
            return sch
        return "https" if self.cfg.is_ssl else "http"

    def rw_url(self, u: str, sch: str | None = None, esc: bool = False) -> str:
        """Rewrite a local file URL to the CDN host.

        Any rejection returns the original input unchanged.

        Args:
            u: Input URL/URI/query.
            sch: Explicit scheme (http, https, relative, admin, ...) or None.
            esc: Input is HTML-attribute encoded; output is encoded too.

        Returns:
            CDN URL or the original input.
        """
        if not self.on or not str(u or "").strip():
            return u
        ou = u
        if esc:
            u = html.unescape(u)
        lf, r = self._chk(u)
        if lf is None:
            log.debug("skip %s: %s", ou, r)
            return ou
        s = self._sch(sch or lf.scheme)
        c = self.cfg
        if s == "relative":
            out = lf.uri
        else:
            out = f"{s}://{c.cdn_host}{lf.uri}"
        if c.inv_var and c.inv_ctr:
            out = add_qv(out, c.inv_var, str(c.inv_ctr))
        return html.escape(out, quote=True) if esc else out

    def rw_cnt(self, s: str) -> str:
        """Rewrite href/src URLs inside HTML content.

        Args:
            s: HTML string.

        Returns:
            HTML with eligible attribute values rewritten, or the input
            unchanged on any scan failure.
        """
        if not self.on or not s or "<" not in s:
            return s
        if self.cfg.max_cnt and len(s) > self.cfg.max_cnt:
            log.warning("content too large to scan: %d chars", len(s))
            return s

        def _rp(m: re.Match[str]) -> str:
            t = m.group(0)
            a = _ATTR_RE.fullmatch(t)
            if a is None:
                return t
            g = list(a.groups())
            g[5] = self.rw_url(g[5], None, True)
            return "".join(g)

        try:
            out = _TAG_RE.sub(_rp, s)
        except (re.error, RecursionError) as e:
            log.warning("content scan failed: %s", e)
            return s
        return out or s
