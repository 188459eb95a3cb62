"""Options store and config builder."""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from .core import ADM_GL, DFL_EXTS, Cdn, CfgErr, RwCfg, cmp_gl

MS_GL = "/^/files/*"
S2M_GL = "*/s2member-files/*"


def dfl_opts() -> dict[str, Any]:
    """Default options.

    Returns:
        Dict with keys: enb, cdn_host, ssl, inv_var, inv_ctr,
        wl_ext, bl_ext, wl_uri, bl_uri.
    """
    return {
        "enb": False,
        "cdn_host": "",
        "ssl": False,
        "inv_var": "cdn_invalidate",
        "inv_ctr": 1,
        "wl_ext": "",
        "bl_ext": "eot|ttf|otf|woff",
        "wl_uri": "",
        "bl_uri": "",
    }


def spl_ext(v: Any) -> list[str]:
    """Split an extension list option.

    Args:
        v: String like "jpg|png, css" or a list of strings.

    Returns:
        Lowercase unique extensions (order kept).
    """
    if isinstance(v, (list, tuple, set, frozenset)):
        v = "|".join(map(str, v))
    s = str(v or "").lower().strip(" \t\r\n\0\x0b|;,")
    out: list[str] = []
    for x in re.split(r"[|;,\s]+", s):
        if x and x not in out:
            out.append(x)
    return out


def spl_uri(v: Any) -> list[str]:
    """Split a URI pattern option (one glob per line)."""
    if isinstance(v, (list, tuple)):
        v = "\n".join(map(str, v))
    s = str(v or "").strip().lower()
    return [x for x in re.split(r"[\r\n]+", s) if x]


def ld_cfg(p: Path | None) -> dict[str, Any]:
    """Load options JSON.

    Args:
        p: Path to options JSON or None.

    Returns:
        Defaults from dfl_opts updated with the file content.

    Raises:
        CfgErr: If options cannot be loaded or invalid.
    """
    d = dfl_opts()
    if p is None:
        return d
    try:
        x = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise CfgErr(f"cannot read cfg: {p}") from e
    except json.JSONDecodeError as e:
        raise CfgErr("cfg must be JSON") from e
    if not isinstance(x, dict):
        raise CfgErr("cfg root must be object")
    d.update(x)
    return d


def sv_cfg(p: Path, d: dict[str, Any]) -> None:
    """Save options JSON.

    Raises:
        CfgErr: On write errors.
    """
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(d, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")
    except OSError as e:
        raise CfgErr(f"cannot write cfg: {p}") from e


def mk_cfg(
    d: dict[str, Any],
    host: str,
    is_ssl: bool = False,
    ms: bool = False,
    ms_sub: bool = False,
    adm: bool = False,
    s2m: bool = False,
    max_cnt: int = RwCfg.max_cnt,
) -> RwCfg:
    """Build rewrite config from options and ambient flags.

    Args:
        d: Options dict (see dfl_opts).
        host: Local host name.
        is_ssl: Current request is over SSL.
        ms: Multisite install.
        ms_sub: Non-main site of a sub-domain multisite install.
        adm: Current request is in the admin area.
        s2m: Membership plugin with protected files is active.
        max_cnt: Max content length to scan.

    Returns:
        RwCfg snapshot.

    Raises:
        CfgErr: If inv_ctr is not an integer.
    """
    try:
        inv_ctr = int(d.get("inv_ctr") or 0)
    except (TypeError, ValueError) as e:
        raise CfgErr(f"bad inv_ctr: {d.get('inv_ctr')!r}") from e

    wl_ext = spl_ext(d.get("wl_ext")) or sorted(DFL_EXTS)
    bl_ext = spl_ext(d.get("bl_ext")) + ["php"]

    bl_uri = spl_uri(d.get("bl_uri")) + [ADM_GL]
    if ms:
        bl_uri.append(MS_GL)
    if s2m:
        bl_uri.append(S2M_GL)

    return RwCfg(
        host=str(host or "").strip().lower(),
        cdn_host=str(d.get("cdn_host") or "").strip().lower(),
        ssl=bool(d.get("ssl")),
        inv_var=str(d.get("inv_var") or ""),
        inv_ctr=inv_ctr,
        wl_ext=frozenset(wl_ext),
        bl_ext=frozenset(bl_ext),
        wl_uri=cmp_gl(spl_uri(d.get("wl_uri"))),
        bl_uri=cmp_gl(bl_uri),
        enb=bool(d.get("enb")),
        is_ssl=bool(is_ssl),
        ms_sub=bool(ms_sub),
        adm=bool(adm),
        max_cnt=int(max_cnt),
    )


def mk_cdn(d: dict[str, Any], host: str, **kw: Any) -> Cdn:
    """Build engine from options; see mk_cfg for kw."""
    return Cdn(mk_cfg(d, host, **kw))
