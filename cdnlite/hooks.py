"""Host filter hooks.

Maps host insertion points (filter names) to engine calls, so a host
can register ``hks(cdn)`` callbacks or dispatch through ``flt``.
"""

from __future__ import annotations

from typing import Any, Callable

from .core import Cdn, CdnErr

# (url, path, scheme, blog_id)
SCH_HKS = ("home_url", "site_url", "network_home_url", "network_site_url")
URL_HKS = (
    "content_url",
    "plugins_url",
    "wp_get_attachment_url",
    "script_loader_src",
    "style_loader_src",
)
CNT_HKS = ("the_content", "get_the_excerpt", "widget_text")


class HkErr(CdnErr):
    """Raised for an unknown hook name."""


def url_flt(cdn: Cdn, url: str, path: str = "", sch: str | None = None, blog_id: Any = None) -> str:
    """URL filter callback; path and blog_id are accepted and ignored."""
    return cdn.rw_url(url, sch)


def flt(cdn: Cdn, hk: str, v: str, *a: Any) -> str:
    """Run hook ``hk`` on value ``v``.

    Args:
        cdn: Engine.
        hk: Hook name.
        v: Filtered value (URL or HTML).
        a: Extra hook args, as the host passes them.

    Returns:
        Filtered value.

    Raises:
        HkErr: If hook name is unknown.
    """
    if hk in SCH_HKS:
        return url_flt(cdn, v, *a[:3])
    if hk in URL_HKS:
        return cdn.rw_url(v)
    if hk in CNT_HKS:
        return cdn.rw_cnt(v)
    raise HkErr(f"bad hook: {hk!r}")


def hks(cdn: Cdn) -> dict[str, Callable[..., str]]:
    """Callbacks keyed by hook name."""
    out: dict[str, Callable[..., str]] = {}
    for h in SCH_HKS + URL_HKS + CNT_HKS:
        out[h] = lambda v, *a, _h=h: flt(cdn, _h, v, *a)
    return out
