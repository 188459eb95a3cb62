import re
import time

import pytest

from cdnlite.core import Cdn, LcF, RwCfg, add_qv, cmp_gl, ext


def mk(**kw):
    d = dict(
        host="example.com",
        cdn_host="cdn.example.com",
        wl_ext=frozenset({"jpg", "css"}),
        bl_ext=frozenset({"php"}),
        inv_var="v",
        inv_ctr=7,
    )
    d.update(kw)
    return Cdn(RwCfg(**d))


def test_example_rw_url():
    c = mk()
    assert c.rw_url("http://example.com/img/a.jpg") == "http://cdn.example.com/img/a.jpg?v=7"
    assert c.rw_url("http://example.com/x.php") == "http://example.com/x.php"
    assert c.rw_url("http://example.com/dir/") == "http://example.com/dir/"
    assert c.rw_url("http://other.com/a.jpg") == "http://other.com/a.jpg"


def test_example_rw_cnt():
    c = mk()
    s = '<img src="http://example.com/a.jpg">'
    assert c.rw_cnt(s) == '<img src="http://cdn.example.com/a.jpg?v=7">'


@pytest.mark.parametrize(
    "u,exp",
    [
        ("http://example.com/a/b.JPG?x=1#f", LcF("http", "jpg", "/a/b.JPG?x=1#f")),
        ("/a/b.css", LcF(None, "css", "/a/b.css")),
        ("//EXAMPLE.com/a.css", LcF(None, "css", "/a.css")),
        ("HTTPS://example.com:8443/a.css", LcF("https", "css", "/a.css")),
        ("http://example.com/a.css?", LcF("http", "css", "/a.css")),
    ],
)
def test_lcf_ok(u, exp):
    assert mk().lcf(u) == exp


@pytest.mark.parametrize(
    "u",
    [
        "",
        "   ",
        "http://other.com/a.jpg",
        "//other.com/a.jpg",
        "a/b.jpg",
        "example.com/a.jpg",
        "http://example.com",
        "http://example.com/dir/",
        "/a/../b.jpg",
        "/a/./b.jpg",
        "/file..txt",
        "/a/noext",
        "/a.b/noext",
        "/a/trail.",
        "http://[::1/a.jpg",
    ],
)
def test_lcf_none(u):
    assert mk().lcf(u) is None


def test_ext():
    assert ext("/a/b.tar.GZ") == "gz"
    assert ext("/a.d/b") == ""
    assert ext("/.htaccess") == "htaccess"
    assert ext("") == ""


def test_cmp_gl_basic():
    m = cmp_gl(["wp-content/*", "/^/files/*", "WP-CONTENT/*", ""])
    assert m is not None
    assert m.pattern.count("|") == 1
    assert m.search("/wp-content/up/a.jpg")
    assert m.search("/Site/files/a.jpg")
    assert m.search("/x/y/files/a.jpg")


def test_cmp_gl_seg_wildcard():
    m = cmp_gl(["/^/img.jpg"])
    assert m.search("/a/img.jpg")
    assert not m.search("/img.jpg")


def test_cmp_gl_escapes_meta():
    m = cmp_gl(["/a+b/(c).css"])
    assert m.search("/a+b/(c).css")
    assert not m.search("/aab/c.css")


def test_cmp_gl_empty():
    assert cmp_gl([]) is None
    assert cmp_gl(["", ""]) is None


def test_ext_not_whitelisted():
    c = mk()
    assert c.rw_url("/a.png") == "/a.png"
    c2 = mk(wl_ext=frozenset({"jpg", "css", "png"}))
    assert c2.rw_url("/a.png") == "http://cdn.example.com/a.png?v=7"


def test_php_never_rewritten():
    c = mk(wl_ext=frozenset({"php", "jpg"}), bl_ext=frozenset({"php"}))
    assert c.rw_url("/index.php") == "/index.php"
    assert c.why("/index.php") == "bl_ext"


def test_uri_whitelist_and_blacklist():
    c = mk(wl_uri=cmp_gl(["/wp-content/*"]), bl_uri=cmp_gl(["/wp-admin/*", "*/private/*"]))
    assert c.rw_url("/wp-content/a.jpg").startswith("http://cdn.example.com/")
    assert c.rw_url("/other/a.jpg") == "/other/a.jpg"
    assert c.why("/other/a.jpg") == "wl_uri"
    assert c.rw_url("/wp-content/x/private/a.jpg") == "/wp-content/x/private/a.jpg"
    assert c.why("/wp-content/x/private/a.jpg") == "bl_uri"


def test_default_admin_blacklist():
    c = Cdn(RwCfg(host="example.com", cdn_host="cdn.example.com"))
    assert c.rw_url("/wp-admin/css/a.css") == "/wp-admin/css/a.css"
    assert c.rw_url("/blog/wp-admin/a.css") == "/blog/wp-admin/a.css"
    assert c.rw_url("/wp-content/a.css") == "http://cdn.example.com/wp-content/a.css"


def test_cdn_host_not_rewritten_again():
    c = mk()
    u = c.rw_url("http://example.com/a.jpg")
    assert c.rw_url(u) == u


def test_inv_param_once():
    c = mk()
    out = c.rw_url("/a.jpg?v=1&x=2#top")
    assert out == "http://cdn.example.com/a.jpg?x=2&v=7#top"
    assert out.count("v=") == 1


@pytest.mark.parametrize("kw", [{"inv_ctr": 0}, {"inv_var": ""}])
def test_inv_param_off(kw):
    assert mk(**kw).rw_url("/a.jpg") == "http://cdn.example.com/a.jpg"


def test_add_qv():
    assert add_qv("http://h/a", "v", "1") == "http://h/a?v=1"
    assert add_qv("http://h/a?b=2", "v", "1") == "http://h/a?b=2&v=1"
    assert add_qv("http://h/a?v=0&vv=3", "v", "1") == "http://h/a?vv=3&v=1"


@pytest.mark.parametrize(
    "sch,is_ssl,exp",
    [
        (None, False, "http://cdn.example.com/a.jpg"),
        (None, True, "https://cdn.example.com/a.jpg"),
        ("https", False, "https://cdn.example.com/a.jpg"),
        ("http", True, "http://cdn.example.com/a.jpg"),
        ("admin", True, "https://cdn.example.com/a.jpg"),
        ("relative", False, "/a.jpg"),
    ],
)
def test_scheme(sch, is_ssl, exp):
    c = mk(inv_ctr=0, ssl=True, is_ssl=is_ssl)
    assert c.rw_url("//example.com/a.jpg", sch) == exp


def test_scheme_from_input():
    c = mk(inv_ctr=0, ssl=True, is_ssl=False)
    assert c.rw_url("https://example.com/a.jpg") == "https://cdn.example.com/a.jpg"
    assert c.rw_url("ftp://example.com/a.jpg") == "http://cdn.example.com/a.jpg"


@pytest.mark.parametrize(
    "kw",
    [
        {"host": ""},
        {"cdn_host": ""},
        {"enb": False},
        {"ssl": False, "is_ssl": True},
        {"ms_sub": True},
        {"adm": True},
    ],
)
def test_inactive(kw):
    c = mk(**kw)
    assert c.on is False
    assert c.rw_url("/a.jpg") == "/a.jpg"
    assert c.rw_cnt('<img src="/a.jpg">') == '<img src="/a.jpg">'
    assert c.why("/a.jpg") == "off"


def test_ssl_allowed():
    assert mk(ssl=True, is_ssl=True).on is True


def test_blank_passthrough():
    c = mk()
    assert c.rw_url("") == ""
    assert c.rw_url("  ") == "  "


def test_esc_roundtrip_attr():
    c = mk()
    out = c.rw_url("/a.jpg?x=1&amp;y=2", None, True)
    assert out == "http://cdn.example.com/a.jpg?x=1&amp;y=2&amp;v=7"
    assert c.rw_url("/a.txt?x=1&amp;y=2", None, True) == "/a.txt?x=1&amp;y=2"


def test_rw_cnt_attrs():
    c = mk(inv_ctr=0)
    s = (
        "<p>hi</p>\n"
        "<LINK rel='stylesheet' HREF='/s.css' media=\"all\">\n"
        '<a class="x" href = "http://other.com/a.jpg">o</a>\n'
        '<img data-x="1" src="/dir/" alt="d">'
    )
    exp = (
        "<p>hi</p>\n"
        "<LINK rel='stylesheet' HREF='http://cdn.example.com/s.css' media=\"all\">\n"
        '<a class="x" href = "http://other.com/a.jpg">o</a>\n'
        '<img data-x="1" src="/dir/" alt="d">'
    )
    assert c.rw_cnt(s) == exp


def test_rw_cnt_noop():
    c = mk()
    assert c.rw_cnt("") == ""
    assert c.rw_cnt("no tags /a.jpg") == "no tags /a.jpg"


def test_rw_cnt_size_cap():
    c = mk(max_cnt=10)
    s = '<img src="/a.jpg">'
    assert c.rw_cnt(s) == s


def test_rw_cnt_regex_error(monkeypatch):
    c = mk()

    class Boom:
        def sub(self, *a, **kw):
            raise re.error("boom")

    monkeypatch.setattr("cdnlite.core._TAG_RE", Boom())
    s = '<img src="/a.jpg">'
    assert c.rw_cnt(s) == s


@pytest.mark.parametrize(
    "s",
    [
        "<a " * 20000,
        "<" + "a" * 60000,
        "<a" + ' href="x"' * 20000,
        "<a" + ' href="x"' * 20000 + ">",
        "<img " + "x" * 60000 + ">",
    ],
)
def test_rw_cnt_linear(s):
    c = mk()
    t0 = time.perf_counter()
    assert c.rw_cnt(s) == s
    assert time.perf_counter() - t0 < 1.0


def test_rw_cnt_lt_in_attr():
    c = mk(inv_ctr=0)
    s = '<img alt="a<b" src="/a.jpg">'
    assert c.rw_cnt(s) == '<img alt="a<b" src="http://cdn.example.com/a.jpg">'
    assert c.rw_cnt('<img src="/a.jpg"><b>') == '<img src="http://cdn.example.com/a.jpg"><b>'


def test_why():
    c = mk()
    assert c.why("/a.jpg") == "ok"
    assert c.why("") == "blank"
    assert c.why("http://other.com/a.jpg") == "not_local"
    assert c.why("/a.png") == "wl_ext"
    assert c.why("/a.jpg?x=1&amp;y=2", esc=True) == "ok"
