"""Tests for cookie helpers."""

import httpx

from cdp_http.core.base import CookieRecord
from cdp_http.utils.cookies import (
    build_cookies,
    cookie_header_for,
    filter_domain_cookies,
    format_cookie_header,
    get_cookie_by_name,
    merge_cookie_header,
    record_to_cookie,
)

RECORDS = [
    CookieRecord(name="y", value="b", domain="httpbin.org", secure=True),
    CookieRecord(name="sid", value="1", domain=".example.com", path="/app", http_only=True),
    CookieRecord(name="pref", value="dark", domain="www.example.com", expires=1893456000),
]


def test_record_aliases():
    record = CookieRecord.model_validate(
        {"name": "a", "value": "b", "httpOnly": True, "sourcePort": 443, "sameParty": False}
    )
    assert record.http_only
    assert record.source_port == 443
    assert record.is_session


def test_format_cookie_header():
    assert format_cookie_header(RECORDS) == "y=b; sid=1; pref=dark"
    assert format_cookie_header([]) == ""


def test_filter_domain_cookies():
    names = [c.name for c in filter_domain_cookies(RECORDS, "example.com")]
    assert names == ["sid", "pref"]
    assert [c.name for c in filter_domain_cookies(RECORDS, ".httpbin.org")] == ["y"]
    assert filter_domain_cookies(RECORDS, "ample.com") == []


def test_get_cookie_by_name():
    assert get_cookie_by_name(RECORDS, "sid").value == "1"
    assert get_cookie_by_name(RECORDS, "missing") is None


def test_record_to_cookie():
    host_cookie = record_to_cookie(RECORDS[0])
    assert host_cookie.domain == "httpbin.org"
    assert not host_cookie.domain_specified
    assert host_cookie.secure
    assert host_cookie.expires is None

    domain_cookie = record_to_cookie(RECORDS[1])
    assert domain_cookie.domain_specified and domain_cookie.domain_initial_dot
    assert domain_cookie.has_nonstandard_attr("HttpOnly")
    assert domain_cookie.path == "/app"

    persistent = record_to_cookie(RECORDS[2])
    assert persistent.expires == 1893456000
    assert not persistent.discard


def test_build_cookies_indexes_by_domain_path_name():
    cookies = build_cookies(RECORDS)
    assert isinstance(cookies, httpx.Cookies)
    keys = {(c.domain, c.path, c.name) for c in cookies.jar}
    assert keys == {
        ("httpbin.org", "/", "y"),
        (".example.com", "/app", "sid"),
        ("www.example.com", "/", "pref"),
    }


def test_cookie_header_for_url():
    cookies = build_cookies(RECORDS)
    assert cookie_header_for(cookies, "https://httpbin.org/anything") == "y=b"
    assert cookie_header_for(cookies, "http://httpbin.org/anything") is None
    assert cookie_header_for(cookies, "https://www.example.com/app/x") == "sid=1; pref=dark"
    assert cookie_header_for(cookies, "https://www.example.com/") == "pref=dark"
    assert cookie_header_for(cookies.jar, "https://api.example.com/app") == "sid=1"


def test_merge_cookie_header():
    assert merge_cookie_header(None, "a=1") == "a=1"
    assert merge_cookie_header("a=1", None) == "a=1"
    assert merge_cookie_header("a=mine", "a=1; b=2") == "a=mine; b=2"
    assert merge_cookie_header("a=mine", "a=1") == "a=mine"

