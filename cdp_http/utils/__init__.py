"""Módulo de utilidades para cdp-http."""

from __future__ import annotations

from .cookies import (
    build_cookies,
    cookie_header_for,
    filter_domain_cookies,
    format_cookie_header,
    get_cookie_by_name,
    merge_cookie_header,
    record_to_cookie,
)
from .commands import render_command, request_headers

__all__ = [
    "build_cookies",
    "cookie_header_for",
    "filter_domain_cookies",
    "format_cookie_header",
    "get_cookie_by_name",
    "merge_cookie_header",
    "record_to_cookie",
    "render_command",
    "request_headers",
]
