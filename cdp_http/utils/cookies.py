"""Utilidades para manejo de cookies."""

from __future__ import annotations

import urllib.request
from http.cookiejar import Cookie, CookieJar
from typing import Iterable, Optional, Union

import httpx

from ..core.base import CookieRecord


def format_cookie_header(cookies: Iterable[CookieRecord]) -> str:
    """
    Formatea cookies para un header Cookie HTTP.

    Parameters
    ----------
    cookies : Iterable[CookieRecord]
        Cookies a incluir, en orden.

    Returns
    -------
    str
        String con formato 'name=value; name2=value2'.
    """
    return "; ".join(f"{cookie.name}={cookie.value}" for cookie in cookies)


def filter_domain_cookies(cookies: Iterable[CookieRecord], domain: str) -> list[CookieRecord]:
    """
    Filtra cookies por dominio específico.

    Una cookie pertenece al dominio si su dominio (sin el punto inicial)
    es el dominio dado o uno de sus subdominios.
    """
    domain = domain.lstrip(".").lower()
    result = []
    for cookie in cookies:
        cookie_domain = cookie.domain.lstrip(".").lower()
        if cookie_domain == domain or cookie_domain.endswith("." + domain):
            result.append(cookie)
    return result


def get_cookie_by_name(cookies: Iterable[CookieRecord], name: str) -> CookieRecord | None:
    """Busca una cookie por nombre; None si no existe."""
    for cookie in cookies:
        if cookie.name == name:
            return cookie
    return None


def record_to_cookie(record: CookieRecord) -> Cookie:
    """
    Convierte una cookie del navegador en una ``http.cookiejar.Cookie``.

    Conserva dominio, path y los flags secure/http-only. Un dominio con
    punto inicial es una cookie de dominio; sin él, una cookie de host.
    """
    domain_cookie = record.domain.startswith(".")
    expires = None if record.is_session else int(record.expires)
    rest = {"HttpOnly": None} if record.http_only else {}
    return Cookie(
        version=0,
        name=record.name,
        value=record.value,
        port=None,
        port_specified=False,
        domain=record.domain,
        domain_specified=domain_cookie,
        domain_initial_dot=domain_cookie,
        path=record.path or "/",
        path_specified=True,
        secure=record.secure,
        expires=expires,
        discard=expires is None,
        comment=None,
        comment_url=None,
        rest=rest,
    )


def build_cookies(records: Iterable[CookieRecord]) -> httpx.Cookies:
    """Construye un contenedor nuevo indexado por (dominio, path, nombre)."""
    cookies = httpx.Cookies()
    for record in records:
        cookies.jar.set_cookie(record_to_cookie(record))
    return cookies


def cookie_header_for(cookies: Union[httpx.Cookies, CookieJar], url: str) -> Optional[str]:
    """
    Calcula el header Cookie que corresponde a ``url``.

    Aplica las reglas de ``http.cookiejar`` (dominio, path, secure y
    expiración). Devuelve None si ninguna cookie aplica.
    """
    jar = cookies.jar if isinstance(cookies, httpx.Cookies) else cookies
    request = urllib.request.Request(url)
    jar.add_cookie_header(request)
    return request.get_header("Cookie")


def merge_cookie_header(existing: Optional[str], extra: Optional[str]) -> Optional[str]:
    """
    Une dos headers Cookie; los nombres ya presentes en ``existing`` ganan.
    """
    if not extra:
        return existing
    if not existing:
        return extra

    present = {
        pair.split("=", 1)[0].strip()
        for pair in existing.split(";")
        if pair.strip()
    }
    additions = [
        pair.strip()
        for pair in extra.split(";")
        if pair.strip() and pair.split("=", 1)[0].strip() not in present
    ]
    if not additions:
        return existing
    return "; ".join([existing.rstrip("; ")] + additions)
