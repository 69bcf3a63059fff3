"""
Descubrimiento del websocket de depuración de Chrome.

El navegador construye ``webSocketDebuggerUrl`` a partir de la cabecera Host
de la petición a ``/json/version`` y rechaza hosts que no sean IPs o
``localhost``, por eso el host se normaliza a una IP antes de consultarlo.
"""

from __future__ import annotations

import asyncio
import ipaddress
import logging
import socket
from urllib.parse import urlsplit, urlunsplit

import httpx

from .base import DEFAULT_CONNECT_TIMEOUT
from .errors import BrowserConnectError

logger = logging.getLogger(__name__)

BROWSER_SESSION_PATH = "/devtools/browser/"
VERSION_PATH = "/json/version"


async def resolve_host(host: str) -> str:
    """
    Resuelve un nombre de host a una dirección IP.

    ``localhost`` y las IPs literales se devuelven tal cual.

    Raises
    ------
    OSError
        Si la resolución DNS falla.
    """
    if host == "localhost":
        return host
    try:
        ipaddress.ip_address(host)
        return host
    except ValueError:
        pass

    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(host, None, type=socket.SOCK_STREAM)
    if not infos:
        raise OSError(f"sin direcciones para {host}")
    return infos[0][4][0]


def _join_host_port(host: str, port: int) -> str:
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


async def _normalize(url: str) -> tuple[str, str, str, str, str]:
    parts = urlsplit(url)
    try:
        port = parts.port
    except ValueError as err:
        raise BrowserConnectError(url, f"puerto inválido: {err}") from err
    if not parts.hostname or port is None:
        raise BrowserConnectError(url, "el endpoint debe incluir host y puerto")
    try:
        host = await resolve_host(parts.hostname)
    except OSError as err:
        raise BrowserConnectError(url, f"no se pudo resolver {parts.hostname}: {err}") from err
    return parts.scheme, _join_host_port(host, port), parts.path, parts.query, parts.fragment


async def force_ip(url: str) -> str:
    """Reescribe el host de ``url`` con su IP, conservando el resto."""
    scheme, netloc, path, query, fragment = await _normalize(url)
    return urlunsplit((scheme, netloc, path, query, fragment))


async def get_websocket_url(endpoint: str, *, timeout: float = DEFAULT_CONNECT_TIMEOUT) -> str:
    """
    Obtiene la URL del websocket del navegador para un endpoint de depuración.

    Si ``endpoint`` ya apunta a una sesión (``/devtools/browser/...``) solo se
    normaliza el host; en otro caso se consulta ``http://host:port/json/version``.

    Parameters
    ----------
    endpoint : str
        Endpoint configurado (``ws://``, ``http://`` o URL directa de sesión).
    timeout : float
        Timeout total del descubrimiento en segundos.

    Returns
    -------
    str
        Valor de ``webSocketDebuggerUrl``.

    Raises
    ------
    BrowserConnectError
        Si el endpoint es inválido o el descubrimiento falla.
    """
    if BROWSER_SESSION_PATH in endpoint:
        return await force_ip(endpoint)

    _, netloc, _, _, _ = await _normalize(endpoint)
    version_url = urlunsplit(("http", netloc, VERSION_PATH, "", ""))
    logger.debug(f"Consultando {version_url}")

    try:
        async with httpx.AsyncClient(timeout=timeout, trust_env=False) as client:
            response = await client.get(version_url)
            response.raise_for_status()
            payload = response.json()
    except httpx.HTTPError as err:
        raise BrowserConnectError(endpoint, f"fallo consultando {version_url}: {err}") from err
    except ValueError as err:
        raise BrowserConnectError(endpoint, f"respuesta de {version_url} no es JSON: {err}") from err

    ws_url = payload.get("webSocketDebuggerUrl") if isinstance(payload, dict) else None
    if not isinstance(ws_url, str) or not ws_url:
        raise BrowserConnectError(endpoint, "webSocketDebuggerUrl not found in response")
    return ws_url
