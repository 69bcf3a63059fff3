"""
cdp-http: cliente HTTP que toma prestada la sesión de un Chrome en ejecución.

Obtiene las cookies y el user agent del navegador a través de su puerto de
depuración remota (CDP) y los inyecta en las peticiones de un
``httpx.AsyncClient``, sin usar el navegador para renderizar.
"""

from __future__ import annotations

from .core import (
    # Tipos
    BrowserVersion,
    ConnectionState,
    CookieRecord,

    # Errores
    BrowserConnectError,
    CallErrorKind,
    CDPHttpError,
    ChromeUnavailableError,
    ProtocolCallError,

    # Componentes
    BrowserCookieTransport,
    ProtocolClient,
    SyncEngine,
    new_client,
)
from .config import ClientSettings
from .utils.cookies import format_cookie_header
from .utils.commands import render_command

__version__ = "1.0.0"
__author__ = "cdp-http Team"

__all__ = [
    # Tipos
    "BrowserVersion",
    "ConnectionState",
    "CookieRecord",

    # Errores
    "BrowserConnectError",
    "CallErrorKind",
    "CDPHttpError",
    "ChromeUnavailableError",
    "ProtocolCallError",

    # Componentes
    "BrowserCookieTransport",
    "ProtocolClient",
    "SyncEngine",
    "new_client",
    "ClientSettings",

    # Utilidades
    "format_cookie_header",
    "render_command",
]
