"""Módulo core: cliente de protocolo, motor de sincronización y transporte."""

from __future__ import annotations

from .base import (
    BrowserVersion,
    ConnectionState,
    CookieRecord,
    DEFAULT_CACHE_TTL,
    DEFAULT_DEBUG_URL,
)
from .errors import (
    BrowserConnectError,
    CallErrorKind,
    CDPHttpError,
    ChromeUnavailableError,
    ProtocolCallError,
)
from .protocol import ProtocolClient
from .sync import SyncEngine
from .transport import BrowserCookieTransport, new_client

__all__ = [
    # Tipos
    "BrowserVersion",
    "ConnectionState",
    "CookieRecord",
    "DEFAULT_CACHE_TTL",
    "DEFAULT_DEBUG_URL",

    # Errores
    "BrowserConnectError",
    "CallErrorKind",
    "CDPHttpError",
    "ChromeUnavailableError",
    "ProtocolCallError",

    # Componentes
    "ProtocolClient",
    "SyncEngine",
    "BrowserCookieTransport",
    "new_client",
]
