"""
Errores normalizados de cdp-http.

Los errores de conexión y de llamada nunca salen del motor de sincronización;
el único error que ve quien usa el cliente HTTP es ChromeUnavailableError.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class CallErrorKind(Enum):
    """Origen de un fallo en una llamada al protocolo."""

    ENCODE = "encode"    # no se pudo serializar la petición
    SEND = "send"        # fallo escribiendo en el websocket
    RECEIVE = "receive"  # conexión cerrada o rota leyendo la respuesta
    TIMEOUT = "timeout"  # la respuesta no llegó a tiempo
    DECODE = "decode"    # mensaje o resultado mal formado
    REMOTE = "remote"    # el navegador respondió con {code, message}


class CDPHttpError(Exception):
    """Base de todos los errores del paquete."""


class BrowserConnectError(CDPHttpError):
    """Fallo de descubrimiento, DNS, socket o handshake con el navegador."""

    def __init__(self, endpoint: str, message: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"no se pudo conectar a {endpoint}: {message}")


class ProtocolCallError(CDPHttpError):
    """Fallo de una llamada individual al protocolo de depuración."""

    def __init__(
        self,
        kind: CallErrorKind,
        method: str,
        message: str = "",
        *,
        code: Optional[int] = None,
        remote_message: Optional[str] = None,
    ) -> None:
        self.kind = kind
        self.method = method
        self.code = code
        self.remote_message = remote_message
        if kind is CallErrorKind.REMOTE:
            message = message or f"CDP error {code}: {remote_message}"
        super().__init__(f"{method}: {message or kind.value}")


class ChromeUnavailableError(CDPHttpError):
    """El navegador no está disponible y la caché de cookies expiró."""

    def __init__(self, message: str = "chrome unavailable and cache expired") -> None:
        super().__init__(message)
