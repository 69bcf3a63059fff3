"""
Tipos base compartidos por el cliente de protocolo y el motor de sincronización.

Define los registros que devuelve el navegador (cookies y versión) y los
estados de la conexión con el endpoint de depuración.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_DEBUG_URL = "ws://localhost:9222"
DEFAULT_CACHE_TTL = 300.0
DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_CALL_TIMEOUT = 10.0
# Las respuestas de Storage.getCookies pueden pesar varios MB
DEFAULT_MAX_MESSAGE_SIZE = 10 * 1024 * 1024


class ConnectionState(Enum):
    """Estados de la conexión con el navegador."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class CookieRecord(BaseModel):
    """
    Cookie tal como la reporta el navegador.

    Ver https://chromedevtools.github.io/devtools-protocol/tot/Network#type-Cookie

    Los campos ausentes toman valores neutros; los atributos de partición y
    SameSite se ignoran.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    name: str
    value: str = ""
    domain: str = ""
    path: str = "/"
    expires: float = Field(0.0, description="Segundos desde epoch; <= 0 es cookie de sesión")
    size: int = 0
    http_only: bool = Field(False, alias="httpOnly")
    secure: bool = False
    session: bool = False
    source_port: int = Field(-1, alias="sourcePort")

    @property
    def is_session(self) -> bool:
        """True si la cookie no tiene expiración propia."""
        return self.session or self.expires <= 0


class BrowserVersion(BaseModel):
    """Respuesta de Browser.getVersion."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    protocol_version: str = Field("", alias="protocolVersion")
    product: str = ""
    revision: str = ""
    user_agent: str = Field("", alias="userAgent")
    js_version: str = Field("", alias="jsVersion")
