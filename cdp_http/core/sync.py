"""
Motor de sincronización de cookies con el navegador.

Decide cuándo hablar con el navegador, tolera su indisponibilidad mientras la
caché sigue dentro de su TTL y publica las cookies nuevas de forma atómica:
cada refresco construye un contenedor nuevo y lo sustituye en una sola
asignación, así ninguna petición ve un refresco a medias.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol, Sequence, Tuple

import httpx

from ..config import ClientSettings
from ..utils.cookies import build_cookies
from .base import ConnectionState, CookieRecord
from .errors import BrowserConnectError, ChromeUnavailableError, ProtocolCallError
from .protocol import ProtocolClient

logger = logging.getLogger(__name__)


class BrowserClient(Protocol):
    """Interfaz del cliente de protocolo que usa el motor."""

    closed: bool

    async def fetch_cookies(self) -> Sequence[CookieRecord]:
        ...

    async def fetch_user_agent(self) -> str:
        ...

    async def close(self) -> None:
        ...


Connector = Callable[[], Awaitable[BrowserClient]]


class SyncEngine:
    """
    Mantiene la conexión con el navegador y la caché de cookies/identidad.

    Parameters
    ----------
    settings : Optional[ClientSettings]
        Endpoint, TTL y timeouts. Por defecto ``ClientSettings()``.
    connector : Optional[Connector]
        Fábrica asíncrona de clientes conectados; por defecto
        ``ProtocolClient.connect`` con ``settings``.
    clock : Callable[[], float]
        Reloj monótono en segundos usado para el TTL.
    """

    # Reconexiones tras un fallo de fetch antes de recurrir a la caché
    MAX_RECONNECTS = 1

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        connector: Optional[Connector] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or ClientSettings()
        self._connector = connector or self._default_connector
        self._clock = clock

        self._state_lock = asyncio.Lock()
        # Refresco en curso; todos los llamadores concurrentes esperan el mismo
        self._inflight: Optional[asyncio.Task[None]] = None
        self._client: Optional[BrowserClient] = None
        self._state = ConnectionState.DISCONNECTED

        self._cookies = httpx.Cookies()
        self._records: Tuple[CookieRecord, ...] = ()
        self._user_agent = ""
        self._last_refresh: Optional[float] = None
        self._last_refresh_at: Optional[datetime] = None

        self.stats: Dict[str, int] = {
            "refreshes": 0,
            "fetch_attempts": 0,
            "fetch_failures": 0,
            "connect_failures": 0,
            "cache_fallbacks": 0,
        }

    async def _default_connector(self) -> BrowserClient:
        return await ProtocolClient.connect(
            self._settings.debug_url,
            connect_timeout=self._settings.connect_timeout,
            call_timeout=self._settings.call_timeout,
            max_message_size=self._settings.max_message_size,
        )

    async def __aenter__(self) -> "SyncEngine":
        return self

    async def __aexit__(self, *_: Any) -> None:
        await self.close()

    @property
    def settings(self) -> ClientSettings:
        return self._settings

    @property
    def state(self) -> ConnectionState:
        """Estado actual de la conexión."""
        return self._state

    @property
    def user_agent(self) -> str:
        """User agent del navegador; vacío si nunca se conectó."""
        return self._user_agent

    @property
    def cookies(self) -> httpx.Cookies:
        """Contenedor vigente; se reemplaza entero en cada refresco."""
        return self._cookies

    @property
    def records(self) -> Tuple[CookieRecord, ...]:
        """Cookies del último refresco exitoso."""
        return self._records

    @property
    def last_refresh_at(self) -> Optional[datetime]:
        """Momento (UTC) del último refresco exitoso."""
        return self._last_refresh_at

    def cache_valid(self) -> bool:
        """True si el último refresco exitoso tiene menos de ``cache_ttl`` segundos."""
        if self._last_refresh is None:
            return False
        return self._clock() - self._last_refresh < self._settings.cache_ttl

    async def _ensure_connection(self) -> BrowserClient:
        async with self._state_lock:
            if self._client is not None:
                if not self._client.closed:
                    return self._client
                # El navegador cerró el websocket por su cuenta
                await self._client.close()
                self._client = None
            self._state = ConnectionState.CONNECTING
            try:
                self._client = await self._connector()
            except BrowserConnectError:
                self._state = ConnectionState.DISCONNECTED
                raise
            self._state = ConnectionState.CONNECTED
            return self._client

    async def _disconnect(self) -> None:
        async with self._state_lock:
            client, self._client = self._client, None
            self._state = ConnectionState.DISCONNECTED
            if client is not None:
                await client.close()

    async def ensure_fresh(self, *, force: bool = False) -> None:
        """
        Garantiza cookies frescas, refrescándolas desde el navegador si hace falta.

        Parameters
        ----------
        force : bool
            Refrescar aunque la caché siga vigente.

        Las llamadas concurrentes comparten un único refresco: quien llega
        mientras hay uno en curso espera su resultado (o su error) en vez de
        hablar de nuevo con el navegador, aunque pida ``force``.

        Raises
        ------
        ChromeUnavailableError
            Si el navegador no responde y la caché expiró. ``__cause__`` es
            el último error de conexión o de llamada.
        """
        task = self._inflight
        if task is None:
            if not force and self.cache_valid():
                return
            task = asyncio.ensure_future(self._refresh())
            task.add_done_callback(self._refresh_done)
            self._inflight = task
        # shield: cancelar a un llamador no cancela el refresco de los demás
        await asyncio.shield(task)

    def _refresh_done(self, task: "asyncio.Task[None]") -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled():
            # Marca la excepción como recuperada aunque nadie siga esperando
            task.exception()

    async def _refresh(self) -> None:
        last_error: Optional[Exception] = None
        for attempt in range(1 + self.MAX_RECONNECTS):
            try:
                client = await self._ensure_connection()
            except BrowserConnectError as err:
                self.stats["connect_failures"] += 1
                logger.warning(f"No se pudo conectar al navegador: {err}")
                last_error = err
                break

            self.stats["fetch_attempts"] += 1
            try:
                records = await client.fetch_cookies()
            except ProtocolCallError as err:
                # La conexión puede estar rota: se descarta y se reintenta
                self.stats["fetch_failures"] += 1
                logger.warning(f"Fallo obteniendo cookies (intento {attempt + 1}): {err}")
                last_error = err
                await self._disconnect()
                continue

            await self._record_user_agent(client)
            self._publish(records)
            return

        if self.cache_valid():
            self.stats["cache_fallbacks"] += 1
            logger.info("Navegador no disponible, usando cookies en caché")
            return
        raise ChromeUnavailableError() from last_error

    async def _record_user_agent(self, client: BrowserClient) -> None:
        # La identidad se obtiene una sola vez
        if self._user_agent:
            return
        try:
            user_agent = await client.fetch_user_agent()
        except ProtocolCallError as err:
            logger.warning(f"No se pudo obtener el user agent: {err}")
            return
        self._user_agent = user_agent
        logger.info(f"User agent del navegador: {user_agent}")

    def _publish(self, records: Sequence[CookieRecord]) -> None:
        records = tuple(records)
        cookies = build_cookies(records)
        # Sustitución atómica: los lectores ven el contenedor viejo o el nuevo
        self._cookies = cookies
        self._records = records
        self._last_refresh = self._clock()
        self._last_refresh_at = datetime.now(timezone.utc)
        self.stats["refreshes"] += 1
        logger.info(f"Cookies sincronizadas desde el navegador: {len(records)}")

    async def close(self) -> None:
        """Cierra la conexión con el navegador. Idempotente."""
        await self._disconnect()
