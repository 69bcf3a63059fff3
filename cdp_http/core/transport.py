"""
Transporte httpx que toma prestadas las cookies y el user agent del navegador.

Antes de enviar cada petición pide al motor cookies vigentes (el motor
comparte un solo refresco en vuelo entre todas las peticiones), inyecta el
user agent del navegador y las cookies que corresponden a la URL, y delega el
envío al transporte real.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from ..config import ClientSettings
from ..utils.cookies import cookie_header_for, merge_cookie_header
from .sync import SyncEngine

logger = logging.getLogger(__name__)


class BrowserCookieTransport(httpx.AsyncBaseTransport):
    """
    Adaptador entre ``httpx.AsyncClient`` y el motor de sincronización.

    Parameters
    ----------
    engine : SyncEngine
        Motor que mantiene cookies e identidad.
    transport : Optional[httpx.AsyncBaseTransport]
        Transporte que realmente envía las peticiones.
    """

    def __init__(
        self,
        engine: SyncEngine,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._engine = engine
        self._transport = transport or httpx.AsyncHTTPTransport()

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        # ChromeUnavailableError se propaga sin enviar la petición
        await self._engine.ensure_fresh()

        user_agent = self._engine.user_agent
        if user_agent:
            request.headers["User-Agent"] = user_agent

        cookie_header = merge_cookie_header(
            request.headers.get("Cookie"),
            cookie_header_for(self._engine.cookies, str(request.url)),
        )
        if cookie_header:
            request.headers["Cookie"] = cookie_header

        logger.debug(f"{request.method} {request.url}")
        return await self._transport.handle_async_request(request)

    async def aclose(self) -> None:
        await self._transport.aclose()
        await self._engine.close()


def new_client(
    debug_url: Optional[str] = None,
    *,
    cache_ttl: Optional[float] = None,
    settings: Optional[ClientSettings] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    engine: Optional[SyncEngine] = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """
    Crea un ``httpx.AsyncClient`` que inyecta las cookies de Chrome.

    Nunca falla ni hace I/O: la conexión con el navegador se abre en la
    primera petición, y los errores solo aparecen si Chrome no está
    disponible y la caché expiró.

    Parameters
    ----------
    debug_url : Optional[str]
        Endpoint de depuración; por defecto ``ws://localhost:9222``.
    cache_ttl : Optional[float]
        TTL de la caché en segundos; por defecto 5 minutos.
    settings : Optional[ClientSettings]
        Configuración completa; ``debug_url`` y ``cache_ttl`` la sobrescriben.
    transport : Optional[httpx.AsyncBaseTransport]
        Transporte subyacente para el envío real.
    engine : Optional[SyncEngine]
        Motor ya construido; si se da, se ignoran los parámetros de conexión.
    **client_kwargs
        Argumentos extra para ``httpx.AsyncClient``.
    """
    if engine is None:
        settings = settings or ClientSettings()
        overrides = {"debug_url": debug_url, "cache_ttl": cache_ttl}
        overrides = {key: value for key, value in overrides.items() if value is not None}
        if overrides:
            settings = ClientSettings.model_validate({**settings.model_dump(), **overrides})
        engine = SyncEngine(settings)

    return httpx.AsyncClient(
        transport=BrowserCookieTransport(engine, transport),
        **client_kwargs,
    )
