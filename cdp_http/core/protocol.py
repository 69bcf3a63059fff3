"""
Cliente mínimo del protocolo de depuración remota de Chrome (CDP).

Mantiene un único websocket con el navegador y correlaciona cada petición con
su respuesta mediante el campo ``id``. Las llamadas son secuenciales: el bucle
de lectura de una llamada descarta todo mensaje cuyo ``id`` no coincide
(eventos del navegador y respuestas ajenas), así que dos llamadas concurrentes
sobre la misma conexión competirían por las respuestas. El motor de
sincronización nunca emite llamadas concurrentes.
"""

from __future__ import annotations

import asyncio
import itertools
import json
import logging
from typing import Any, Generator, List, Optional

from pydantic import ValidationError
from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import WebSocketException
from websockets.protocol import State
from zendriver import cdp
from zendriver.cdp.network import T_JSON_DICT

from .base import (
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_MAX_MESSAGE_SIZE,
    BrowserVersion,
    CookieRecord,
)
from .discovery import get_websocket_url
from .errors import BrowserConnectError, CallErrorKind, ProtocolCallError

logger = logging.getLogger(__name__)


class ProtocolClient:
    """
    Cliente CDP sobre una conexión websocket ya abierta.

    Usar ``await ProtocolClient.connect(endpoint)`` para crearlo.

    Parameters
    ----------
    connection : ClientConnection
        Conexión websocket con el navegador.
    url : str
        URL del websocket conectado.
    call_timeout : float
        Timeout por defecto de cada llamada en segundos.
    """

    def __init__(
        self,
        connection: ClientConnection,
        *,
        url: str = "",
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ) -> None:
        self._connection = connection
        self._url = url
        self._call_timeout = call_timeout
        self._ids = itertools.count(1)
        self._closed = False

    @classmethod
    async def connect(
        cls,
        endpoint: str,
        *,
        connect_timeout: float = DEFAULT_CONNECT_TIMEOUT,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
        max_message_size: int = DEFAULT_MAX_MESSAGE_SIZE,
    ) -> "ProtocolClient":
        """
        Descubre el websocket del navegador y abre la conexión.

        Raises
        ------
        BrowserConnectError
            Si falla el descubrimiento, el socket o el handshake.
        """
        ws_url = await get_websocket_url(endpoint, timeout=connect_timeout)
        logger.debug(f"Conectando a {ws_url}")
        try:
            connection = await connect(
                ws_url,
                compression=None,
                max_size=max_message_size,
                open_timeout=connect_timeout,
            )
        except (OSError, WebSocketException, asyncio.TimeoutError, TimeoutError) as err:
            raise BrowserConnectError(endpoint, f"failed to connect to Chrome: {err!r}") from err

        logger.info(f"Conectado al navegador en {ws_url}")
        return cls(connection, url=ws_url, call_timeout=call_timeout)

    @property
    def url(self) -> str:
        """URL del websocket conectado."""
        return self._url

    @property
    def closed(self) -> bool:
        """True si la conexión fue cerrada localmente o por el navegador."""
        return self._closed or self._connection.state is State.CLOSED

    async def close(self) -> None:
        """Cierra la conexión de forma ordenada. Idempotente."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._connection.close()
        except (OSError, WebSocketException) as err:
            logger.debug(f"Error cerrando websocket: {err!r}")

    async def call(
        self,
        method: str,
        params: Optional[T_JSON_DICT] = None,
        *,
        timeout: Optional[float] = None,
    ) -> T_JSON_DICT:
        """
        Ejecuta un método CDP y espera su respuesta.

        Parameters
        ----------
        method : str
            Método en formato ``Domain.method``.
        params : Optional[T_JSON_DICT]
            Parámetros; se omiten del mensaje si son None.
        timeout : Optional[float]
            Timeout de esta llamada; por defecto el del cliente.

        Returns
        -------
        T_JSON_DICT
            El campo ``result`` de la respuesta.

        Raises
        ------
        ProtocolCallError
            Con ``kind`` indicando el origen del fallo.
        """
        request_id = next(self._ids)
        request: T_JSON_DICT = {"id": request_id, "method": method}
        if params is not None:
            request["params"] = params

        try:
            message = json.dumps(request)
        except (TypeError, ValueError) as err:
            raise ProtocolCallError(
                CallErrorKind.ENCODE, method, f"no se pudo serializar la petición: {err}"
            ) from err

        timeout = self._call_timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(self._exchange(request_id, method, message), timeout)
        except asyncio.TimeoutError as err:
            raise ProtocolCallError(
                CallErrorKind.TIMEOUT, method, f"sin respuesta tras {timeout:.1f}s"
            ) from err

    async def _exchange(self, request_id: int, method: str, message: str) -> T_JSON_DICT:
        try:
            await self._connection.send(message)
        except (WebSocketException, OSError) as err:
            raise ProtocolCallError(
                CallErrorKind.SEND, method, f"failed to send request: {err!r}"
            ) from err
        logger.debug(f"-> {method} (id={request_id})")

        while True:
            try:
                data = await self._connection.recv()
            except (WebSocketException, OSError) as err:
                raise ProtocolCallError(
                    CallErrorKind.RECEIVE, method, f"failed to read response: {err!r}"
                ) from err

            try:
                response = json.loads(data)
            except ValueError as err:
                raise ProtocolCallError(
                    CallErrorKind.DECODE, method, f"failed to parse CDP response: {err}"
                ) from err
            if not isinstance(response, dict):
                raise ProtocolCallError(CallErrorKind.DECODE, method, "la respuesta no es un objeto")

            # Eventos y respuestas a otros ids se descartan
            if response.get("id") != request_id:
                continue

            error = response.get("error")
            if error is not None:
                error = error if isinstance(error, dict) else {"message": str(error)}
                raise ProtocolCallError(
                    CallErrorKind.REMOTE,
                    method,
                    code=error.get("code"),
                    remote_message=error.get("message", ""),
                )

            result = response.get("result")
            if result is None:
                return {}
            if not isinstance(result, dict):
                raise ProtocolCallError(CallErrorKind.DECODE, method, "result no es un objeto")
            logger.debug(f"<- {method} (id={request_id})")
            return result

    async def execute(self, command: Generator[T_JSON_DICT, T_JSON_DICT, Any]) -> T_JSON_DICT:
        """
        Ejecuta un comando generado por ``zendriver.cdp``.

        El generador solo se usa para construir ``{method, params}``; el
        resultado se devuelve sin interpretar.
        """
        request = next(command)
        command.close()
        return await self.call(request["method"], request.get("params") or None)

    async def fetch_cookies(self) -> List[CookieRecord]:
        """Obtiene todas las cookies del navegador (Storage.getCookies)."""
        result = await self.execute(cdp.storage.get_cookies())
        try:
            return [CookieRecord.model_validate(item) for item in result.get("cookies", [])]
        except (ValidationError, TypeError) as err:
            raise ProtocolCallError(
                CallErrorKind.DECODE, "Storage.getCookies", f"failed to parse cookies response: {err}"
            ) from err

    async def fetch_version(self) -> BrowserVersion:
        """Obtiene la versión del navegador (Browser.getVersion)."""
        result = await self.execute(cdp.browser.get_version())
        try:
            return BrowserVersion.model_validate(result)
        except ValidationError as err:
            raise ProtocolCallError(
                CallErrorKind.DECODE, "Browser.getVersion", f"failed to parse version response: {err}"
            ) from err

    async def fetch_user_agent(self) -> str:
        """Obtiene el user agent que reporta el navegador."""
        version = await self.fetch_version()
        return version.user_agent
