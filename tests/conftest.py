"""Fixtures compartidas: navegador CDP falso, clientes falsos y reloj manual."""

from __future__ import annotations

import asyncio
import json
from http import HTTPStatus
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from websockets.asyncio.server import serve
from websockets.exceptions import ConnectionClosed

from cdp_http.core.base import CookieRecord
from cdp_http.core.errors import BrowserConnectError, CallErrorKind, ProtocolCallError

CHROME_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/131.0.0.0 Safari/537.36"
)

HTTPBIN_COOKIE = {
    "name": "y",
    "value": "b",
    "domain": "httpbin.org",
    "path": "/",
    "secure": True,
    "httpOnly": False,
}


class FakeBrowser:
    """Servidor websocket que imita el endpoint de depuración de Chrome."""

    def __init__(self) -> None:
        self.port = 0
        self.cookies: List[Dict[str, Any]] = [dict(HTTPBIN_COOKIE)]
        self.user_agent = CHROME_UA
        self.errors: Dict[str, Tuple[int, str]] = {}
        self.requests: List[Dict[str, Any]] = []
        self.version_payload: Optional[Dict[str, Any]] = None

    @property
    def ws_url(self) -> str:
        return f"ws://127.0.0.1:{self.port}/devtools/browser/abc"

    @property
    def http_url(self) -> str:
        return f"http://127.0.0.1:{self.port}"

    def process_request(self, connection, request):
        if request.path == "/json/version":
            payload = self.version_payload
            if payload is None:
                payload = {"Browser": "Chrome/131.0.0.0", "webSocketDebuggerUrl": self.ws_url}
            return connection.respond(HTTPStatus.OK, json.dumps(payload))
        return None

    async def handler(self, connection) -> None:
        try:
            async for message in connection:
                request = json.loads(message)
                self.requests.append(request)
                await self._answer(connection, request)
        except ConnectionClosed:
            pass

    async def _answer(self, connection, request: Dict[str, Any]) -> None:
        request_id = request["id"]
        method = request["method"]

        # Ruido que el cliente debe descartar
        await connection.send(json.dumps({"method": "Target.targetInfoChanged", "params": {}}))
        await connection.send(json.dumps({"id": request_id + 1000, "result": {"stray": True}}))

        if method == "Test.hang":
            return
        if method == "Test.garbage":
            await connection.send("not json")
            return
        if method == "Test.drop":
            await connection.close()
            return
        if method in self.errors:
            code, text = self.errors[method]
            await connection.send(json.dumps({"id": request_id, "error": {"code": code, "message": text}}))
            return

        if method == "Storage.getCookies":
            result: Dict[str, Any] = {"cookies": self.cookies}
        elif method == "Browser.getVersion":
            result = {
                "protocolVersion": "1.3",
                "product": "Chrome/131.0.0.0",
                "revision": "@abc",
                "userAgent": self.user_agent,
                "jsVersion": "13.1",
            }
        else:
            result = {"echo": request.get("params")}
        await connection.send(json.dumps({"id": request_id, "result": result}))


@pytest_asyncio.fixture
async def fake_browser():
    browser = FakeBrowser()
    async with serve(
        browser.handler,
        "127.0.0.1",
        0,
        process_request=browser.process_request,
    ) as server:
        browser.port = next(iter(server.sockets)).getsockname()[1]
        yield browser


class FakeClock:
    """Reloj monótono controlado a mano."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeBrowserClient:
    """Cliente de protocolo falso ligado a un FakeBrowserState."""

    def __init__(self, state: "FakeBrowserState") -> None:
        self._state = state
        self.closed = False

    async def fetch_cookies(self) -> List[CookieRecord]:
        state = self._state
        state.fetch_calls += 1
        if state.fetch_delay:
            await asyncio.sleep(state.fetch_delay)
        if self.closed or not state.available:
            raise ProtocolCallError(CallErrorKind.RECEIVE, "Storage.getCookies", "connection lost")
        if state.fail_fetches > 0:
            state.fail_fetches -= 1
            raise ProtocolCallError(CallErrorKind.RECEIVE, "Storage.getCookies", "simulated disconnect")
        return [CookieRecord.model_validate(item) for item in state.cookies]

    async def fetch_user_agent(self) -> str:
        state = self._state
        state.ua_calls += 1
        if state.fail_user_agent:
            raise ProtocolCallError(
                CallErrorKind.REMOTE, "Browser.getVersion", code=-32000, remote_message="nope"
            )
        return state.user_agent

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._state.closed_clients += 1


class FakeBrowserState:
    """Estado compartido de un navegador falso para el motor de sincronización."""

    def __init__(self) -> None:
        self.cookies: List[Dict[str, Any]] = [dict(HTTPBIN_COOKIE)]
        self.user_agent = CHROME_UA
        self.available = True
        self.fail_fetches = 0
        self.fail_user_agent = False
        self.fetch_delay = 0.0
        self.connect_delay = 0.0
        self.connects = 0
        self.fetch_calls = 0
        self.ua_calls = 0
        self.closed_clients = 0

    async def connect(self) -> FakeBrowserClient:
        self.connects += 1
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if not self.available:
            raise BrowserConnectError("ws://fake:9222", "connection refused")
        return FakeBrowserClient(self)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def browser_state() -> FakeBrowserState:
    return FakeBrowserState()
