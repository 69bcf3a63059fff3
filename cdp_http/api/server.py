"""Servidor API para cdp-http."""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional, Sequence

import httpx
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import ClientSettings
from ..core.errors import ChromeUnavailableError
from ..core.sync import SyncEngine
from ..core.transport import new_client
from ..utils.cookies import filter_domain_cookies
from .auth import get_current_user, get_usage_stats
from .models import (
    CookiesResponse,
    ErrorResponse,
    FetchRequest,
    FetchResponse,
    HealthResponse,
    SessionStatus,
)

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


def _unavailable(err: ChromeUnavailableError, **details: Any) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail=ErrorResponse(
            error=str(err),
            error_code="CHROME_UNAVAILABLE",
            details=details or None,
        ).model_dump(),
    )


class CDPHttpAPI:
    """
    Servidor API que expone la sesión prestada del navegador.

    Parameters
    ----------
    host : str
        Host donde ejecutar el servidor.
    port : int
        Puerto donde ejecutar el servidor.
    debug : bool
        Habilitar modo debug.
    settings : Optional[ClientSettings]
        Configuración del cliente CDP; por defecto desde el entorno.
    engine : Optional[SyncEngine]
        Motor ya construido (tests o integraciones).
    transport : Optional[httpx.AsyncBaseTransport]
        Transporte subyacente para las peticiones salientes.
    cors_origins : Sequence[str]
        Orígenes web autorizados por CORS; vacío desactiva CORS.
    """

    def __init__(
        self,
        *,
        host: str = "127.0.0.1",
        port: int = 8000,
        debug: bool = False,
        settings: Optional[ClientSettings] = None,
        engine: Optional[SyncEngine] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        cors_origins: Sequence[str] = (),
    ) -> None:
        self.host = host
        self.port = port
        self.debug = debug
        self.engine = engine or SyncEngine(settings or ClientSettings.from_env())
        self._transport = transport
        self.cors_origins = tuple(cors_origins)
        self.client: Optional[httpx.AsyncClient] = None
        self.start_time = time.time()
        self.app = self._create_app()

    def _create_app(self) -> FastAPI:
        """Crea la aplicación FastAPI."""

        @asynccontextmanager
        async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
            logger.info(f"Iniciando cdp-http API (navegador: {self.engine.settings.debug_url})")
            self.client = new_client(engine=self.engine, transport=self._transport)
            try:
                yield
            finally:
                await self.client.aclose()
                self.client = None
                logger.info("Deteniendo cdp-http API")

        app = FastAPI(
            title="cdp-http API",
            description="Peticiones HTTP con las cookies y el user agent de un Chrome en ejecución",
            version=API_VERSION,
            lifespan=lifespan,
        )

        # Las respuestas llevan cookies del navegador: CORS solo con orígenes explícitos
        if self.cors_origins:
            app.add_middleware(
                CORSMiddleware,
                allow_origins=list(self.cors_origins),
                allow_credentials=False,
                allow_methods=["GET", "POST"],
                allow_headers=["Authorization", "Content-Type"],
            )

        self._register_routes(app)
        self._register_exception_handlers(app)

        return app

    def session_status(self) -> SessionStatus:
        """Resume el estado actual del motor."""
        engine = self.engine
        return SessionStatus(
            debug_url=engine.settings.debug_url,
            connection_state=engine.state.value,
            cache_valid=engine.cache_valid(),
            cache_ttl=engine.settings.cache_ttl,
            last_refresh=engine.last_refresh_at,
            user_agent=engine.user_agent,
            cookie_count=len(engine.records),
            stats=dict(engine.stats),
        )

    def _register_routes(self, app: FastAPI) -> None:
        """Registra las rutas de la API."""

        @app.get("/health", response_model=HealthResponse)
        async def health_check() -> HealthResponse:
            """Health check del servicio; no contacta al navegador."""
            uptime_seconds = time.time() - self.start_time
            return HealthResponse(
                status="healthy",
                version=API_VERSION,
                uptime_seconds=uptime_seconds,
                session=self.session_status(),
            )

        @app.get("/session", response_model=SessionStatus)
        async def get_session(current_user: Dict = Depends(get_current_user)) -> SessionStatus:
            """Estado de la caché y de la conexión con el navegador."""
            return self.session_status()

        @app.post("/session/refresh", response_model=SessionStatus)
        async def refresh_session(current_user: Dict = Depends(get_current_user)) -> SessionStatus:
            """
            Fuerza un refresco de cookies desde el navegador.

            Si el navegador no responde pero la caché sigue vigente, se
            conserva la caché y la respuesta es exitosa.
            """
            try:
                await self.engine.ensure_fresh(force=True)
            except ChromeUnavailableError as e:
                logger.error(f"Refresco fallido: {e}")
                raise _unavailable(e)
            return self.session_status()

        @app.get("/cookies", response_model=CookiesResponse)
        async def list_cookies(
            domain: Optional[str] = None,
            current_user: Dict = Depends(get_current_user),
        ) -> CookiesResponse:
            """Cookies en caché; no fuerza un refresco."""
            cookies = list(self.engine.records)
            if domain:
                cookies = filter_domain_cookies(cookies, domain)
            return CookiesResponse(count=len(cookies), cookies=cookies)

        @app.post("/fetch", response_model=FetchResponse)
        async def fetch(
            request: FetchRequest,
            current_user: Dict = Depends(get_current_user),
        ) -> FetchResponse:
            """
            Envía una petición HTTP con la sesión del navegador.

            Parameters
            ----------
            request : FetchRequest
                URL, método, headers y cuerpo.

            Returns
            -------
            FetchResponse
                Estado, headers y cuerpo de la respuesta remota.

            Raises
            ------
            HTTPException
                503 si el navegador no está disponible y la caché expiró,
                502 si la petición remota falla.
            """
            if self.client is None:
                raise HTTPException(status_code=503, detail="Cliente HTTP no iniciado")

            start_time = time.time()
            url = str(request.url)
            try:
                response = await self.client.request(
                    request.method.upper(),
                    url,
                    headers=request.headers,
                    content=request.body,
                    timeout=request.timeout,
                    follow_redirects=request.follow_redirects,
                )
            except ChromeUnavailableError as e:
                logger.error(f"Navegador no disponible para {url}: {e}")
                raise _unavailable(e, url=url)
            except httpx.HTTPError as e:
                logger.error(f"Error enviando petición a {url}: {e}")
                raise HTTPException(
                    status_code=502,
                    detail=ErrorResponse(
                        error=str(e) or e.__class__.__name__,
                        error_code="UPSTREAM_ERROR",
                        details={"url": url},
                    ).model_dump(),
                )

            return FetchResponse(
                success=True,
                url=str(response.url),
                status_code=response.status_code,
                headers=dict(response.headers),
                body=response.text,
                user_agent=response.request.headers.get("User-Agent", ""),
                processing_time=time.time() - start_time,
            )

        @app.get("/")
        async def root() -> Dict[str, Any]:
            """Endpoint raíz con información básica."""
            return {
                "name": "cdp-http API",
                "version": API_VERSION,
                "docs": "/docs",
                "health": "/health",
                "endpoints": {
                    "session": "/session",
                    "refresh": "/session/refresh",
                    "cookies": "/cookies",
                    "fetch": "/fetch",
                },
            }

        @app.get("/admin/stats")
        async def get_api_stats(current_user: Dict = Depends(get_current_user)) -> Dict:
            """Estadísticas de uso de la API (solo administradores)."""
            if current_user.get("name") != "admin":
                raise HTTPException(
                    status_code=403,
                    detail="Acceso denegado. Solo administradores.",
                )

            return {
                "success": True,
                "stats": get_usage_stats(),
                "engine": dict(self.engine.stats),
                "timestamp": time.time(),
            }

    def _register_exception_handlers(self, app: FastAPI) -> None:
        """Registra manejadores de excepciones."""

        @app.exception_handler(Exception)
        async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
            logger.error(f"Error no manejado: {exc!r}")
            error_response = ErrorResponse(
                error="Error interno del servidor",
                error_code="INTERNAL_ERROR",
                details={"path": request.url.path},
            )
            return JSONResponse(status_code=500, content=error_response.model_dump())

    def run(self) -> None:
        """Ejecuta el servidor."""
        uvicorn.run(
            self.app,
            host=self.host,
            port=self.port,
            log_level="debug" if self.debug else "info",
        )

    async def run_async(self) -> None:
        """Ejecuta el servidor de forma asíncrona."""
        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="debug" if self.debug else "info",
        )
        server = uvicorn.Server(config)
        await server.serve()
