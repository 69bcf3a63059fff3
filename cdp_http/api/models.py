"""Modelos de datos para la API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, HttpUrl

from ..core.base import CookieRecord


class FetchRequest(BaseModel):
    """Petición HTTP a enviar con la sesión del navegador."""

    url: HttpUrl = Field(..., description="URL objetivo")
    method: str = Field("GET", description="Método HTTP")
    headers: Dict[str, str] = Field(default_factory=dict, description="Headers adicionales")
    body: Optional[str] = Field(None, description="Cuerpo de la petición")
    timeout: float = Field(30.0, gt=0, le=300, description="Timeout en segundos")
    follow_redirects: bool = Field(True, description="Seguir redirecciones")


class FetchResponse(BaseModel):
    """Respuesta obtenida con la sesión del navegador."""

    success: bool = Field(True, description="Indica si la petición se envió")
    url: str = Field(..., description="URL final tras redirecciones")
    status_code: int = Field(..., description="Código HTTP de la respuesta")
    headers: Dict[str, str] = Field(..., description="Headers de la respuesta")
    body: str = Field(..., description="Cuerpo de la respuesta como texto")
    user_agent: str = Field("", description="User agent enviado")
    processing_time: float = Field(..., description="Tiempo de procesamiento en segundos")


class ErrorResponse(BaseModel):
    """Modelo de respuesta de error."""

    success: bool = Field(False, description="Indica que la operación falló")
    error: str = Field(..., description="Mensaje de error")
    error_code: str = Field(..., description="Código de error")
    details: Optional[Dict[str, Any]] = Field(None, description="Detalles adicionales del error")


class SessionStatus(BaseModel):
    """Estado de la sesión prestada del navegador."""

    debug_url: str = Field(..., description="Endpoint de depuración configurado")
    connection_state: str = Field(..., description="Estado de la conexión CDP")
    cache_valid: bool = Field(..., description="Si la caché de cookies está vigente")
    cache_ttl: float = Field(..., description="TTL de la caché en segundos")
    last_refresh: Optional[datetime] = Field(None, description="Último refresco exitoso (UTC)")
    user_agent: str = Field("", description="User agent del navegador")
    cookie_count: int = Field(0, description="Cookies en caché")
    stats: Dict[str, int] = Field(default_factory=dict, description="Contadores del motor")


class CookiesResponse(BaseModel):
    """Cookies en caché, opcionalmente filtradas por dominio."""

    count: int = Field(..., description="Número de cookies")
    cookies: List[CookieRecord] = Field(..., description="Cookies del navegador")


class HealthResponse(BaseModel):
    """Modelo de respuesta de health check."""

    status: str = Field("healthy", description="Estado del servicio")
    version: str = Field(..., description="Versión del servicio")
    uptime_seconds: float = Field(..., description="Tiempo de funcionamiento en segundos")
    session: SessionStatus = Field(..., description="Estado de la sesión del navegador")
