"""Configuración del cliente, desde argumentos o variables de entorno."""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .core.base import (
    DEFAULT_CACHE_TTL,
    DEFAULT_CALL_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_DEBUG_URL,
    DEFAULT_MAX_MESSAGE_SIZE,
)

ENV_PREFIX = "CDP_HTTP_"


class ClientSettings(BaseModel):
    """Parámetros de conexión y de caché."""

    debug_url: str = Field(DEFAULT_DEBUG_URL, description="Endpoint de depuración remota")
    cache_ttl: float = Field(DEFAULT_CACHE_TTL, gt=0, description="Vida de la caché en segundos")
    connect_timeout: float = Field(DEFAULT_CONNECT_TIMEOUT, gt=0, description="Timeout de conexión")
    call_timeout: float = Field(DEFAULT_CALL_TIMEOUT, gt=0, description="Timeout por llamada")
    max_message_size: int = Field(
        DEFAULT_MAX_MESSAGE_SIZE, gt=0, description="Tamaño máximo de mensaje entrante"
    )

    @field_validator("debug_url", mode="before")
    @classmethod
    def _default_debug_url(cls, value: Any) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_DEBUG_URL
        return value.strip() if isinstance(value, str) else value

    @field_validator("cache_ttl", mode="before")
    @classmethod
    def _default_cache_ttl(cls, value: Any) -> Any:
        # 0 significa "usar el valor por defecto"
        if value is None or value == "" or value == 0 or value == "0":
            return DEFAULT_CACHE_TTL
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides: Any) -> "ClientSettings":
        """
        Construye la configuración a partir de variables CDP_HTTP_*.

        Parameters
        ----------
        environ : Optional[Mapping[str, str]]
            Entorno a leer; por defecto ``os.environ``.
        **overrides
            Valores que tienen prioridad sobre el entorno (se ignoran los None).

        Returns
        -------
        ClientSettings
            Configuración validada.
        """
        environ = os.environ if environ is None else environ
        values: dict[str, Any] = {}
        for name in cls.model_fields:
            raw = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None:
                values[name] = raw
        values.update({key: value for key, value in overrides.items() if value is not None})
        return cls(**values)
