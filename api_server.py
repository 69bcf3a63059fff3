#!/usr/bin/env python3
"""
Script para ejecutar el servidor API de cdp-http.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

# Agregar el directorio del paquete al path si es necesario
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from cdp_http.api.auth import add_api_key, load_api_keys
from cdp_http.api.server import CDPHttpAPI
from cdp_http.config import ClientSettings


def parse_args() -> argparse.Namespace:
    """Parsea argumentos de línea de comandos para el servidor API."""
    parser = argparse.ArgumentParser(
        description="Servidor API para cdp-http"
    )

    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host donde ejecutar el servidor (default: 127.0.0.1)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Puerto donde ejecutar el servidor (default: 8000)",
    )

    parser.add_argument(
        "--debug-url",
        default=None,
        help="Endpoint de depuración de Chrome (default: $CDP_HTTP_DEBUG_URL o ws://localhost:9222)",
    )

    parser.add_argument(
        "--cache-ttl",
        type=float,
        default=None,
        help="Segundos de validez de las cookies en caché (default: 300)",
    )

    parser.add_argument(
        "--cors-origin",
        action="append",
        default=[],
        help="Origen web autorizado por CORS (repetible; por defecto ninguno)",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Habilitar modo debug",
    )

    return parser.parse_args()


def main() -> None:
    """Función principal del servidor API."""
    args = parse_args()

    level = logging.DEBUG if args.debug else logging.INFO
    logging.basicConfig(
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
        level=level,
    )

    key_count = load_api_keys(os.environ.get("CDP_HTTP_API_KEYS", ""))
    if not key_count:
        # Sin claves configuradas se genera una de administrador para esta ejecución
        admin_key = add_api_key("admin")
        print(f"🔑 API key de administrador (solo esta ejecución): {admin_key}")

    settings = ClientSettings.from_env(debug_url=args.debug_url, cache_ttl=args.cache_ttl)
    api = CDPHttpAPI(
        host=args.host,
        port=args.port,
        debug=args.debug,
        settings=settings,
        cors_origins=args.cors_origin,
    )

    print(f"🚀 Iniciando cdp-http API en http://{args.host}:{args.port}")
    print(f"📖 Documentación disponible en http://{args.host}:{args.port}/docs")

    try:
        api.run()
    except KeyboardInterrupt:
        print("\n👋 Servidor detenido")


if __name__ == "__main__":
    main()
