"""Módulo principal del CLI."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import time
from typing import Dict, List, Optional

import httpx

from cdp_http.config import ClientSettings
from cdp_http.core import ChromeUnavailableError, SyncEngine, new_client
from cdp_http.utils.commands import render_command
from cdp_http.utils.cookies import format_cookie_header

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parsea argumentos de línea de comandos."""
    parser = argparse.ArgumentParser(
        description=(
            "Send an HTTP request using the cookies and user agent of a running "
            "Chrome instance exposed through its remote debugging port"
        )
    )

    parser.add_argument(
        "url",
        metavar="URL",
        help="The URL to request with the borrowed browser session",
        type=str,
    )

    parser.add_argument(
        "--debug-url",
        default=None,
        help="Chrome remote debugging endpoint (default: $CDP_HTTP_DEBUG_URL or ws://localhost:9222)",
        type=str,
    )

    parser.add_argument(
        "--cache-ttl",
        default=None,
        help="Seconds the borrowed cookies stay valid before asking Chrome again",
        type=float,
    )

    parser.add_argument(
        "-X", "--method",
        default="GET",
        help="The HTTP method to use",
        type=str,
    )

    parser.add_argument(
        "-H", "--header",
        action="append",
        default=[],
        help="Extra request header as 'Name: value' (repeatable)",
        type=str,
    )

    parser.add_argument(
        "-d", "--data",
        default=None,
        help="Request body",
        type=str,
    )

    parser.add_argument(
        "-p", "--proxy",
        default=None,
        help="The proxy server URL to use for the outgoing request",
        type=str,
    )

    parser.add_argument(
        "-i", "--include",
        action="store_true",
        help="Print the response status line and headers",
    )

    parser.add_argument(
        "-ac", "--all-cookies",
        action="store_true",
        help="Print every cookie borrowed from the browser",
    )

    parser.add_argument(
        "-c", "--curl",
        action="store_true",
        help="Get the cURL command for the request with the cookies and user agent",
    )

    parser.add_argument(
        "-w", "--wget",
        action="store_true",
        help="Get the Wget command for the request with the cookies and user agent",
    )

    parser.add_argument(
        "-a", "--aria2",
        action="store_true",
        help="Get the aria2 command for the request with the cookies and user agent",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def parse_headers(values: List[str]) -> Dict[str, str]:
    """Convierte entradas 'Name: value' en un diccionario."""
    headers: Dict[str, str] = {}
    for value in values:
        name, sep, content = value.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Header inválido: {value!r}")
        headers[name.strip()] = content.strip()
    return headers


def setup_logging(debug: bool = False) -> None:
    """Configura el sistema de logging."""
    level = logging.DEBUG if debug else logging.INFO

    logging.basicConfig(
        format="[%(asctime)s] [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        level=level,
        stream=sys.stderr,
    )

    # Silenciar librerías de red a menos que sea debug
    for name in ("websockets", "httpx", "httpcore"):
        logging.getLogger(name).setLevel(logging.WARNING if not debug else logging.DEBUG)


def display_results(
    *,
    response: httpx.Response,
    engine: SyncEngine,
    args: argparse.Namespace,
) -> None:
    """
    Muestra la respuesta y, si se piden, las cookies y comandos.

    Todo lo que contiene valores de cookies va a stdout, nunca al log.
    """
    logger.info(f"User agent: {engine.user_agent or '(desconocido)'}")

    if args.all_cookies:
        print(f"Cookies del navegador: {format_cookie_header(engine.records)}")

    if args.wget and args.proxy is not None:
        logger.warning(
            "Los proxies deben configurarse en variable de entorno o archivo de config para Wget."
        )
    for tool in ("curl", "wget", "aria2"):
        if not getattr(args, tool):
            continue
        try:
            print(render_command(tool, response.request, args.proxy))
        except ValueError as err:
            logger.warning(f"No se generó el comando {tool}: {err}")

    if args.include:
        print(f"{response.http_version} {response.status_code} {response.reason_phrase}")
        for name, value in response.headers.multi_items():
            print(f"{name}: {value}")
        print()
    print(response.text)


async def run_cli(argv: Optional[List[str]] = None) -> int:
    """Función principal del CLI; devuelve el código de salida."""
    args = parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        headers = parse_headers(args.header)
    except ValueError as err:
        logger.error(str(err))
        return 2

    settings = ClientSettings.from_env(debug_url=args.debug_url, cache_ttl=args.cache_ttl)
    engine = SyncEngine(settings)
    transport = httpx.AsyncHTTPTransport(proxy=args.proxy) if args.proxy else None

    start_time = time.time()
    async with new_client(engine=engine, transport=transport) as client:
        try:
            response = await client.request(
                args.method.upper(),
                args.url,
                headers=headers,
                content=args.data,
            )
        except ChromeUnavailableError as err:
            logger.error(f"Chrome no disponible en {settings.debug_url}: {err}")
            return 1
        except httpx.HTTPError as err:
            logger.error(f"Error en la petición a {args.url}: {err!r}")
            return 1

        logger.info(f"Respuesta {response.status_code} en {time.time() - start_time:.2f} segundos")
        display_results(response=response, engine=engine, args=args)

    return 0


def main() -> None:
    """Entrypoint del comando ``cdp-http``."""
    sys.exit(asyncio.run(run_cli()))
