"""Reproduce una petición enviada con la sesión prestada como comando de shell."""

from __future__ import annotations

import shlex
from typing import Callable, Dict, List, Optional, Tuple

import httpx

# Headers que cada herramienta calcula por su cuenta
SKIPPED_HEADERS = frozenset({
    "host",
    "content-length",
    "connection",
    "accept-encoding",
    "transfer-encoding",
})


def request_headers(request: httpx.Request) -> List[Tuple[str, str]]:
    """Headers de ``request`` a repetir, con su capitalización original."""
    encoding = request.headers.encoding
    headers = []
    for raw_name, raw_value in request.headers.raw:
        name = raw_name.decode(encoding)
        if name.lower() in SKIPPED_HEADERS:
            continue
        headers.append((name, raw_value.decode(encoding)))
    return headers


def request_body(request: httpx.Request) -> Optional[str]:
    """Cuerpo de ``request`` como texto; None si no hay o es un stream."""
    try:
        content = request.content
    except httpx.RequestNotRead:
        return None
    return content.decode("utf-8", errors="replace") if content else None


def curl_command(request: httpx.Request, proxy: Optional[str] = None) -> str:
    """
    Genera un comando cURL equivalente a ``request``.

    Parameters
    ----------
    request : httpx.Request
        Petición ya enviada; incluye el Cookie y el User-Agent del navegador.
    proxy : Optional[str]
        URL del proxy a usar.

    Returns
    -------
    str
        Comando listo para pegar en una shell POSIX.
    """
    args = ["curl"]
    if request.method != "GET":
        args += ["-X", request.method]
    for name, value in request_headers(request):
        args += ["-H", f"{name}: {value}"]
    body = request_body(request)
    if body is not None:
        args += ["--data-raw", body]
    if proxy is not None:
        args += ["--proxy", proxy]
    args.append(str(request.url))
    return shlex.join(args)


def wget_command(request: httpx.Request, proxy: Optional[str] = None) -> str:
    """
    Genera un comando Wget equivalente a ``request``.

    Wget toma el proxy de variables de entorno o de su archivo de config, así
    que ``proxy`` se ignora.
    """
    args = ["wget", "-O", "-"]
    if request.method != "GET":
        args.append(f"--method={request.method}")
    args += [f"--header={name}: {value}" for name, value in request_headers(request)]
    body = request_body(request)
    if body is not None:
        args.append(f"--body-data={body}")
    args.append(str(request.url))
    return shlex.join(args)


def aria2_command(request: httpx.Request, proxy: Optional[str] = None) -> str:
    """
    Genera un comando aria2 equivalente a ``request``.

    Raises
    ------
    ValueError
        Si la petición no es GET o el proxy es SOCKS, que aria2 no soporta.
    """
    if request.method != "GET":
        raise ValueError(f"aria2 solo descarga con GET, no {request.method}")
    if proxy is not None and proxy.casefold().startswith("socks"):
        raise ValueError("Los proxies SOCKS no son soportados por aria2")

    args = ["aria2c"]
    args += [f"--header={name}: {value}" for name, value in request_headers(request)]
    if proxy is not None:
        args.append(f"--all-proxy={proxy}")
    args.append(str(request.url))
    return shlex.join(args)


COMMAND_BUILDERS: Dict[str, Callable[[httpx.Request, Optional[str]], str]] = {
    "curl": curl_command,
    "wget": wget_command,
    "aria2": aria2_command,
}


def render_command(tool: str, request: httpx.Request, proxy: Optional[str] = None) -> str:
    """Genera el comando de ``tool`` (curl, wget o aria2) para ``request``."""
    try:
        builder = COMMAND_BUILDERS[tool.lower()]
    except KeyError:
        raise ValueError(f"Herramienta desconocida: {tool}") from None
    return builder(request, proxy)
