"""
Autenticación por API Key para la API de cdp-http.

Toda ruta protegida exige una clave Bearer; sin claves registradas solo
responden ``/`` y ``/health``. Las claves se registran con ``load_api_keys`` a partir
de ``CDP_HTTP_API_KEYS`` o con ``add_api_key``.
"""

import hashlib
import logging
import secrets
import string
import time
from typing import Dict, Optional

from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

logger = logging.getLogger(__name__)

DEFAULT_RATE_LIMIT = 100

# Formato: "hashed_key": {"name": "client_name", "rate_limit": requests_per_minute}
API_KEYS: Dict[str, Dict] = {}

# Requests por minuto, por clave hasheada
rate_limit_storage: Dict[str, Dict[int, int]] = {}

security = HTTPBearer(auto_error=False)


def hash_api_key(api_key: str) -> str:
    """Genera hash SHA-256 de una API key."""
    return hashlib.sha256(api_key.encode()).hexdigest()


def load_api_keys(raw: str) -> int:
    """
    Registra claves desde una lista ``name:key[:rate_limit]`` separada por comas.

    Returns:
        Número de claves registradas
    """
    count = 0
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        parts = entry.split(":")
        if len(parts) < 2 or not parts[0] or not parts[1]:
            logger.warning(f"Entrada de API key ignorada (formato name:key[:rate]): {parts[0]!r}")
            continue
        rate_limit = int(parts[2]) if len(parts) > 2 and parts[2] else DEFAULT_RATE_LIMIT
        API_KEYS[hash_api_key(parts[1])] = {"name": parts[0], "rate_limit": rate_limit}
        count += 1
    return count


def validate_api_key(api_key: str) -> Optional[Dict]:
    """Valida una API key y retorna información del cliente, o None."""
    return API_KEYS.get(hash_api_key(api_key))


def check_rate_limit(hashed_key: str, rate_limit: int) -> bool:
    """
    Verifica si el cliente ha excedido su rate limit.

    Args:
        hashed_key: Hash de la API key del cliente
        rate_limit: Límite de requests por minuto

    Returns:
        True si está dentro del límite, False si lo excede
    """
    current_minute = int(time.time() // 60)
    minutes = rate_limit_storage.setdefault(hashed_key, {})

    for old_minute in [minute for minute in minutes if minute < current_minute - 1]:
        del minutes[old_minute]

    current_requests = minutes.get(current_minute, 0)
    if current_requests >= rate_limit:
        return False

    minutes[current_minute] = current_requests + 1
    return True


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security),
) -> Dict:
    """
    Dependency para autenticar requests de la API.

    Raises:
        HTTPException: Si la autenticación falla o se excede el rate limit
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Se requiere API key",
            headers={"WWW-Authenticate": "Bearer"},
        )

    api_key = credentials.credentials
    client_info = validate_api_key(api_key)
    if not client_info:
        logger.warning(f"API key inválida intentada: {api_key[:4]}...")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key inválida",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not check_rate_limit(hash_api_key(api_key), client_info["rate_limit"]):
        logger.warning(f"Rate limit excedido para cliente: {client_info['name']}")
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Rate limit excedido. Máximo {client_info['rate_limit']} requests por minuto.",
        )

    logger.debug(f"Request autenticado para cliente: {client_info['name']}")
    return client_info


def generate_new_api_key() -> str:
    """Genera una nueva API key de 32 caracteres."""
    alphabet = string.ascii_letters + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(32))


def add_api_key(name: str, rate_limit: int = DEFAULT_RATE_LIMIT) -> str:
    """
    Añade una nueva API key al sistema.

    Returns:
        La API key generada
    """
    api_key = generate_new_api_key()
    API_KEYS[hash_api_key(api_key)] = {"name": name, "rate_limit": rate_limit}
    logger.info(f"Nueva API key creada para cliente: {name}")
    return api_key


def revoke_api_key(api_key: str) -> bool:
    """Revoca una API key existente; False si no existía."""
    hashed_key = hash_api_key(api_key)
    client = API_KEYS.pop(hashed_key, None)
    if client is None:
        return False
    rate_limit_storage.pop(hashed_key, None)
    logger.info(f"API key revocada para cliente: {client['name']}")
    return True


def get_usage_stats() -> Dict:
    """Obtiene estadísticas de uso del minuto actual por cliente."""
    current_minute = int(time.time() // 60)
    stats = {}

    for hashed_key, minutes_data in rate_limit_storage.items():
        client_info = API_KEYS.get(hashed_key)
        if client_info is None:
            continue
        current_usage = minutes_data.get(current_minute, 0)
        stats[client_info["name"]] = {
            "current_minute_requests": current_usage,
            "rate_limit": client_info["rate_limit"],
            "usage_percentage": (
                (current_usage / client_info["rate_limit"]) * 100 if client_info["rate_limit"] else 0.0
            ),
        }

    return stats
