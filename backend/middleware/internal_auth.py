"""
Operator API Key Authentication

Guards the roster export/import endpoints. Callers are committee tooling and
backup jobs rather than chat users, so a shared API key is sufficient.

Environment Variables:
    INTERNAL_API_KEY: Primary operator key
    INTERNAL_API_KEYS: Comma-separated list of valid keys (for key rotation)

Headers:
    X-Internal-Api-Key: <api_key>
    X-Operator-Name: <name> (optional, for logging)
"""

import os
import secrets
import logging
from typing import Optional, Set
from dataclasses import dataclass
from functools import lru_cache

from fastapi import Request, HTTPException, status, Depends
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

# Header names
API_KEY_HEADER = "X-Internal-Api-Key"
OPERATOR_NAME_HEADER = "X-Operator-Name"

# Environment variable names
INTERNAL_API_KEY_ENV = "INTERNAL_API_KEY"
INTERNAL_API_KEYS_ENV = "INTERNAL_API_KEYS"  # Comma-separated for rotation


@dataclass
class Operator:
    """An authenticated operator"""
    name: str
    api_key_hash: str  # Last 4 chars of key for logging


@lru_cache(maxsize=1)
def _get_valid_api_keys() -> Set[str]:
    """Valid operator keys from the environment. Cached."""
    keys = set()

    primary_key = os.environ.get(INTERNAL_API_KEY_ENV)
    if primary_key and primary_key.strip():
        keys.add(primary_key.strip())

    for key in os.environ.get(INTERNAL_API_KEYS_ENV, "").split(","):
        key = key.strip()
        if key:
            keys.add(key)

    if not keys:
        logger.warning("No operator API keys configured - operator endpoints disabled")

    return keys


def validate_operator_key(api_key: str) -> bool:
    if not api_key:
        return False

    # Constant-time comparison against every configured key
    return any(
        secrets.compare_digest(api_key, valid_key)
        for valid_key in _get_valid_api_keys()
    )


api_key_header = APIKeyHeader(name=API_KEY_HEADER, auto_error=False)


async def get_operator(
    request: Request,
    api_key: Optional[str] = Depends(api_key_header)
) -> Operator:
    """
    FastAPI dependency to authenticate operator requests.

    Raises:
        HTTPException: 401 if the key is missing or invalid
    """
    operator_name = request.headers.get(OPERATOR_NAME_HEADER, "unknown")

    if not api_key:
        logger.warning(f"Missing API key from operator: {operator_name}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing internal API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    if not validate_operator_key(api_key):
        logger.warning(f"Invalid API key from operator: {operator_name}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid internal API key",
            headers={"WWW-Authenticate": "ApiKey"}
        )

    logger.info(f"Operator authenticated: {operator_name}")
    return Operator(name=operator_name, api_key_hash=f"...{api_key[-4:]}")
