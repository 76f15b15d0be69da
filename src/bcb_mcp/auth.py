"""Optional API key authentication for gateway callers."""

from fastapi import Header, HTTPException
from typing import Dict, Optional
from .config import settings
import logging

logger = logging.getLogger(__name__)


def _key_from_headers(x_api_key: Optional[str], authorization: Optional[str]) -> Optional[str]:
    if x_api_key:
        return x_api_key
    if authorization and authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1].strip()
    return None


def headers_authenticated(headers: Dict[str, str]) -> bool:
    """Authenticate using raw lower-cased headers. Always true when no keys are configured."""
    keys = settings.api_keys_list
    if not keys:
        return True
    key = _key_from_headers(headers.get("x-api-key"), headers.get("authorization"))
    return key is not None and key in keys


async def verify_auth(
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> bool:
    """
    Verify the X-API-Key header or an API key sent as a Bearer token.

    Raises:
        HTTPException: 401 if keys are configured and none matches
    """
    headers = {}
    if x_api_key:
        headers["x-api-key"] = x_api_key
    if authorization:
        headers["authorization"] = authorization

    if headers_authenticated(headers):
        return True

    logger.info("Authentication failed (%s)", "missing credentials" if not headers else "invalid API key")
    raise HTTPException(
        status_code=401,
        detail="Invalid authentication. Provide an X-API-Key header or a Bearer token.",
        headers={"WWW-Authenticate": "Bearer"},
    )
