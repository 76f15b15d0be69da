"""HTTP client for the BCB Olinda OData service."""

import logging
from typing import Any, Optional

import httpx

from .errors import RemoteError, RemoteUnavailable
from .tools.query import QueryDescriptor

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 5


def _origin(url: httpx.URL) -> tuple:
    return (url.scheme, url.host, url.port)


def _error_message(response: httpx.Response) -> str:
    """Extract a readable message from an OData error body."""
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text[:500] if text else response.reason_phrase

    if isinstance(body, dict):
        error = body.get("error", body)
        if isinstance(error, dict):
            message = error.get("message")
            # OData v2/v3 wraps the message as {"lang": ..., "value": ...}
            if isinstance(message, dict):
                message = message.get("value")
            if message:
                return str(message)
    return response.reason_phrase or f"HTTP {response.status_code}"


class RemoteClient:
    """Issues one read request per tool invocation. No retries."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: OData service root every request must stay under
            timeout: Upper bound in seconds for one request
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._origin = _origin(httpx.URL(self.base_url))
        self._client = httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=False,
            headers={"Accept": "application/json", "User-Agent": "bcb-mcp-server"},
            transport=transport,
        )

    async def fetch(self, query: QueryDescriptor) -> Any:
        """
        Fetch the JSON payload for a query.

        Raises:
            RemoteUnavailable: On timeout, connection or DNS failure
            RemoteError: On a non-success status, a cross-origin redirect or a non-JSON body
        """
        url = httpx.URL(query.url(self.base_url))
        logger.debug("GET %s", url)

        for _ in range(MAX_REDIRECTS + 1):
            try:
                response = await self._client.get(url)
            except httpx.TimeoutException:
                raise RemoteUnavailable(f"request timed out after {self.timeout:g}s") from None
            except httpx.TransportError as e:
                raise RemoteUnavailable(str(e) or e.__class__.__name__) from e

            if not response.is_redirect:
                break

            target = url.join(response.headers["location"])
            if _origin(target) != self._origin:
                logger.warning("Refusing redirect from %s to %s", url, target)
                raise RemoteError(response.status_code, f"redirect to a different origin refused: {target}")
            url = target
        else:
            raise RemoteError(response.status_code, f"more than {MAX_REDIRECTS} redirects")

        if not response.is_success:
            message = _error_message(response)
            logger.warning(f"Remote service returned {response.status_code} for {query.resource}: {message}")
            raise RemoteError(response.status_code, message)

        try:
            return response.json()
        except ValueError:
            raise RemoteError(response.status_code, "response body is not valid JSON") from None

    async def aclose(self) -> None:
        """Close the pooled HTTP connections."""
        await self._client.aclose()
