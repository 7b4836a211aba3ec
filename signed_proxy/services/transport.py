"""
HTTP transport for signed upstream requests.

Every request is a JSON POST bounded by a fixed timeout. The body of any
response is returned as-is, whatever the status code; only failures to
encode, send or read raise.
"""

import asyncio
import json
import logging
import time
from typing import Any, Dict, Optional

import httpx

from signed_proxy.metrics import upstream_request_duration_seconds, upstream_requests_total

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """Base exception for failures talking to the upstream service."""
    pass


class ProtocolError(UpstreamError):
    """Raised when a response body does not have the expected shape."""
    pass


class SignedRequestClient:
    """
    Thin async client that POSTs signed envelopes to the upstream.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 3.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the client.

        Args:
            base_url: Base URL of the upstream; endpoint paths resolve against it
            timeout: Overall deadline in seconds for one call, body read included
            transport: Optional httpx transport, used to substitute the network
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport
        )

    async def _exchange(self, url: str, body: str) -> httpx.Response:
        return await self.client.post(
            url,
            content=body,
            headers={"Content-Type": "application/json"}
        )

    async def post(self, url: str, payload: Dict[str, Any]) -> str:
        """
        POST a JSON payload and return the raw response body.

        Args:
            url: Endpoint path, resolved against base_url
            payload: Flat mapping serialized as the JSON body

        Returns:
            Response body as text, for any status code. Bytes that are not
            valid UTF-8 are kept as surrogate escapes, so the exact body can
            be recovered with encode("utf-8", "surrogateescape").

        Raises:
            UpstreamError: On encoding, connection, timeout or read failures
        """
        action = str(payload.get("Act", ""))
        try:
            body = json.dumps(payload)
        except (TypeError, ValueError) as e:
            upstream_requests_total.labels(endpoint=url, action=action, result="error").inc()
            raise UpstreamError(f"Failed to encode payload for {url}: {e}") from e

        start = time.perf_counter()
        try:
            response = await asyncio.wait_for(self._exchange(url, body), self.timeout)
            text = response.content.decode("utf-8", errors="surrogateescape")
        except asyncio.TimeoutError as e:
            upstream_requests_total.labels(endpoint=url, action=action, result="timeout").inc()
            raise UpstreamError(f"POST {url} exceeded {self.timeout}s") from e
        except httpx.HTTPError as e:
            upstream_requests_total.labels(endpoint=url, action=action, result="error").inc()
            raise UpstreamError(f"POST {url} failed: {e!r}") from e
        finally:
            upstream_request_duration_seconds.labels(endpoint=url).observe(
                time.perf_counter() - start
            )

        upstream_requests_total.labels(endpoint=url, action=action, result="ok").inc()
        logger.debug(f"POST {url} act={action!r} -> {response.status_code}")
        return text

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()
