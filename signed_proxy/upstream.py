"""
Upstream connection and session management.
"""

import asyncio
import logging
from typing import Optional

import httpx

from signed_proxy.config import Settings, settings
from signed_proxy.crypto import CredentialSigner, RandomStringGenerator
from signed_proxy.services.audit_log import AuditLogSession
from signed_proxy.services.time_sync import TimeSyncSession
from signed_proxy.services.transport import SignedRequestClient

logger = logging.getLogger(__name__)


class Upstream:
    """
    Owns the process-wide upstream client and the sessions built on it.

    The nonce generator is created here, once per process, and shared by
    both sessions through the signer.
    """

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.config = config or settings
        self._transport = transport
        self._client: Optional[SignedRequestClient] = None
        self._time_sync: Optional[TimeSyncSession] = None
        self._audit_log: Optional[AuditLogSession] = None
        self._lock = asyncio.Lock()

    async def connect(self) -> None:
        """Create the HTTP client, signer and sessions."""
        async with self._lock:
            if self._client is not None:
                return

            cfg = self.config
            logger.info(f"Connecting to upstream {cfg.upstream_base_url}...")

            self._client = SignedRequestClient(
                base_url=cfg.upstream_base_url,
                timeout=cfg.request_timeout_seconds,
                transport=self._transport
            )
            signer = CredentialSigner(
                secret=cfg.shared_secret,
                generator=RandomStringGenerator(),
                nonce_length=cfg.nonce_length
            )
            self._time_sync = TimeSyncSession(
                transport=self._client,
                signer=signer,
                access_path=cfg.access_path,
                clock_path=cfg.clock_path,
                timeout=cfg.time_sync_timeout,
                poll_interval=cfg.poll_interval_seconds
            )
            self._audit_log = AuditLogSession(
                transport=self._client,
                signer=signer,
                audit_path=cfg.audit_path,
                reset_on_fetch_failure=cfg.reset_on_fetch_failure
            )

    async def disconnect(self) -> None:
        """Close the HTTP client."""
        async with self._lock:
            if self._client is None:
                return

            logger.info("Closing upstream client...")
            await self._client.aclose()
            self._client = None
            self._time_sync = None
            self._audit_log = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def time_sync(self) -> TimeSyncSession:
        if self._time_sync is None:
            raise RuntimeError("Upstream not connected. Call connect() first.")
        return self._time_sync

    @property
    def audit_log(self) -> AuditLogSession:
        if self._audit_log is None:
            raise RuntimeError("Upstream not connected. Call connect() first.")
        return self._audit_log


# Global upstream instance
upstream = Upstream()


async def get_upstream() -> Upstream:
    """Dependency injection for upstream access."""
    return upstream
