"""
Server time synchronization.

A sync is a three-phase exchange with the upstream:

1. ``begin`` is sent to the access endpoint in a background task.
2. While it is in flight, ``observe`` is sent to the clock endpoint on a
   short fixed tick, keeping the remote clock session warm.
3. Once ``begin`` completes, ``end`` is sent to the access endpoint and its
   body is the server time.

Only a failure of ``end`` reaches the caller. ``begin`` and ``observe``
failures are logged and otherwise ignored.
"""

import asyncio
import logging
from typing import Any, Dict

from signed_proxy.crypto import CredentialSigner
from signed_proxy.metrics import observe_polls_per_sync
from signed_proxy.models import TimeSyncEnvelope
from signed_proxy.services.transport import SignedRequestClient, UpstreamError

logger = logging.getLogger(__name__)


class TimeSyncSession:
    """
    Runs begin/observe/end exchanges against the upstream clock.

    The session holds no state between calls; each call to
    handle_server_time performs exactly one full exchange.
    """

    def __init__(
        self,
        transport: SignedRequestClient,
        signer: CredentialSigner,
        access_path: str = "/652/access",
        clock_path: str = "/652/clock",
        timeout: int = 250000,
        poll_interval: float = 0.000005
    ):
        """
        Args:
            transport: Client used for every upstream POST
            signer: Produces the nonce and signature of each request
            access_path: Endpoint for begin and end
            clock_path: Endpoint for observe
            timeout: Value of the Timeout field on begin and end
            poll_interval: Seconds between observe calls
        """
        if timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")

        self.transport = transport
        self.signer = signer
        self.access_path = access_path
        self.clock_path = clock_path
        self.timeout = timeout
        self.poll_interval = poll_interval

    def _envelope(self, url: str, action: str, timeout: int) -> Dict[str, Any]:
        nonce, signature = self.signer.sign(url, action)
        return TimeSyncEnvelope(
            Nonce=nonce,
            Act=action,
            Timeout=timeout,
            Signature=signature
        ).model_dump()

    async def begin(self, done: asyncio.Event) -> None:
        """
        Open the exchange and signal `done` when the call returns.

        The response body is discarded. The signal is set whether or not
        the call succeeded, so polling always terminates.
        """
        try:
            await self.transport.post(
                self.access_path,
                self._envelope(self.access_path, "begin", self.timeout)
            )
        except UpstreamError as e:
            logger.warning(f"Time sync begin failed: {e}")
        finally:
            done.set()

    async def observe(self) -> None:
        """Send a single observe call to the clock endpoint."""
        await self.transport.post(
            self.clock_path,
            self._envelope(self.clock_path, "observe", 0)
        )

    async def end(self) -> str:
        """Close the exchange and return the server time, newlines stripped."""
        server_time = await self.transport.post(
            self.access_path,
            self._envelope(self.access_path, "end", self.timeout)
        )
        return server_time.strip("\n")

    async def handle_server_time(self) -> str:
        """
        Perform one full time sync.

        Returns:
            Server time as reported by the end call

        Raises:
            UpstreamError: If the end call fails
        """
        done = asyncio.Event()
        begin_task = asyncio.create_task(self.begin(done))
        polls = 0

        try:
            # warm up the remote clock until begin returns
            while not done.is_set():
                try:
                    await asyncio.wait_for(done.wait(), timeout=self.poll_interval)
                    break
                except asyncio.TimeoutError:
                    pass

                polls += 1
                try:
                    await self.observe()
                except UpstreamError as e:
                    logger.warning(f"Time sync observe failed: {e}")

            await begin_task
        finally:
            if not begin_task.done():
                begin_task.cancel()

        observe_polls_per_sync.observe(polls)
        logger.debug(f"Begin completed after {polls} observe calls")
        return await self.end()
