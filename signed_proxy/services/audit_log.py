"""
Audit log draining.

The upstream keeps a cursor into its audit log. Draining reads the cursor
position, fetches the entries after it and then acknowledges them by
resetting the cursor. Fetch and reset are not atomic: a crash in between
means the same entries are served again on the next drain.
"""

import logging
import re
from typing import Any, Dict, List

from signed_proxy.crypto import CredentialSigner
from signed_proxy.metrics import audit_entries_fetched_total, audit_resets_total
from signed_proxy.models import AuditEnvelope
from signed_proxy.services.transport import ProtocolError, SignedRequestClient, UpstreamError

logger = logging.getLogger(__name__)

_INTEGER = re.compile(r'^[+-]?[0-9]+$')

ACT_BASE = ""
ACT_FETCH = "burble"
ACT_RESET = "chortle"


def parse_offset(body: str) -> int:
    """
    Parse an audit base response into an offset.

    Surrounding whitespace is ignored. Anything other than an optionally
    signed run of decimal digits raises ProtocolError.
    """
    text = body.strip()
    if not _INTEGER.match(text):
        raise ProtocolError(f"Audit base is not an integer: {text[:40]!r}")
    return int(text)


def split_entries(body: str) -> List[str]:
    """
    Split an audit log body into entries.

    Entries are separated by "\\n" and are not trimmed. An empty body
    yields [""], a single empty entry, not an empty list.
    """
    return body.split("\n")


class AuditLogSession:
    """
    Reads, fetches and acknowledges upstream audit entries.
    """

    def __init__(
        self,
        transport: SignedRequestClient,
        signer: CredentialSigner,
        audit_path: str = "/652/audit",
        reset_on_fetch_failure: bool = True
    ):
        """
        Args:
            transport: Client used for every upstream POST
            signer: Produces the nonce and signature of each request
            audit_path: Endpoint for all three audit calls
            reset_on_fetch_failure: Reset the cursor even if the base or log
                fetch failed. Failed fetches count as zero entries, so with a
                non-zero base the cursor moves back by one.
        """
        self.transport = transport
        self.signer = signer
        self.audit_path = audit_path
        self.reset_on_fetch_failure = reset_on_fetch_failure

    def _envelope(self, action: str, offset: int) -> Dict[str, Any]:
        nonce, signature = self.signer.sign(self.audit_path, action)
        return AuditEnvelope(
            Nonce=nonce,
            Act=action,
            Offset=offset,
            Signature=signature
        ).model_dump()

    async def get_audit_base(self) -> int:
        """
        Read the current cursor position.

        Raises:
            UpstreamError: If the request fails
            ProtocolError: If the body is not an integer
        """
        body = await self.transport.post(self.audit_path, self._envelope(ACT_BASE, 0))
        return parse_offset(body)

    async def get_audit_log(self, offset: int) -> List[str]:
        """
        Fetch entries starting at `offset`.

        Raises:
            UpstreamError: If the request fails
        """
        body = await self.transport.post(self.audit_path, self._envelope(ACT_FETCH, offset))
        entries = split_entries(body)
        audit_entries_fetched_total.inc(len(entries))
        return entries

    async def reset_audit_log(self, offset: int) -> None:
        """
        Move the cursor to `offset`, clamped at zero.

        Best effort: failures are logged and never raised.
        """
        offset = max(offset, 0)
        try:
            await self.transport.post(self.audit_path, self._envelope(ACT_RESET, offset))
        except UpstreamError as e:
            audit_resets_total.labels(result="error").inc()
            logger.error(f"Audit cursor reset to {offset} failed: {e}")
            return
        audit_resets_total.labels(result="ok").inc()

    async def handle_audit_logs(self) -> List[str]:
        """
        Drain the audit log once.

        Fetch failures are logged and treated as empty results. The cursor
        is then reset to base + len(entries) - 1, unless a fetch failed and
        reset_on_fetch_failure is off.

        Returns:
            Entries returned by the upstream, [] if the fetch failed
        """
        failed = False

        try:
            base_offset = await self.get_audit_base()
        except UpstreamError as e:
            logger.warning(f"Audit base fetch failed: {e}")
            base_offset = 0
            failed = True

        try:
            audit_logs = await self.get_audit_log(base_offset)
        except UpstreamError as e:
            logger.warning(f"Audit log fetch from offset {base_offset} failed: {e}")
            audit_logs = []
            failed = True

        if failed and not self.reset_on_fetch_failure:
            logger.info("Skipping audit cursor reset after failed fetch")
            return audit_logs

        await self.reset_audit_log(base_offset + len(audit_logs) - 1)
        return audit_logs
