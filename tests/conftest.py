"""
Test fixtures and configuration for pytest.
"""

import asyncio
import json
import secrets
from typing import AsyncGenerator, Callable, Dict, List, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from signed_proxy.crypto import CredentialSigner, RandomStringGenerator
from signed_proxy.services.audit_log import AuditLogSession
from signed_proxy.services.time_sync import TimeSyncSession
from signed_proxy.services.transport import SignedRequestClient

BASE_URL = "http://upstream.test"
SECRET = "test-secret"
ACCESS = "/652/access"
CLOCK = "/652/clock"
AUDIT = "/652/audit"

Reply = Union[str, bytes, Exception, Callable[[], str]]


def signature_matches(signer: CredentialSigner, url: str, action: str, nonce: str, signature: str) -> bool:
    """Check a signature the way the upstream does."""
    expected = signer.signature(url, action, nonce)
    return secrets.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))


class MockUpstream:
    """
    In-process stand-in for the remote service.

    Replies are keyed by (path, Act). A reply may be a body string or raw bytes, an
    exception to raise, or a callable returning a body. Every request is
    recorded along with whether its signature checks out.
    """

    def __init__(self, secret: str = SECRET):
        self.replies: Dict[Tuple[str, str], Reply] = {}
        self.delays: Dict[Tuple[str, str], float] = {}
        self.status_codes: Dict[Tuple[str, str], int] = {}
        self.requests: List[dict] = []
        self._verifier = CredentialSigner(secret, RandomStringGenerator(seed=0))

    def reply(self, path: str, act: str, body: Reply, delay: float = 0.0, status_code: int = 200):
        """Helper to configure the reply for an action."""
        self.replies[(path, act)] = body
        self.delays[(path, act)] = delay
        self.status_codes[(path, act)] = status_code

    def calls(self, path: str, act: str) -> List[dict]:
        """Payloads received for an action, in arrival order."""
        return [
            r["payload"] for r in self.requests
            if r["path"] == path and r["payload"].get("Act") == act
        ]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        payload = json.loads(request.content)
        path = request.url.path
        act = payload.get("Act", "")
        self.requests.append({
            "path": path,
            "payload": payload,
            "signature_valid": signature_matches(
                self._verifier, path, act, payload.get("Nonce", ""), payload.get("Signature", "")
            ),
        })

        key = (path, act)
        delay = self.delays.get(key, 0.0)
        if delay:
            await asyncio.sleep(delay)

        reply = self.replies.get(key, "")
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            reply = reply()
        status_code = self.status_codes.get(key, 200)
        if isinstance(reply, bytes):
            return httpx.Response(status_code, content=reply)
        return httpx.Response(status_code, text=reply)


@pytest.fixture
def generator() -> RandomStringGenerator:
    """Seeded generator for reproducible nonces."""
    return RandomStringGenerator(seed=1234)


@pytest.fixture
def signer(generator: RandomStringGenerator) -> CredentialSigner:
    """Signer using the shared test secret."""
    return CredentialSigner(SECRET, generator)


@pytest.fixture
def mock_upstream() -> MockUpstream:
    """Create a mock upstream for testing."""
    return MockUpstream()


@pytest_asyncio.fixture
async def transport(mock_upstream: MockUpstream) -> AsyncGenerator[SignedRequestClient, None]:
    """Signed request client wired to the mock upstream."""
    client = SignedRequestClient(
        BASE_URL,
        timeout=3.0,
        transport=httpx.MockTransport(mock_upstream.handler)
    )
    yield client
    await client.aclose()


@pytest.fixture
def time_sync(transport: SignedRequestClient, signer: CredentialSigner) -> TimeSyncSession:
    """Time sync session against the mock upstream."""
    return TimeSyncSession(
        transport,
        signer,
        access_path=ACCESS,
        clock_path=CLOCK,
        poll_interval=0.001
    )


@pytest.fixture
def audit_log(transport: SignedRequestClient, signer: CredentialSigner) -> AuditLogSession:
    """Audit log session against the mock upstream."""
    return AuditLogSession(transport, signer, audit_path=AUDIT)
