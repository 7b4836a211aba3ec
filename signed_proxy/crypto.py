"""
Cryptographic operations: nonce generation, request signing and hashing.
"""

import base64
import hashlib
import logging
import random
import string
import threading
import time
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# 62-character nonce alphabet
CHARSET = string.ascii_lowercase + string.ascii_uppercase + string.digits


def compute_sha256(data: bytes) -> bytes:
    """Compute SHA-256 hash of data."""
    return hashlib.sha256(data).digest()


class RandomStringGenerator:
    """
    Produces unpredictable strings drawn from CHARSET.

    The generator is seeded once, at construction, and every draw advances
    the same stream. A single instance is meant to be shared by all sessions
    of a process, so draws are serialized with a lock.
    """

    def __init__(self, seed: Optional[int] = None):
        if seed is None:
            seed = time.time_ns()
        self._random = random.Random(seed)
        self._lock = threading.Lock()

    def generate(self, length: int) -> str:
        """
        Return a string of exactly `length` characters.

        Each character is sampled independently and uniformly, with
        replacement, from CHARSET. Non-positive lengths yield "".
        """
        if length <= 0:
            return ""
        with self._lock:
            return "".join(self._random.choices(CHARSET, k=length))


class CredentialSigner:
    """
    Derives nonces and request signatures for the upstream service.

    Signature = base64(SHA256("{url}\\r\\n{action}\\r\\n{nonce}\\r\\n{secret}"))

    The byte layout is fixed by the upstream: any change to field order or
    separators invalidates every request.
    """

    def __init__(
        self,
        secret: str,
        generator: RandomStringGenerator,
        nonce_length: int = 18
    ):
        """
        Args:
            secret: Value shared with the upstream out-of-band
            generator: Source of nonce characters
            nonce_length: Number of characters per nonce
        """
        self._secret = secret
        self._generator = generator
        self.nonce_length = nonce_length

    def nonce(self) -> str:
        """Draw a fresh nonce."""
        return self._generator.generate(self.nonce_length)

    def signature(self, url: str, action: str, nonce: str) -> str:
        """
        Compute the signature binding a request to its path, action and nonce.

        Args:
            url: Endpoint path (not the full URL)
            action: Action string, may be empty
            nonce: Nonce sent with the same request

        Returns:
            Base64 (standard alphabet) encoded SHA-256 digest
        """
        canonical = f"{url}\r\n{action}\r\n{nonce}\r\n{self._secret}"
        digest = compute_sha256(canonical.encode('utf-8'))
        return base64.b64encode(digest).decode('ascii')

    def sign(self, url: str, action: str) -> Tuple[str, str]:
        """Draw a fresh nonce and sign it. Returns (nonce, signature)."""
        nonce = self.nonce()
        return nonce, self.signature(url, action, nonce)

