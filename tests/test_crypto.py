"""
Tests for nonce generation and request signing.
"""

import base64
import hashlib
import threading

import pytest

from signed_proxy.crypto import (
    CHARSET,
    CredentialSigner,
    RandomStringGenerator,
    compute_sha256
)

from conftest import signature_matches


class TestHashing:
    """Tests for hashing helpers."""

    def test_compute_sha256(self):
        """Test SHA-256 computation."""
        result = compute_sha256(b"hello world")

        assert len(result) == 32
        assert isinstance(result, bytes)


class TestRandomStringGenerator:
    """Tests for the nonce character source."""

    def test_charset_is_alphanumeric(self):
        assert len(CHARSET) == 62
        assert len(set(CHARSET)) == 62
        assert CHARSET.isalnum()

    @pytest.mark.parametrize("length", [0, 1, 18, 257])
    def test_length_and_alphabet(self, generator, length):
        """Test that output has the requested length and only uses CHARSET."""
        result = generator.generate(length)

        assert len(result) == length
        assert set(result) <= set(CHARSET)

    def test_negative_length_is_empty(self, generator):
        assert generator.generate(-3) == ""

    def test_same_seed_same_stream(self):
        """Test that a fixed seed makes output reproducible."""
        a = RandomStringGenerator(seed=42)
        b = RandomStringGenerator(seed=42)

        assert [a.generate(18) for _ in range(5)] == [b.generate(18) for _ in range(5)]

    def test_draws_advance_stream(self, generator):
        """Test that consecutive draws differ."""
        draws = {generator.generate(18) for _ in range(100)}

        assert len(draws) == 100

    def test_unseeded_generators_differ(self):
        a = RandomStringGenerator()
        b = RandomStringGenerator(seed=7)

        assert a.generate(32) != b.generate(32)

    def test_concurrent_draws_are_unique(self):
        """Test that threads sharing one generator never get the same nonce."""
        shared = RandomStringGenerator()
        results = []
        lock = threading.Lock()

        def draw():
            local = [shared.generate(18) for _ in range(200)]
            with lock:
                results.extend(local)

        threads = [threading.Thread(target=draw) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(results) == 1600
        assert len(set(results)) == 1600


class TestCredentialSigner:
    """Tests for nonce and signature derivation."""

    def test_nonce_length(self, signer):
        nonce = signer.nonce()

        assert len(nonce) == 18
        assert set(nonce) <= set(CHARSET)

    def test_custom_nonce_length(self, generator):
        signer = CredentialSigner("s", generator, nonce_length=32)

        assert len(signer.nonce()) == 32

    def test_signature_wire_layout(self, signer):
        """Test the exact byte layout: CRLF separated, no trailing separator."""
        expected = base64.b64encode(
            hashlib.sha256(b"/652/access\r\nbegin\r\nabc123\r\ntest-secret").digest()
        ).decode('ascii')

        assert signer.signature("/652/access", "begin", "abc123") == expected

    def test_signature_empty_action(self, signer):
        expected = base64.b64encode(
            hashlib.sha256(b"/652/audit\r\n\r\nN0nce\r\ntest-secret").digest()
        ).decode('ascii')

        assert signer.signature("/652/audit", "", "N0nce") == expected

    def test_signature_deterministic(self, signer):
        sig1 = signer.signature("/652/clock", "observe", "xyz")
        sig2 = signer.signature("/652/clock", "observe", "xyz")

        assert sig1 == sig2
        assert len(base64.b64decode(sig1)) == 32

    def test_signature_sensitivity(self, generator):
        """Test that changing any one input changes the signature."""
        signer = CredentialSigner("secret-a", generator)
        base = signer.signature("/652/audit", "burble", "nonce")

        assert signer.signature("/652/clock", "burble", "nonce") != base
        assert signer.signature("/652/audit", "chortle", "nonce") != base
        assert signer.signature("/652/audit", "burble", "nonce2") != base
        assert CredentialSigner("secret-b", generator).signature(
            "/652/audit", "burble", "nonce"
        ) != base

    def test_sign_binds_fresh_nonce(self, signer):
        nonce1, sig1 = signer.sign("/652/access", "end")
        nonce2, sig2 = signer.sign("/652/access", "end")

        assert nonce1 != nonce2
        assert sig1 != sig2
        assert signature_matches(signer, "/652/access", "end", nonce1, sig1)
        assert not signature_matches(signer, "/652/access", "begin", nonce1, sig1)
