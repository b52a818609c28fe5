"""
Tests for BIP340 Schnorr Verification

Signatures are produced with coincurve's libsecp256k1 signer and checked with
our verifier, so both sides are independent.
"""

import hashlib

import pytest
from coincurve import PrivateKey as CoinCurvePrivateKey

from musig_crypto.exceptions import InvalidSignatureError
from musig_crypto.schnorr import SchnorrSignature, verify_schnorr


def _sign(secret: bytes, message: bytes) -> bytes:
    return CoinCurvePrivateKey(secret).sign_schnorr(message, b'\x00' * 32)


class TestSchnorrSignature:
    """Test signature value type."""

    def test_round_trip(self):
        """Test 64-byte encoding."""
        raw = bytes(range(64))
        sig = SchnorrSignature.from_bytes(raw)
        assert sig.r == raw[:32]
        assert sig.s == raw[32:]
        assert sig.to_bytes() == raw
        assert sig.hex == raw.hex()

    def test_wrong_lengths(self):
        """Test rejection of malformed signatures."""
        with pytest.raises(InvalidSignatureError, match="must be 64 bytes"):
            SchnorrSignature.from_bytes(b'\x00' * 63)
        with pytest.raises(InvalidSignatureError, match="r must be 32 bytes"):
            SchnorrSignature(r=b'\x00' * 31, s=b'\x00' * 32)


class TestVerifySchnorr:
    """Test BIP340 verification."""

    def test_valid_signature(self, private_keys):
        """Test a signature from libsecp256k1 verifies."""
        key = private_keys[0]
        message = hashlib.sha256(b"relaysig").digest()
        sig = SchnorrSignature.from_bytes(_sign(key.bytes, message))

        assert verify_schnorr(key.public_key().x_only, sig, message)

    def test_wrong_message_or_key(self, private_keys):
        """Test that verification fails for other messages and keys."""
        message = hashlib.sha256(b"relaysig").digest()
        sig = SchnorrSignature.from_bytes(_sign(private_keys[0].bytes, message))

        assert not verify_schnorr(private_keys[0].public_key().x_only, sig,
                                  hashlib.sha256(b"other").digest())
        assert not verify_schnorr(private_keys[1].public_key().x_only, sig, message)

    def test_tampered_signature(self, private_keys):
        """Test that flipping a bit of s breaks the signature."""
        key = private_keys[0]
        message = hashlib.sha256(b"relaysig").digest()
        raw = bytearray(_sign(key.bytes, message))
        raw[63] ^= 1

        assert not verify_schnorr(key.public_key().x_only,
                                  SchnorrSignature.from_bytes(bytes(raw)), message)

    def test_input_lengths(self, public_keys):
        """Test that malformed inputs raise."""
        sig = SchnorrSignature.from_bytes(b'\x01' * 64)
        with pytest.raises(InvalidSignatureError, match="Message must be 32 bytes"):
            verify_schnorr(public_keys[0].x_only, sig, b'short')
        with pytest.raises(InvalidSignatureError, match="x-only"):
            verify_schnorr(public_keys[0].bytes, sig, b'\x00' * 32)
