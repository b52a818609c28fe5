"""
Tests for Ceremony Input Parser

Tests decoding of every hex/base64 field and the all-or-nothing behavior of
parse_inputs.
"""

import base64

import pytest
from coincurve import PrivateKey as CoinCurvePrivateKey

from ceremony import DecodeError, parse_inputs
from ceremony.parser import (
    parse_secret_key,
    parse_num_signers,
    parse_pubkey,
    parse_pubnonce,
    parse_partial_signature,
    parse_secret_nonce,
)


class TestFieldParsers:
    """Test individual field decoders."""

    def test_secret_key(self, secret_keys):
        """Test valid and invalid secret keys."""
        assert parse_secret_key(secret_keys[0]).hex == secret_keys[0]

        with pytest.raises(DecodeError, match="not valid hex"):
            parse_secret_key("not-hex")
        with pytest.raises(DecodeError, match="must be 32 bytes, got 31"):
            parse_secret_key("01" * 31)
        with pytest.raises(DecodeError, match="invalid secret key"):
            parse_secret_key("00" * 32)

    def test_num_signers(self):
        """Test signer count validation."""
        assert parse_num_signers("3") == 3
        assert parse_num_signers(1) == 1

        with pytest.raises(DecodeError, match="at least 1"):
            parse_num_signers(0)
        with pytest.raises(DecodeError, match="must be an integer"):
            parse_num_signers("two")

    def test_pubkey_normalized_to_compressed(self, private_keys):
        """Test that uncompressed keys are stored compressed."""
        coin_key = CoinCurvePrivateKey(private_keys[0].bytes).public_key
        uncompressed = coin_key.format(compressed=False).hex()

        assert parse_pubkey(uncompressed) == coin_key.format(compressed=True)

    def test_invalid_pubkey(self):
        """Test that invalid points name their position."""
        with pytest.raises(DecodeError, match="public key #2"):
            parse_pubkey("05" + "11" * 32, 2)

    def test_pubnonce_length(self):
        """Test that nonces must be exactly 66 bytes."""
        assert parse_pubnonce("02" * 66) == b'\x02' * 66

        with pytest.raises(DecodeError, match=r"nonce is not 66 bytes \(got 65\)"):
            parse_pubnonce("02" * 65)

    def test_partial_signature(self):
        """Test partial signature length and range."""
        assert parse_partial_signature("00" * 31 + "07") == b'\x00' * 31 + b'\x07'

        with pytest.raises(DecodeError, match="not 32 bytes"):
            parse_partial_signature("00" * 33)
        with pytest.raises(DecodeError, match="invalid partial signature"):
            parse_partial_signature("ff" * 32)

    def test_secret_nonce(self):
        """Test base64 secret nonce decoding."""
        raw = bytes(range(97))
        assert parse_secret_nonce(base64.b64encode(raw).decode()) == raw
        assert parse_secret_nonce(None) is None
        assert parse_secret_nonce("") is None

        with pytest.raises(DecodeError, match="not valid base64"):
            parse_secret_nonce("***")
        with pytest.raises(DecodeError, match="must be 97 bytes, got 96"):
            parse_secret_nonce(base64.b64encode(bytes(96)).decode())


class TestParseInputs:
    """Test parsing a whole invocation."""

    def test_minimal_inputs(self, secret_keys):
        """Test an invocation with nothing relayed yet."""
        inputs = parse_inputs(secret_keys[0], 2)

        assert inputs.state.num_signers == 2
        assert inputs.state.pubkeys == ()
        assert inputs.state.pubnonces == ()
        assert inputs.state.partial_signatures == ()
        assert inputs.secret_nonce is None

    def test_preserves_order(self, secret_keys, public_keys):
        """Test that relayed lists keep their order."""
        hex_keys = [k.hex for k in reversed(public_keys[:3])]
        inputs = parse_inputs(secret_keys[0], 4, pubkeys_hex=hex_keys)

        assert [k.hex() for k in inputs.state.pubkeys] == hex_keys

    def test_one_bad_field_fails_everything(self, secret_keys, public_keys):
        """Test that a single malformed nonce aborts parsing."""
        with pytest.raises(DecodeError, match="nonce is not 66 bytes"):
            parse_inputs(secret_keys[0], 2,
                         pubkeys_hex=[public_keys[1].hex],
                         pubnonces_hex=["02" * 66, "02" * 65])

    def test_secrets_not_in_repr(self, secret_keys):
        """Test that the inputs repr carries no secrets."""
        nonce_b64 = base64.b64encode(bytes(range(97))).decode()
        inputs = parse_inputs(secret_keys[0], 2, secret_nonce_b64=nonce_b64)

        assert secret_keys[0] not in repr(inputs)
        assert "secret_nonce" not in repr(inputs)
