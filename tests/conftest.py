"""
Pytest configuration and fixtures for relaysig tests.
"""

import pytest

from ceremony import Event, CeremonyInputs, advance, parse_inputs
from musig_crypto import PrivateKey


# Fixed secret keys so failures are reproducible
SECRET_KEYS = [
    "b7e151628aed2a6abf7158809cf4f3c762e7160f38b4da56a784d9045190cfef",
    "c90fdaa22168c234c4c6628b80dc1cd129024e088a67cc74020bbea63b14e5c9",
    "0b432b2677937381aef05bb02a66ecd012773062cf3fa2549e44f58ed2401710",
    "3c9229289a6125f7fdf1885a47f8dcd7d0d4b1f6f3c1b31c7c5a3e28a0b0c1d2",
]


@pytest.fixture
def secret_keys():
    """Hex secret keys for up to four signers."""
    return list(SECRET_KEYS)


@pytest.fixture
def private_keys():
    """PrivateKey objects matching secret_keys."""
    return [PrivateKey.from_hex(key) for key in SECRET_KEYS]


@pytest.fixture
def public_keys(private_keys):
    """Compressed public keys matching secret_keys."""
    return [key.public_key() for key in private_keys]


@pytest.fixture
def sample_event():
    """Unsigned text note."""
    return Event(
        kind=1,
        created_at=1700000000,
        content="hello from a combined key",
        tags=(("t", "musig2"), ("p", "a" * 64, "wss://relay.example.com")),
    )


def step(secret_key_hex, event, num_signers, state=None, secret_nonce=None):
    """
    Run one ceremony step from the relayed state of the previous one.

    Args:
        secret_key_hex: Secret key of the signer taking this step
        event: Event being signed
        num_signers: Target number of signers
        state: CeremonyState relayed from the previous step, if any
        secret_nonce: Secret nonce this signer saved earlier, if any

    Returns:
        The outcome of advance()
    """
    pubkeys = [k.hex() for k in state.pubkeys] if state else []
    pubnonces = [n.hex() for n in state.pubnonces] if state else []
    partials = [p.hex() for p in state.partial_signatures] if state else []
    inputs = parse_inputs(secret_key_hex, num_signers, pubkeys, pubnonces,
                          None, partials)
    if secret_nonce is not None:
        inputs = CeremonyInputs(secret_key=inputs.secret_key, state=inputs.state,
                                secret_nonce=secret_nonce)
    return advance(inputs, event)


@pytest.fixture
def run_step():
    """Helper running one ceremony step."""
    return step
