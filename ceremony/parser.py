"""
Ceremony Input Parser

Decodes the hex/base64 fields of one invocation into typed values. Parsing is
all-or-nothing: either every field is valid and a CeremonyInputs value is
returned, or DecodeError is raised and nothing is built.
"""

import base64
import binascii
from typing import Iterable, List, Optional

from musig_crypto import (
    PrivateKey,
    PublicKey,
    PartialSignature,
    InvalidKeyError,
    InvalidSignatureError,
    PUB_NONCE_SIZE,
    SEC_NONCE_SIZE,
    PARTIAL_SIG_SIZE,
)

from .exceptions import DecodeError
from .state import CeremonyInputs, CeremonyState


def _decode_hex(value: str, field_name: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise DecodeError(f"{field_name} is not valid hex: {e}")


def parse_secret_key(secret_key_hex: str) -> PrivateKey:
    key_bytes = _decode_hex(secret_key_hex, "secret key")
    if len(key_bytes) != 32:
        raise DecodeError(f"secret key must be 32 bytes, got {len(key_bytes)}")
    try:
        return PrivateKey(key_bytes)
    except InvalidKeyError as e:
        raise DecodeError(f"invalid secret key: {e}")


def parse_num_signers(num_signers) -> int:
    try:
        value = int(num_signers)
    except (TypeError, ValueError):
        raise DecodeError(f"number of signers must be an integer, got {num_signers!r}")
    if value < 1:
        raise DecodeError(f"number of signers must be at least 1, got {value}")
    return value


def parse_pubkey(pubkey_hex: str, index: int = 0) -> bytes:
    """
    Decode a public key and normalize it to 33-byte compressed form.
    """
    key_bytes = _decode_hex(pubkey_hex, f"public key #{index}")
    try:
        return PublicKey(key_bytes).bytes
    except InvalidKeyError as e:
        raise DecodeError(f"invalid public key #{index} {pubkey_hex}: {e}")


def parse_pubnonce(pubnonce_hex: str, index: int = 0) -> bytes:
    nonce = _decode_hex(pubnonce_hex, f"public nonce #{index}")
    if len(nonce) != PUB_NONCE_SIZE:
        raise DecodeError(
            f"nonce is not {PUB_NONCE_SIZE} bytes (got {len(nonce)}): {pubnonce_hex}")
    return nonce


def parse_partial_signature(partial_hex: str, index: int = 0) -> bytes:
    data = _decode_hex(partial_hex, f"partial signature #{index}")
    if len(data) != PARTIAL_SIG_SIZE:
        raise DecodeError(
            f"partial signature is not {PARTIAL_SIG_SIZE} bytes (got {len(data)}): {partial_hex}")
    try:
        return PartialSignature.decode(data).encode()
    except InvalidSignatureError as e:
        raise DecodeError(f"invalid partial signature {partial_hex}: {e}")


def parse_secret_nonce(secret_nonce_b64: Optional[str]) -> Optional[bytes]:
    """
    Decode the base64 secret nonce saved from an earlier step.

    Returns:
        97 bytes, or None when no secret nonce was given
    """
    if not secret_nonce_b64:
        return None
    try:
        secnonce = base64.b64decode(secret_nonce_b64, validate=True)
    except binascii.Error as e:
        raise DecodeError(f"secret nonce is not valid base64: {e}")
    if len(secnonce) != SEC_NONCE_SIZE:
        raise DecodeError(f"secret nonce must be {SEC_NONCE_SIZE} bytes, got {len(secnonce)}")
    return secnonce


def _parse_all(values: Iterable[str], parse) -> List[bytes]:
    return [parse(value, i) for i, value in enumerate(values)]


def parse_inputs(secret_key_hex: str,
                 num_signers,
                 pubkeys_hex: Iterable[str] = (),
                 pubnonces_hex: Iterable[str] = (),
                 secret_nonce_b64: Optional[str] = None,
                 partial_signatures_hex: Iterable[str] = ()) -> CeremonyInputs:
    """
    Decode and validate every input of one ceremony invocation.

    Args:
        secret_key_hex: Our 32-byte secret key in hex
        num_signers: Target number of signers N
        pubkeys_hex: Known public keys, in relay order
        pubnonces_hex: Known 66-byte public nonces
        secret_nonce_b64: Optional secret nonce kept from an earlier step
        partial_signatures_hex: Known partial signatures

    Returns:
        CeremonyInputs

    Raises:
        DecodeError: If any field is malformed
    """
    secret_key = parse_secret_key(secret_key_hex)
    state = CeremonyState(
        num_signers=parse_num_signers(num_signers),
        pubkeys=tuple(_parse_all(pubkeys_hex, parse_pubkey)),
        pubnonces=tuple(_parse_all(pubnonces_hex, parse_pubnonce)),
        partial_signatures=tuple(_parse_all(partial_signatures_hex, parse_partial_signature)),
    )
    return CeremonyInputs(
        secret_key=secret_key,
        state=state,
        secret_nonce=parse_secret_nonce(secret_nonce_b64),
    )
