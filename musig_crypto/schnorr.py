"""
BIP340 Schnorr Signatures for relaysig

Signature value type and verification. Aggregated MuSig2 signatures are plain
BIP340 signatures under the x-only combined key, so this is also what a Nostr
relay runs against the finished event.
"""

from dataclasses import dataclass

from .exceptions import InvalidSignatureError
from .keys import (
    CURVE_ORDER,
    FIELD_PRIME,
    tagged_hash,
    int_from_bytes,
    base_mul,
    point_mul,
    point_add,
    point_negate,
    has_even_y,
    xbytes,
    lift_x,
)


SIGNATURE_SIZE = 64


@dataclass(frozen=True)
class SchnorrSignature:
    """
    BIP340 Schnorr signature representation.
    """
    r: bytes  # 32-byte x-coordinate of R point
    s: bytes  # 32-byte scalar

    def __post_init__(self):
        """Validate signature components."""
        if len(self.r) != 32:
            raise InvalidSignatureError("Schnorr r must be 32 bytes")
        if len(self.s) != 32:
            raise InvalidSignatureError("Schnorr s must be 32 bytes")

    @classmethod
    def from_bytes(cls, sig_bytes: bytes) -> 'SchnorrSignature':
        """
        Parse 64-byte Schnorr signature.

        Args:
            sig_bytes: 64-byte signature (32-byte r + 32-byte s)

        Returns:
            SchnorrSignature object
        """
        if len(sig_bytes) != SIGNATURE_SIZE:
            raise InvalidSignatureError("Schnorr signature must be 64 bytes")

        return cls(r=sig_bytes[:32], s=sig_bytes[32:])

    def to_bytes(self) -> bytes:
        """
        Encode signature as 64 bytes.

        Returns:
            64-byte signature
        """
        return self.r + self.s

    @property
    def hex(self) -> str:
        return self.to_bytes().hex()


def verify_schnorr(public_key: bytes, signature: SchnorrSignature,
                   message: bytes) -> bool:
    """
    Verify BIP340 Schnorr signature.

    Args:
        public_key: 32-byte x-only public key
        signature: Schnorr signature to verify
        message: 32-byte message that was signed

    Returns:
        True if signature is valid
    """
    if len(message) != 32:
        raise InvalidSignatureError("Message must be 32 bytes")
    if len(public_key) != 32:
        raise InvalidSignatureError("Public key must be 32 bytes (x-only)")

    P = lift_x(public_key)
    r = int_from_bytes(signature.r)
    s = int_from_bytes(signature.s)
    if P is None or r >= FIELD_PRIME or s >= CURVE_ORDER:
        return False

    e = int_from_bytes(tagged_hash("BIP0340/challenge", signature.r + public_key + message)) % CURVE_ORDER

    # R = s*G - e*P
    R = point_add(base_mul(s), point_mul(point_negate(P), e))
    if R is None or not has_even_y(R):
        return False
    return xbytes(R) == signature.r
