"""
Key Management and Point Arithmetic for relaysig

This module wraps coincurve private/public keys and exposes the handful of
secp256k1 group operations that BIP340 and BIP327 are written in terms of.

Points are represented as coincurve PublicKey objects and the point at
infinity as None.

References:
- BIP340: https://github.com/bitcoin/bips/blob/master/bip-0340.mediawiki
- BIP327: https://github.com/bitcoin/bips/blob/master/bip-0327.mediawiki
"""

import hashlib
import secrets
from typing import Optional, Union
from coincurve import PrivateKey as CoinCurvePrivateKey, PublicKey as CoinCurvePublicKey

from .exceptions import InvalidKeyError


# secp256k1 group order and field prime
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F

Point = CoinCurvePublicKey


def tagged_hash(tag: str, data: bytes) -> bytes:
    """
    Compute BIP340 tagged hash: SHA256(SHA256(tag) + SHA256(tag) + data).

    Args:
        tag: Tag string for the hash
        data: Data to hash

    Returns:
        32-byte tagged hash
    """
    tag_hash = hashlib.sha256(tag.encode('utf-8')).digest()
    return hashlib.sha256(tag_hash + tag_hash + data).digest()


def int_from_bytes(data: bytes) -> int:
    return int.from_bytes(data, 'big')


def bytes_from_int(value: int) -> bytes:
    return value.to_bytes(32, 'big')


# Group operations

def base_mul(scalar: int) -> Optional[Point]:
    """Compute scalar*G, returning None for the zero scalar."""
    scalar %= CURVE_ORDER
    if scalar == 0:
        return None
    return CoinCurvePublicKey.from_secret(bytes_from_int(scalar))


def point_mul(point: Optional[Point], scalar: int) -> Optional[Point]:
    """Compute scalar*P."""
    scalar %= CURVE_ORDER
    if point is None or scalar == 0:
        return None
    return point.multiply(bytes_from_int(scalar))


def point_add(*points: Optional[Point]) -> Optional[Point]:
    """
    Sum an arbitrary number of points.

    Args:
        points: Points to add, None standing for the point at infinity

    Returns:
        The sum, or None if it is the point at infinity
    """
    present = [point for point in points if point is not None]
    if not present:
        return None
    if len(present) == 1:
        return present[0]
    try:
        return CoinCurvePublicKey.combine_keys(present)
    except ValueError:
        # libsecp256k1 refuses to serialize the point at infinity
        return None


def point_negate(point: Optional[Point]) -> Optional[Point]:
    if point is None:
        return None
    compressed = point.format(compressed=True)
    return CoinCurvePublicKey(bytes([compressed[0] ^ 1]) + compressed[1:])


def has_even_y(point: Point) -> bool:
    return point.format(compressed=True)[0] == 0x02


def xbytes(point: Point) -> bytes:
    """32-byte x coordinate of a point."""
    return point.format(compressed=True)[1:]


def cbytes(point: Point) -> bytes:
    """33-byte compressed encoding of a point."""
    return point.format(compressed=True)


def cbytes_ext(point: Optional[Point]) -> bytes:
    """Compressed encoding that maps infinity to 33 zero bytes."""
    if point is None:
        return bytes(33)
    return cbytes(point)


def cpoint(data: bytes) -> Point:
    """
    Parse a 33-byte compressed point.

    Raises:
        ValueError: If the encoding is not a valid compressed point
    """
    if len(data) != 33 or data[0] not in (0x02, 0x03):
        raise ValueError('Not a valid compressed point.')
    if int_from_bytes(data[1:]) >= FIELD_PRIME:
        raise ValueError('Not a valid compressed point.')
    try:
        return CoinCurvePublicKey(data)
    except ValueError as e:
        raise ValueError(f'Not a valid compressed point: {e}')


def cpoint_ext(data: bytes) -> Optional[Point]:
    if data == bytes(33):
        return None
    return cpoint(data)


def lift_x(x: bytes) -> Optional[Point]:
    """
    Lift x-coordinate to the point with even y.

    Args:
        x: 32-byte x-coordinate

    Returns:
        Point with even y, or None if x is not on the curve
    """
    if len(x) != 32:
        return None
    try:
        return cpoint(b'\x02' + x)
    except ValueError:
        return None


class PrivateKey:
    """
    Wrapper for secp256k1 private keys.
    """

    def __init__(self, key_bytes: Optional[bytes] = None):
        """
        Initialize private key.

        Args:
            key_bytes: 32-byte private key. If None, generates random key.
        """
        if key_bytes is None:
            key_bytes = secrets.token_bytes(32)
            while not 0 < int_from_bytes(key_bytes) < CURVE_ORDER:
                key_bytes = secrets.token_bytes(32)

        if not isinstance(key_bytes, bytes) or len(key_bytes) != 32:
            raise InvalidKeyError("Private key must be 32 bytes")

        key_int = int_from_bytes(key_bytes)
        if key_int == 0 or key_int >= CURVE_ORDER:
            raise InvalidKeyError("Private key out of valid range")

        self._key = CoinCurvePrivateKey(key_bytes)

    @classmethod
    def from_hex(cls, hex_key: str) -> 'PrivateKey':
        try:
            key_bytes = bytes.fromhex(hex_key)
        except ValueError as e:
            raise InvalidKeyError(f"Private key is not valid hex: {e}")
        return cls(key_bytes)

    @property
    def bytes(self) -> bytes:
        """Get private key as bytes."""
        return self._key.secret

    @property
    def scalar(self) -> int:
        return int_from_bytes(self._key.secret)

    @property
    def hex(self) -> str:
        """Get private key as hex string."""
        return self._key.secret.hex()

    def public_key(self) -> 'PublicKey':
        """Get corresponding public key."""
        return PublicKey(self._key.public_key)

    def __repr__(self) -> str:
        return f"PrivateKey(<redacted>, pubkey={self.public_key().hex})"


class PublicKey:
    """
    Wrapper for secp256k1 public keys.

    Equality and hashing use the compressed encoding, so keys parsed from
    compressed and uncompressed forms compare equal.
    """

    def __init__(self, key_data: Union[bytes, CoinCurvePublicKey]):
        """
        Initialize public key.

        Args:
            key_data: Public key bytes (33 or 65 bytes) or CoinCurvePublicKey
        """
        if isinstance(key_data, CoinCurvePublicKey):
            self._key = key_data
            return

        if not isinstance(key_data, bytes):
            raise InvalidKeyError("Public key data must be bytes")
        if len(key_data) not in [33, 65]:
            raise InvalidKeyError("Public key must be 33 or 65 bytes")
        try:
            self._key = CoinCurvePublicKey(key_data)
        except ValueError as e:
            raise InvalidKeyError(f"Failed to create public key: {e}")

    @property
    def bytes(self) -> bytes:
        """Get compressed public key as bytes."""
        return self._key.format(compressed=True)

    @property
    def hex(self) -> str:
        """Get compressed public key as hex string."""
        return self.bytes.hex()

    @property
    def x_only(self) -> bytes:
        """Get x-only public key (32 bytes)."""
        return self.bytes[1:]

    def __eq__(self, other) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.bytes == other.bytes

    def __hash__(self) -> int:
        return hash(self.bytes)

    def __repr__(self) -> str:
        return f"PublicKey({self.hex})"

