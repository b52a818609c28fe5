"""
MuSig2 Multi-Signature Implementation for relaysig

This module provides BIP327 key aggregation, nonce generation and
aggregation, and signing sessions that collect public nonces and partial
signatures until a final BIP340 signature can be produced.

The SigningContext/SigningSession split supports "early" nonce generation:
a signer may produce its nonce before every public key is known, and later
resume with the saved secret nonce once the signer set is complete.

Key aggregation does not sort keys. Every signer must use the same order.

References:
- MuSig2 Paper: https://eprint.iacr.org/2020/1261.pdf
- BIP327: https://github.com/bitcoin/bips/blob/master/bip-0327.mediawiki
"""

import logging
import secrets
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from .exceptions import (
    MuSig2Error,
    InvalidContributionError,
    InvalidSignatureError,
    NonceGenerationError,
)
from .keys import (
    CURVE_ORDER,
    Point,
    PrivateKey,
    PublicKey,
    tagged_hash,
    int_from_bytes,
    bytes_from_int,
    base_mul,
    point_mul,
    point_add,
    point_negate,
    has_even_y,
    xbytes,
    cbytes,
    cbytes_ext,
    cpoint,
    cpoint_ext,
)
from .schnorr import SchnorrSignature, verify_schnorr


logger = logging.getLogger(__name__)

PUB_NONCE_SIZE = 66
SEC_NONCE_SIZE = 97
PARTIAL_SIG_SIZE = 32


# Key aggregation

def hash_keys(pubkeys: Sequence[bytes]) -> bytes:
    return tagged_hash('KeyAgg list', b''.join(pubkeys))


def get_second_key(pubkeys: Sequence[bytes]) -> bytes:
    """Return the first key that differs from pubkeys[0], or 33 zero bytes."""
    for pubkey in pubkeys[1:]:
        if pubkey != pubkeys[0]:
            return pubkey
    return bytes(33)


def key_agg_coefficient(key_list_hash: bytes, pubkey: bytes, second_key: bytes) -> int:
    if pubkey == second_key:
        return 1
    return int_from_bytes(tagged_hash('KeyAgg coefficient', key_list_hash + pubkey)) % CURVE_ORDER


@dataclass(frozen=True)
class KeyAggContext:
    """
    Result of aggregating an ordered list of public keys.
    """
    pubkeys: Tuple[bytes, ...]
    Q: Point
    key_list_hash: bytes
    second_key: bytes

    @property
    def aggregate_key(self) -> PublicKey:
        return PublicKey(self.Q)

    @property
    def x_only(self) -> bytes:
        return xbytes(self.Q)

    def coefficient(self, pubkey: bytes) -> int:
        if pubkey not in self.pubkeys:
            raise MuSig2Error("Public key is not part of the aggregated key set")
        return key_agg_coefficient(self.key_list_hash, pubkey, self.second_key)


def key_agg(pubkeys: Sequence[bytes]) -> KeyAggContext:
    """
    Aggregate compressed public keys in the given order.

    Args:
        pubkeys: 33-byte compressed public keys

    Returns:
        KeyAggContext holding the aggregate point Q

    Raises:
        InvalidContributionError: If any key is not a valid point
    """
    if not pubkeys:
        raise MuSig2Error("Cannot aggregate an empty key list")

    pubkeys = tuple(pubkeys)
    key_list_hash = hash_keys(pubkeys)
    second_key = get_second_key(pubkeys)

    terms = []
    for i, pubkey in enumerate(pubkeys):
        try:
            P_i = cpoint(pubkey)
        except ValueError:
            raise InvalidContributionError(i, "pubkey")
        a_i = key_agg_coefficient(key_list_hash, pubkey, second_key)
        terms.append(point_mul(P_i, a_i))

    Q = point_add(*terms)
    if Q is None:
        raise MuSig2Error("Aggregate public key is the point at infinity")

    return KeyAggContext(pubkeys=pubkeys, Q=Q, key_list_hash=key_list_hash, second_key=second_key)


# Nonces

@dataclass(frozen=True)
class Nonces:
    """
    MuSig2 nonce pair.

    secnonce is k1 || k2 || signer pubkey (97 bytes), pubnonce is
    R1 || R2 as compressed points (66 bytes).
    """
    secnonce: bytes
    pubnonce: bytes

    def __post_init__(self):
        if len(self.secnonce) != SEC_NONCE_SIZE:
            raise MuSig2Error(f"Secret nonce must be {SEC_NONCE_SIZE} bytes")
        if len(self.pubnonce) != PUB_NONCE_SIZE:
            raise MuSig2Error(f"Public nonce must be {PUB_NONCE_SIZE} bytes")

    @property
    def signer_pubkey(self) -> bytes:
        return self.secnonce[64:97]

    @classmethod
    def from_secnonce(cls, secnonce: bytes) -> 'Nonces':
        return cls(secnonce=bytes(secnonce), pubnonce=pubnonce_from_secnonce(secnonce))


def _nonce_hash(rand: bytes, pubkey: bytes, aggpk: bytes, i: int,
                msg_prefixed: bytes, extra_in: bytes) -> int:
    buf = b''
    buf += rand
    buf += len(pubkey).to_bytes(1, 'big')
    buf += pubkey
    buf += len(aggpk).to_bytes(1, 'big')
    buf += aggpk
    buf += msg_prefixed
    buf += len(extra_in).to_bytes(4, 'big')
    buf += extra_in
    buf += i.to_bytes(1, 'big')
    return int_from_bytes(tagged_hash('MuSig/nonce', buf))


def generate_nonces(public_key: PublicKey,
                    private_key: Optional[PrivateKey] = None,
                    aggregate_key: Optional[bytes] = None,
                    message: Optional[bytes] = None,
                    extra_in: Optional[bytes] = None,
                    rand: Optional[bytes] = None) -> Nonces:
    """
    Generate a fresh MuSig2 nonce pair (BIP327 NonceGen).

    Args:
        public_key: Signer's public key, embedded in the secret nonce
        private_key: Optional signer secret key mixed into the randomness
        aggregate_key: Optional 32-byte x-only aggregate key, if already known
        message: Optional message, if already known
        extra_in: Optional extra input
        rand: 32 bytes of randomness; drawn from the OS when omitted

    Returns:
        Nonces containing secret and public nonce
    """
    if aggregate_key is not None and len(aggregate_key) != 32:
        raise NonceGenerationError("Aggregate key must be 32 bytes (x-only)")
    if rand is None:
        rand = secrets.token_bytes(32)
    elif len(rand) != 32:
        raise NonceGenerationError("Randomness must be 32 bytes")

    if private_key is not None:
        mask = tagged_hash('MuSig/aux', rand)
        rand = bytes(a ^ b for a, b in zip(private_key.bytes, mask))

    if message is None:
        msg_prefixed = b'\x00'
    else:
        msg_prefixed = b'\x01' + len(message).to_bytes(8, 'big') + message

    pubkey = public_key.bytes
    aggpk = aggregate_key or b''
    extra_in = extra_in or b''

    k_1 = _nonce_hash(rand, pubkey, aggpk, 0, msg_prefixed, extra_in) % CURVE_ORDER
    k_2 = _nonce_hash(rand, pubkey, aggpk, 1, msg_prefixed, extra_in) % CURVE_ORDER
    if k_1 == 0 or k_2 == 0:
        raise NonceGenerationError("Generated nonce scalar is zero")

    secnonce = bytes_from_int(k_1) + bytes_from_int(k_2) + pubkey
    pubnonce = cbytes(base_mul(k_1)) + cbytes(base_mul(k_2))
    return Nonces(secnonce=secnonce, pubnonce=pubnonce)


def pubnonce_from_secnonce(secnonce: bytes) -> bytes:
    """
    Recompute the public nonce R1 || R2 belonging to a secret nonce.
    """
    if len(secnonce) != SEC_NONCE_SIZE:
        raise NonceGenerationError(f"Secret nonce must be {SEC_NONCE_SIZE} bytes")
    k_1 = int_from_bytes(secnonce[0:32])
    k_2 = int_from_bytes(secnonce[32:64])
    if not 0 < k_1 < CURVE_ORDER or not 0 < k_2 < CURVE_ORDER:
        raise NonceGenerationError("Secret nonce scalar out of range")
    return cbytes(base_mul(k_1)) + cbytes(base_mul(k_2))


def parse_pubnonce(pubnonce: bytes, signer: Optional[int] = None) -> Tuple[Point, Point]:
    """
    Decode a 66-byte public nonce into its two points.

    Raises:
        InvalidContributionError: If the nonce is malformed
    """
    if len(pubnonce) != PUB_NONCE_SIZE:
        raise InvalidContributionError(signer, "pubnonce",
                                       f"Public nonce must be {PUB_NONCE_SIZE} bytes, got {len(pubnonce)}")
    try:
        return cpoint(pubnonce[0:33]), cpoint(pubnonce[33:66])
    except ValueError as e:
        raise InvalidContributionError(signer, "pubnonce", f"Invalid public nonce from signer {signer}: {e}")


def nonce_agg(pubnonces: Sequence[bytes]) -> bytes:
    """
    Aggregate public nonces from all participants.

    Returns:
        66-byte aggregate nonce (infinity encoded as 33 zero bytes)
    """
    parsed = [parse_pubnonce(pubnonce, i) for i, pubnonce in enumerate(pubnonces)]
    aggnonce = b''
    for j in (0, 1):
        R_j = point_add(*(points[j] for points in parsed))
        aggnonce += cbytes_ext(R_j)
    return aggnonce


# Partial signatures

@dataclass(frozen=True)
class PartialSignature:
    """
    A single signer's MuSig2 partial signature scalar.
    """
    s: int

    def __post_init__(self):
        if not 0 <= self.s < CURVE_ORDER:
            raise InvalidSignatureError("Partial signature out of range")

    def encode(self) -> bytes:
        return bytes_from_int(self.s)

    @classmethod
    def decode(cls, data: bytes) -> 'PartialSignature':
        if len(data) != PARTIAL_SIG_SIZE:
            raise InvalidSignatureError(f"Partial signature must be {PARTIAL_SIG_SIZE} bytes")
        return cls(s=int_from_bytes(data))


@dataclass(frozen=True)
class SessionValues:
    """Values derived from the aggregate key, aggregate nonce and message."""
    Q: Point
    b: int
    R: Point
    e: int


def get_session_values(key_ctx: KeyAggContext, aggnonce: bytes, message: bytes) -> SessionValues:
    Q = key_ctx.Q
    b = int_from_bytes(tagged_hash('MuSig/noncecoef', aggnonce + xbytes(Q) + message)) % CURVE_ORDER
    try:
        R_1 = cpoint_ext(aggnonce[0:33])
        R_2 = cpoint_ext(aggnonce[33:66])
    except ValueError:
        raise InvalidContributionError(None, "aggnonce")
    R = point_add(R_1, point_mul(R_2, b))
    if R is None:
        R = base_mul(1)
    e = int_from_bytes(tagged_hash('BIP0340/challenge', xbytes(R) + xbytes(Q) + message)) % CURVE_ORDER
    return SessionValues(Q=Q, b=b, R=R, e=e)


def _same_point(A: Optional[Point], B: Optional[Point]) -> bool:
    return cbytes_ext(A) == cbytes_ext(B)


def partial_sig_verify(psig: PartialSignature, pubnonce: bytes, pubkey: bytes,
                       key_ctx: KeyAggContext, aggnonce: bytes, message: bytes) -> bool:
    """
    Verify one signer's partial signature.

    Args:
        psig: Partial signature to check
        pubnonce: The signer's 66-byte public nonce
        pubkey: The signer's 33-byte public key
        key_ctx: Aggregation context of the full signer set
        aggnonce: Aggregate nonce of the session
        message: 32-byte message

    Returns:
        True if the partial signature is valid
    """
    values = get_session_values(key_ctx, aggnonce, message)
    R_s1, R_s2 = parse_pubnonce(pubnonce)
    Re_s = point_add(R_s1, point_mul(R_s2, values.b))
    if not has_even_y(values.R):
        Re_s = point_negate(Re_s)
    P = cpoint(pubkey)
    a = key_ctx.coefficient(pubkey)
    g = 1 if has_even_y(values.Q) else CURVE_ORDER - 1
    return _same_point(base_mul(psig.s), point_add(Re_s, point_mul(P, values.e * a * g % CURVE_ORDER)))


# Signing context and session

class SigningContext:
    """
    Per-signer MuSig2 context.

    Built either with the complete ordered signer list, or with only the
    expected number of signers and early_nonce=True, in which case the only
    thing it can do is hand out a nonce to be used later.
    """

    def __init__(self, private_key: PrivateKey,
                 signers: Optional[Sequence[PublicKey]] = None,
                 num_signers: Optional[int] = None,
                 early_nonce: bool = False):
        if signers is None and num_signers is None:
            raise MuSig2Error("Either the signer list or the number of signers is required")

        self.private_key = private_key
        self.public_key = private_key.public_key()
        self.signers: List[PublicKey] = list(signers or [])
        self.num_signers = num_signers if num_signers is not None else len(self.signers)
        self.early_nonce = early_nonce

        if self.num_signers < 1:
            raise MuSig2Error("Number of signers must be positive")
        if len(self.signers) > self.num_signers:
            raise MuSig2Error(
                f"Got {len(self.signers)} signers but only {self.num_signers} are expected")
        if self.signers and self.public_key not in self.signers:
            raise MuSig2Error("Signing key is not among the known signers")
        if not self.has_all_signers and not early_nonce:
            raise MuSig2Error("All signers must be known unless early nonce generation is enabled")

        self._key_ctx: Optional[KeyAggContext] = None
        if self.has_all_signers:
            self._key_ctx = key_agg([signer.bytes for signer in self.signers])

    @property
    def has_all_signers(self) -> bool:
        return len(self.signers) == self.num_signers

    @property
    def key_agg_context(self) -> KeyAggContext:
        if self._key_ctx is None:
            raise MuSig2Error(
                f"Combined key unavailable: {len(self.signers)} of {self.num_signers} signers known")
        return self._key_ctx

    def combined_key(self) -> PublicKey:
        return self.key_agg_context.aggregate_key

    def early_session_nonce(self) -> Nonces:
        """Generate a nonce before the signer set is known."""
        if not self.early_nonce:
            raise MuSig2Error("Context was not created for early nonce generation")
        return generate_nonces(self.public_key, self.private_key)

    def new_session(self, nonces: Optional[Nonces] = None) -> 'SigningSession':
        """
        Open a signing session.

        Args:
            nonces: Previously generated nonces; a fresh pair bound to the
                aggregate key is generated when omitted

        Returns:
            SigningSession with our own public nonce already registered
        """
        key_ctx = self.key_agg_context
        if nonces is None:
            nonces = generate_nonces(self.public_key, self.private_key,
                                     aggregate_key=key_ctx.x_only)
        elif nonces.signer_pubkey != self.public_key.bytes:
            raise MuSig2Error("Secret nonce was generated for a different key")
        return SigningSession(self, nonces)


class SigningSession:
    """
    MuSig2 signing session state for one signer.
    """

    def __init__(self, context: SigningContext, nonces: Nonces):
        self._context = context
        self._secnonce = bytearray(nonces.secnonce)
        self._pubnonce = nonces.pubnonce
        self._pubnonces: List[bytes] = [nonces.pubnonce]
        self._partial_sigs: List[PartialSignature] = []
        self._values: Optional[SessionValues] = None
        self._message: Optional[bytes] = None
        self._final_sig: Optional[SchnorrSignature] = None

    @property
    def public_nonce(self) -> bytes:
        return self._pubnonce

    @property
    def num_signers(self) -> int:
        return self._context.num_signers

    @property
    def have_all_nonces(self) -> bool:
        return len(self._pubnonces) == self.num_signers

    @property
    def have_all_signatures(self) -> bool:
        return len(self._partial_sigs) == self.num_signers

    def register_pub_nonce(self, pubnonce: bytes) -> bool:
        """
        Add another signer's public nonce.

        Returns:
            True once all nonces are known
        """
        if self.have_all_nonces:
            raise MuSig2Error("Already have all nonces")
        parse_pubnonce(pubnonce, len(self._pubnonces))
        self._pubnonces.append(bytes(pubnonce))
        return self.have_all_nonces

    def sign(self, message: bytes) -> PartialSignature:
        """
        Produce our partial signature and keep it for the final combination.

        The secret nonce is wiped afterwards; signing twice in the same
        session fails.
        """
        if len(message) != 32:
            raise MuSig2Error("Message must be 32 bytes")
        if not self.have_all_nonces:
            raise MuSig2Error(
                f"Only {len(self._pubnonces)} of {self.num_signers} nonces registered")

        key_ctx = self._context.key_agg_context
        aggnonce = nonce_agg(self._pubnonces)
        values = get_session_values(key_ctx, aggnonce, message)

        k_1_ = int_from_bytes(self._secnonce[0:32])
        k_2_ = int_from_bytes(self._secnonce[32:64])
        self._secnonce[:64] = bytes(64)
        if not 0 < k_1_ < CURVE_ORDER or not 0 < k_2_ < CURVE_ORDER:
            raise MuSig2Error("Secret nonce is invalid or was already used")

        k_1 = k_1_ if has_even_y(values.R) else CURVE_ORDER - k_1_
        k_2 = k_2_ if has_even_y(values.R) else CURVE_ORDER - k_2_

        pubkey = self._context.public_key.bytes
        if pubkey != bytes(self._secnonce[64:97]):
            raise MuSig2Error("Public key does not match the secret nonce")

        a = key_ctx.coefficient(pubkey)
        g = 1 if has_even_y(values.Q) else CURVE_ORDER - 1
        d = g * self._context.private_key.scalar % CURVE_ORDER
        s = (k_1 + values.b * k_2 + values.e * a * d) % CURVE_ORDER
        psig = PartialSignature(s)

        if not partial_sig_verify(psig, self._pubnonce, pubkey, key_ctx, aggnonce, message):
            raise MuSig2Error("Own partial signature failed verification")

        self._values = values
        self._message = message
        self._partial_sigs.append(psig)
        logger.debug(f"Produced partial signature ({len(self._partial_sigs)}/{self.num_signers})")

        if self.have_all_signatures:
            self._finalize()
        return psig

    def combine_sig(self, psig: PartialSignature) -> bool:
        """
        Add another signer's partial signature.

        Returns:
            True once all partial signatures are combined and the final
            signature is available
        """
        if self._values is None:
            raise MuSig2Error("Own partial signature must be produced before combining")
        if self.have_all_signatures:
            raise MuSig2Error("Already have all partial signatures")

        self._partial_sigs.append(psig)
        if self.have_all_signatures:
            self._finalize()
            return True
        return False

    def _finalize(self):
        s = sum(psig.s for psig in self._partial_sigs) % CURVE_ORDER
        signature = SchnorrSignature(r=xbytes(self._values.R), s=bytes_from_int(s))
        if not verify_schnorr(xbytes(self._values.Q), signature, self._message):
            raise InvalidSignatureError("Combined signature does not verify under the aggregate key")
        self._final_sig = signature

    def final_sig(self) -> SchnorrSignature:
        if self._final_sig is None:
            raise MuSig2Error(
                f"Final signature unavailable: {len(self._partial_sigs)} of {self.num_signers} partial signatures")
        return self._final_sig
