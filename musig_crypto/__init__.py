"""
relaysig - Cryptographic Primitives Module

This module provides the cryptographic building blocks used by the signing
ceremony:
- secp256k1 key wrappers and point arithmetic
- BIP340 Schnorr signature verification
- BIP327 MuSig2 key aggregation, nonces and signing sessions

Dependencies:
- coincurve: Fast secp256k1 operations
- hashlib: Tagged hashes
- secrets: Secure random number generation
"""

from .exceptions import (
    CryptoError,
    InvalidKeyError,
    InvalidSignatureError,
    NonceGenerationError,
    MuSig2Error,
    InvalidContributionError,
)
from .keys import PrivateKey, PublicKey, tagged_hash
from .schnorr import SchnorrSignature, verify_schnorr
from .musig2 import (
    PUB_NONCE_SIZE,
    SEC_NONCE_SIZE,
    PARTIAL_SIG_SIZE,
    KeyAggContext,
    Nonces,
    PartialSignature,
    SigningContext,
    SigningSession,
    key_agg,
    generate_nonces,
    pubnonce_from_secnonce,
    nonce_agg,
    partial_sig_verify,
)

__version__ = "0.1.0"
__all__ = [
    # Exceptions
    "CryptoError",
    "InvalidKeyError",
    "InvalidSignatureError",
    "NonceGenerationError",
    "MuSig2Error",
    "InvalidContributionError",

    # Keys
    "PrivateKey",
    "PublicKey",
    "tagged_hash",

    # Schnorr
    "SchnorrSignature",
    "verify_schnorr",

    # MuSig2
    "PUB_NONCE_SIZE",
    "SEC_NONCE_SIZE",
    "PARTIAL_SIG_SIZE",
    "KeyAggContext",
    "Nonces",
    "PartialSignature",
    "SigningContext",
    "SigningSession",
    "key_agg",
    "generate_nonces",
    "pubnonce_from_secnonce",
    "nonce_agg",
    "partial_sig_verify",
]
