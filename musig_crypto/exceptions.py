"""
Cryptographic Exceptions for relaysig

This module defines the exceptions raised by the secp256k1, Schnorr and
MuSig2 primitives.
"""


class CryptoError(Exception):
    """Base exception for all cryptographic errors."""
    pass


class InvalidKeyError(CryptoError):
    """Raised when a key is invalid or malformed."""
    pass


class InvalidSignatureError(CryptoError):
    """Raised when a signature is invalid or verification fails."""
    pass


class NonceGenerationError(CryptoError):
    """Raised when nonce generation fails."""
    pass


class MuSig2Error(CryptoError):
    """Raised when MuSig2 operations fail."""
    pass


class InvalidContributionError(MuSig2Error):
    """
    Raised when a value contributed by another signer is invalid.

    contrib is one of "pubkey", "pubnonce", "aggnonce" or "psig".
    """

    def __init__(self, signer, contrib, message=None):
        self.signer = signer
        self.contrib = contrib
        super().__init__(message or f"Invalid {contrib} contributed by signer {signer}")
