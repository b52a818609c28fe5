"""
Ceremony Exceptions for relaysig

Every error aborts the current invocation. Nothing is written to the private
channel unless the whole step succeeded, so the operator can fix the
offending input and re-run the same command.
"""


class CeremonyError(Exception):
    """Base exception for all signing ceremony errors."""
    pass


class DecodeError(CeremonyError):
    """Raised when a hex/base64 field is malformed or has the wrong length."""
    pass


class ContextError(CeremonyError):
    """Raised when the signer set cannot be turned into an aggregation context."""
    pass


class MissingSecretError(CeremonyError):
    """Raised when the secret nonce from an earlier step is required but absent."""
    pass


class NonceRegistrationError(CeremonyError):
    """Raised when peer nonces cannot be registered or the nonce set is inconsistent."""
    pass


class SigningError(CeremonyError):
    """Raised when producing our partial signature fails."""
    pass


class CombineError(CeremonyError):
    """Raised when partial signatures cannot be combined into a valid signature."""
    pass


class EncodeError(CeremonyError):
    """Raised when ceremony state cannot be written as a resume command."""
    pass
