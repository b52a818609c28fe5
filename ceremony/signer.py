"""
Partial Signer

Produces our partial signature and, when every other partial signature has
been supplied, combines them into the final BIP340 signature.

Our own partial signature is always computed fresh. The relayed list is
assumed not to contain it already; nothing checks this.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from musig_crypto import CryptoError, PartialSignature, SigningSession

from .exceptions import CombineError, SigningError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningResult:
    """Our partial signature and, on the last step, the final signature."""
    own_partial: bytes
    final_signature: Optional[bytes] = None

    @property
    def is_final(self) -> bool:
        return self.final_signature is not None


def sign_partial(session: SigningSession, message: bytes) -> bytes:
    """
    Produce our 32-byte partial signature over message.
    """
    try:
        return session.sign(message).encode()
    except CryptoError as e:
        raise SigningError(f"failed to produce partial signature: {e}")


def combine_partials(session: SigningSession, partial_signatures: Sequence[bytes]) -> bytes:
    """
    Feed the supplied partial signatures into a session that already holds
    ours, and return the 64-byte final signature.

    Raises:
        CombineError: If a partial signature is rejected or the combined
            signature does not verify
    """
    for i, data in enumerate(partial_signatures):
        try:
            session.combine_sig(PartialSignature.decode(data))
        except CryptoError as e:
            raise CombineError(f"failed to combine partial signature #{i}: {e}")

    try:
        return session.final_sig().to_bytes()
    except CryptoError as e:
        raise CombineError(f"failed to finalize signature: {e}")


def sign(session: SigningSession, message: bytes,
         partial_signatures: Sequence[bytes], num_signers: int) -> SigningResult:
    """
    Sign, and combine if ours is the last missing partial signature.

    Args:
        session: Session with all nonces registered
        message: 32-byte message (event id)
        partial_signatures: Partial signatures supplied by earlier signers
        num_signers: Target number of signers N

    Returns:
        SigningResult
    """
    supplied = len(partial_signatures)
    if supplied + 1 > num_signers:
        raise CombineError(
            f"got {supplied} partial signatures but only {num_signers - 1} other signers exist")

    own_partial = sign_partial(session, message)

    if supplied + 1 < num_signers:
        logger.info(f"Partial signature {supplied + 1} of {num_signers} produced")
        return SigningResult(own_partial=own_partial)

    final_signature = combine_partials(session, partial_signatures)
    logger.info(f"Combined {num_signers} partial signatures into the final signature")
    return SigningResult(own_partial=own_partial, final_signature=final_signature)
