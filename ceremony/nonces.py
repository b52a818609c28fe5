"""
Nonce Coordinator

Generates or recovers our nonce pair and registers the peers' public nonces
with the signing session.

Three cases:
- signer set incomplete: a fresh nonce is pre-committed under the early
  context; the operator keeps the secret half for a later step
- we are the Nth joiner: the final nonce is generated directly under the
  complete context, no saved secret nonce involved
- we joined earlier: the saved secret nonce must be supplied
"""

import logging
from typing import Optional, Sequence

from musig_crypto import CryptoError, Nonces, SigningContext, SigningSession

from .exceptions import ContextError, DecodeError, MissingSecretError, NonceRegistrationError


logger = logging.getLogger(__name__)


def precommit_nonce(context: SigningContext) -> Nonces:
    """
    Generate a nonce before all signers are known.
    """
    try:
        nonces = context.early_session_nonce()
    except CryptoError as e:
        raise NonceRegistrationError(f"failed to generate early nonce: {e}")
    logger.info("Generated early nonce; the secret half must be kept for the signing step")
    return nonces


def open_session(context: SigningContext, secret_nonce: Optional[bytes],
                 last_joiner: bool) -> SigningSession:
    """
    Open the signing session with our own nonce.

    Args:
        context: Complete signing context
        secret_nonce: 97-byte secret nonce from an earlier step, if any
        last_joiner: True if this invocation added the final key

    Returns:
        SigningSession holding our nonce

    Raises:
        MissingSecretError: If we joined earlier and no secret nonce is given
    """
    if last_joiner:
        try:
            session = context.new_session()
        except CryptoError as e:
            raise ContextError(f"failed to create session as the last peer to include our key: {e}")
        logger.info("Generated final nonce as the last signer to join")
        return session

    if secret_nonce is None:
        raise MissingSecretError("missing --musig2-nonce-secret value")

    try:
        nonces = Nonces.from_secnonce(secret_nonce)
    except CryptoError as e:
        raise DecodeError(f"invalid --musig2-nonce-secret: {e}")

    try:
        return context.new_session(nonces)
    except CryptoError as e:
        raise ContextError(f"failed to create signing session with secret nonce: {e}")


def register_peer_nonces(session: SigningSession, pubnonces: Sequence[bytes]) -> None:
    """
    Register every known public nonce except our own.

    Raises:
        NonceRegistrationError: If a nonce is malformed, there are too many,
            or the session is still missing nonces afterwards
    """
    complete = session.have_all_nonces
    registered = 0
    for i, pubnonce in enumerate(pubnonces):
        if pubnonce == session.public_nonce:
            continue
        try:
            complete = session.register_pub_nonce(pubnonce)
        except CryptoError as e:
            raise NonceRegistrationError(f"failed to register nonce #{i}: {e}")
        registered += 1

    if not complete:
        raise NonceRegistrationError(
            "we've registered all the nonces we had but at least one is missing, this shouldn't happen")
    logger.debug(f"Registered {registered} peer nonces")
