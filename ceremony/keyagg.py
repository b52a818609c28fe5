"""
Key Aggregator

Builds the ordered participant set and the MuSig2 signing context for it.
"""

import logging
from typing import Sequence, Tuple

from musig_crypto import PrivateKey, PublicKey, SigningContext, MuSig2Error, InvalidKeyError

from .exceptions import ContextError


logger = logging.getLogger(__name__)


def build_participant_set(pubkeys: Sequence[bytes], own_pubkey: bytes,
                          num_signers: int) -> Tuple[Tuple[bytes, ...], bool]:
    """
    Append our key to the relayed key list if it is not there yet.

    Args:
        pubkeys: Relayed 33-byte public keys, in arrival order
        own_pubkey: Our 33-byte public key
        num_signers: Target number of signers N

    Returns:
        (participants, joined) where joined is True if this invocation
        added our key

    Raises:
        ContextError: On duplicate keys or more than N keys
    """
    seen = set()
    for pubkey in pubkeys:
        if pubkey in seen:
            raise ContextError(f"duplicate public key in signer set: {pubkey.hex()}")
        seen.add(pubkey)

    joined = own_pubkey not in seen
    participants = tuple(pubkeys) + ((own_pubkey,) if joined else ())

    if len(participants) > num_signers:
        raise ContextError(
            f"signer set has {len(participants)} keys but only {num_signers} signers are expected")

    return participants, joined


def create_signing_context(private_key: PrivateKey, participants: Sequence[bytes],
                           num_signers: int) -> SigningContext:
    """
    Create the aggregation context for our key.

    With fewer than N participants the context is created in early nonce
    mode, which only supports generating a nonce to be used later.
    """
    try:
        if len(participants) < num_signers:
            return SigningContext(private_key, num_signers=num_signers, early_nonce=True)
        return SigningContext(private_key, signers=[PublicKey(pubkey) for pubkey in participants],
                              num_signers=num_signers)
    except (MuSig2Error, InvalidKeyError) as e:
        raise ContextError(
            f"failed to create signing context with {len(participants)} of {num_signers} signers: {e}")


def combined_key(context: SigningContext) -> bytes:
    """
    Return the 33-byte combined public key of a complete context.
    """
    try:
        key = context.combined_key()
    except MuSig2Error as e:
        raise ContextError(f"failed to combine keys (after {len(context.signers)} signers): {e}")
    logger.debug(f"Combined key for {len(context.signers)} signers: {key.hex}")
    return key.bytes
