"""
Ceremony State and Phase Classification

The ceremony keeps no database. Everything a participant needs to take the
next step travels in a CeremonyState value (relayed as command text) plus the
participant's own secrets. Progress is derived from counts alone.

Nonces and partial signatures are matched to signers by count, not by signer
identity. If contributions are relayed in an order the operators did not
expect, they are combined anyway and the final signature fails to verify.
"""

import base64
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, Union

from musig_crypto import PrivateKey

from .event import Event


class Phase(Enum):
    """Ceremony phase enumeration."""
    KEY_GATHERING = "key_gathering"
    NONCE_GATHERING = "nonce_gathering"
    SIGNING = "signing"


@dataclass(frozen=True)
class CeremonyState:
    """
    Publicly relayable ceremony progress.

    pubkeys are 33-byte compressed keys in arrival order, pubnonces are
    66-byte public nonces, partial_signatures are 32-byte scalars.
    """
    num_signers: int
    pubkeys: Tuple[bytes, ...] = ()
    pubnonces: Tuple[bytes, ...] = ()
    partial_signatures: Tuple[bytes, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'pubkeys', tuple(bytes(k) for k in self.pubkeys))
        object.__setattr__(self, 'pubnonces', tuple(bytes(n) for n in self.pubnonces))
        object.__setattr__(self, 'partial_signatures',
                           tuple(bytes(s) for s in self.partial_signatures))


@dataclass(frozen=True)
class CeremonyInputs:
    """
    Decoded inputs for one invocation.

    secret_key and secret_nonce are private to the local operator and never
    part of the relayed state.
    """
    secret_key: PrivateKey = field(repr=False)
    state: CeremonyState
    secret_nonce: Optional[bytes] = field(default=None, repr=False)


def classify_phase(num_keys: int, num_nonces: int, num_signers: int) -> Phase:
    """
    Derive the ceremony phase from counts.

    Args:
        num_keys: Known public keys, including our own
        num_nonces: Public nonces supplied to this invocation
        num_signers: Target number of signers N

    Returns:
        The phase this invocation executes
    """
    if num_keys < num_signers:
        return Phase.KEY_GATHERING
    if num_nonces < num_signers:
        return Phase.NONCE_GATHERING
    return Phase.SIGNING


@dataclass(frozen=True)
class CeremonyAdvanced:
    """
    Outcome of a step that did not finish the ceremony.

    state is what the next participant must receive. secret_nonce is only set
    when this step generated a nonce that the operator must keep private for
    a later step.
    """
    phase: Phase
    state: CeremonyState
    event: Event
    combined_key: Optional[bytes] = None
    secret_nonce: Optional[bytes] = field(default=None, repr=False)
    awaiting_secret_nonce: bool = False

    is_complete = False

    @property
    def secret_nonce_b64(self) -> Optional[str]:
        if self.secret_nonce is None:
            return None
        return base64.b64encode(self.secret_nonce).decode('ascii')


@dataclass(frozen=True)
class CeremonyComplete:
    """
    Outcome of the final step: a new, fully signed event.
    """
    phase: Phase
    state: CeremonyState
    event: Event
    combined_key: bytes
    signature: bytes

    is_complete = True


CeremonyOutcome = Union[CeremonyAdvanced, CeremonyComplete]
