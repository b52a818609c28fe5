"""
Ceremony Engine

advance() runs exactly one step of the signing ceremony for the local
participant: classify the phase from what is known, do the cryptographic
work for that phase and return either the state to relay onwards or the
signed event.
"""

import logging

from .event import Event
from .exceptions import NonceRegistrationError
from .keyagg import build_participant_set, create_signing_context, combined_key
from .nonces import precommit_nonce, open_session, register_peer_nonces
from .signer import sign
from .state import (
    CeremonyAdvanced,
    CeremonyComplete,
    CeremonyInputs,
    CeremonyOutcome,
    CeremonyState,
    Phase,
    classify_phase,
)


logger = logging.getLogger(__name__)


def advance(inputs: CeremonyInputs, event: Event) -> CeremonyOutcome:
    """
    Advance the ceremony by one step.

    Args:
        inputs: Decoded state plus our secret key and optional secret nonce
        event: Event to sign; its pubkey and sig are ignored and never
            modified

    Returns:
        CeremonyAdvanced while signatures are still missing, otherwise
        CeremonyComplete carrying a new signed event

    Raises:
        CeremonyError: Any failure; nothing should be output in that case
    """
    state = inputs.state
    num_signers = state.num_signers
    own_pubkey = inputs.secret_key.public_key().bytes

    participants, joined = build_participant_set(state.pubkeys, own_pubkey, num_signers)
    if len(state.pubnonces) > num_signers:
        raise NonceRegistrationError(
            f"got {len(state.pubnonces)} nonces but only {num_signers} signers are expected")

    phase = classify_phase(len(participants), len(state.pubnonces), num_signers)
    logger.info(f"Ceremony phase {phase.value}: {len(participants)}/{num_signers} keys, "
                f"{len(state.pubnonces)} nonces, {len(state.partial_signatures)} partial signatures")

    context = create_signing_context(inputs.secret_key, participants, num_signers)

    if phase is Phase.KEY_GATHERING:
        nonces = precommit_nonce(context)
        next_state = CeremonyState(
            num_signers=num_signers,
            pubkeys=participants,
            pubnonces=state.pubnonces + (nonces.pubnonce,),
            partial_signatures=state.partial_signatures,
        )
        return CeremonyAdvanced(phase=phase, state=next_state, event=event,
                                secret_nonce=nonces.secnonce)

    aggregate_key = combined_key(context)

    session = open_session(context, inputs.secret_nonce, last_joiner=joined)
    pubnonces = state.pubnonces
    if joined:
        pubnonces = pubnonces + (session.public_nonce,)
    register_peer_nonces(session, pubnonces)

    # the event is signed by the x-only combined key
    signing_event = event.with_pubkey(aggregate_key[1:].hex())
    result = sign(session, signing_event.id_bytes, state.partial_signatures, num_signers)

    next_state = CeremonyState(
        num_signers=num_signers,
        pubkeys=participants,
        pubnonces=pubnonces,
        partial_signatures=state.partial_signatures + (result.own_partial,),
    )

    if not result.is_final:
        return CeremonyAdvanced(phase=phase, state=next_state, event=event,
                                combined_key=aggregate_key, awaiting_secret_nonce=True)

    return CeremonyComplete(
        phase=phase,
        state=next_state,
        event=signing_event.with_signature(result.final_signature.hex()),
        combined_key=aggregate_key,
        signature=result.final_signature,
    )
