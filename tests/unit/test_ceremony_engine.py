"""
Tests for Ceremony Engine

End-to-end ceremonies driven through advance(), relaying state the way an
operator would copy it from one signer to the next.
"""

import pytest
from coincurve import PublicKeyXOnly

from ceremony import (
    CeremonyAdvanced,
    CeremonyComplete,
    CeremonyState,
    CombineError,
    ContextError,
    DecodeError,
    MissingSecretError,
    NonceRegistrationError,
    Phase,
    advance,
    decode_resume_command,
    encode_resume_command,
    parse_inputs,
)
from musig_crypto import key_agg, verify_schnorr, SchnorrSignature


def assert_valid_event_signature(outcome):
    """The signed event verifies as a plain BIP340 signature over its id."""
    event = outcome.event
    pubkey = bytes.fromhex(event.pubkey)
    assert len(outcome.signature) == 64
    assert event.sig == outcome.signature.hex()
    assert PublicKeyXOnly(pubkey).verify(outcome.signature, event.id_bytes)
    assert verify_schnorr(pubkey, SchnorrSignature.from_bytes(outcome.signature), event.id_bytes)


class TestSingleSigner:
    """Test the N=1 ceremony."""

    def test_completes_in_one_step(self, secret_keys, sample_event, run_step, private_keys):
        """Test that one signer signs directly."""
        outcome = run_step(secret_keys[0], sample_event, 1)

        assert isinstance(outcome, CeremonyComplete)
        assert outcome.is_complete
        assert outcome.event.pubkey == key_agg([private_keys[0].public_key().bytes]).x_only.hex()
        assert_valid_event_signature(outcome)


class TestTwoSigners:
    """Test the two-party ceremony A -> B -> A."""

    def test_first_step_gathers_key(self, secret_keys, sample_event, run_step, public_keys):
        """Test that A emits one key, one nonce and a secret nonce."""
        first = run_step(secret_keys[0], sample_event, 2)

        assert isinstance(first, CeremonyAdvanced)
        assert first.phase is Phase.KEY_GATHERING
        assert first.state.pubkeys == (public_keys[0].bytes,)
        assert len(first.state.pubnonces) == 1
        assert first.state.partial_signatures == ()
        assert first.combined_key is None
        assert first.secret_nonce is not None
        assert not first.awaiting_secret_nonce

        command = encode_resume_command(first.event, first.state,
                                        include_secret_nonce=first.awaiting_secret_nonce)
        assert command.count('--musig2-pubkey') == 1
        assert command.count('--musig2-nonce ') == 1
        assert '--musig2-partial' not in command
        assert '--musig2-nonce-secret' not in command

    def test_last_joiner_signs_immediately(self, secret_keys, sample_event, run_step):
        """Test that B goes straight to signing without a separate nonce round."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)

        assert isinstance(second, CeremonyAdvanced)
        assert second.phase is Phase.NONCE_GATHERING
        assert len(second.state.pubkeys) == 2
        assert len(second.state.pubnonces) == 2
        assert len(second.state.partial_signatures) == 1
        assert second.secret_nonce is None
        assert second.awaiting_secret_nonce
        assert len(second.combined_key) == 33

    def test_full_ceremony(self, secret_keys, sample_event, run_step, public_keys):
        """Test that A's follow-up completes with a valid signature."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)
        final = run_step(secret_keys[0], sample_event, 2, state=second.state,
                         secret_nonce=first.secret_nonce)

        assert isinstance(final, CeremonyComplete)
        assert final.phase is Phase.SIGNING
        assert final.combined_key == second.combined_key
        assert final.event.pubkey == final.combined_key[1:].hex()
        expected = key_agg([public_keys[0].bytes, public_keys[1].bytes])
        assert final.event.pubkey == expected.x_only.hex()
        assert_valid_event_signature(final)

    def test_through_resume_commands(self, secret_keys, sample_event, run_step):
        """Test relaying every step through encoded command text."""
        first = run_step(secret_keys[0], sample_event, 2)
        relayed = decode_resume_command(encode_resume_command(first.event, first.state))
        second = run_step(secret_keys[1], relayed.event, 2, state=relayed.state)

        relayed = decode_resume_command(encode_resume_command(
            second.event, second.state, include_secret_nonce=second.awaiting_secret_nonce))
        assert relayed.expects_secret_nonce
        final = run_step(secret_keys[0], relayed.event, 2, state=relayed.state,
                         secret_nonce=first.secret_nonce)

        assert_valid_event_signature(final)

    def test_final_combination_is_idempotent(self, secret_keys, sample_event, run_step):
        """Test that re-running the last step gives the same signature."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)

        once = run_step(secret_keys[0], sample_event, 2, state=second.state,
                        secret_nonce=first.secret_nonce)
        again = run_step(secret_keys[0], sample_event, 2, state=second.state,
                         secret_nonce=first.secret_nonce)

        assert once.signature == again.signature
        assert once.event == again.event

    def test_missing_secret_nonce(self, secret_keys, sample_event, run_step):
        """Test that A cannot sign without the saved secret nonce."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)

        with pytest.raises(MissingSecretError, match="missing --musig2-nonce-secret"):
            run_step(secret_keys[0], sample_event, 2, state=second.state)

    def test_event_untouched(self, secret_keys, sample_event, run_step):
        """Test that advance never modifies the input event."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)
        final = run_step(secret_keys[0], sample_event, 2, state=second.state,
                         secret_nonce=first.secret_nonce)

        assert sample_event.pubkey == ""
        assert sample_event.sig == ""
        assert first.event is sample_event
        assert second.event is sample_event
        assert final.event is not sample_event

    def test_bad_partial_signature(self, secret_keys, sample_event, run_step):
        """Test that a tampered partial signature fails the final combination."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)
        partial = bytearray(second.state.partial_signatures[0])
        partial[31] ^= 0x01
        tampered = CeremonyState(
            num_signers=2,
            pubkeys=second.state.pubkeys,
            pubnonces=second.state.pubnonces,
            partial_signatures=[bytes(partial)],
        )

        with pytest.raises(CombineError):
            run_step(secret_keys[0], sample_event, 2, state=tampered,
                     secret_nonce=first.secret_nonce)

    def test_too_many_partial_signatures(self, secret_keys, sample_event, run_step):
        """Test rejection of more partial signatures than other signers."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)
        crowded = CeremonyState(
            num_signers=2,
            pubkeys=second.state.pubkeys,
            pubnonces=second.state.pubnonces,
            partial_signatures=second.state.partial_signatures * 2,
        )

        with pytest.raises(CombineError, match="got 2 partial signatures"):
            run_step(secret_keys[0], sample_event, 2, state=crowded,
                     secret_nonce=first.secret_nonce)


class TestThreeSigners:
    """Test the three-party ceremony A -> B -> C -> A -> B."""

    def test_full_ceremony(self, secret_keys, sample_event, run_step):
        """Test five steps producing one valid signature."""
        a1 = run_step(secret_keys[0], sample_event, 3)
        b1 = run_step(secret_keys[1], sample_event, 3, state=a1.state)
        assert b1.phase is Phase.KEY_GATHERING
        assert len(b1.state.pubnonces) == 2

        c1 = run_step(secret_keys[2], sample_event, 3, state=b1.state)
        assert c1.phase is Phase.NONCE_GATHERING
        assert len(c1.state.partial_signatures) == 1

        a2 = run_step(secret_keys[0], sample_event, 3, state=c1.state,
                      secret_nonce=a1.secret_nonce)
        assert isinstance(a2, CeremonyAdvanced)
        assert a2.phase is Phase.SIGNING
        assert len(a2.state.partial_signatures) == 2
        assert a2.awaiting_secret_nonce

        b2 = run_step(secret_keys[1], sample_event, 3, state=a2.state,
                      secret_nonce=b1.secret_nonce)
        assert isinstance(b2, CeremonyComplete)
        assert_valid_event_signature(b2)


class TestOrderSensitivity:
    """Test that the combined key depends on the order keys were gathered."""

    def test_order_changes_combined_key(self, secret_keys, sample_event, run_step):
        """Test that A-first and B-first ceremonies sign under different keys."""
        a_first = run_step(secret_keys[1], sample_event, 2,
                           state=run_step(secret_keys[0], sample_event, 2).state)
        b_first = run_step(secret_keys[0], sample_event, 2,
                           state=run_step(secret_keys[1], sample_event, 2).state)

        assert a_first.combined_key != b_first.combined_key

    def test_signature_does_not_verify_under_other_order(self, secret_keys, sample_event, run_step):
        """Test that a signature under one order fails under the other order's key."""
        first = run_step(secret_keys[0], sample_event, 2)
        second = run_step(secret_keys[1], sample_event, 2, state=first.state)
        final = run_step(secret_keys[0], sample_event, 2, state=second.state,
                         secret_nonce=first.secret_nonce)

        swapped = key_agg(list(reversed(final.state.pubkeys))).x_only
        assert not PublicKeyXOnly(swapped).verify(final.signature, final.event.id_bytes)


class TestInvalidInputs:
    """Test failures that must abort before anything is produced."""

    def test_short_nonce(self, secret_keys, public_keys, sample_event):
        """Test that a 65-byte nonce aborts decoding and leaves the event alone."""
        with pytest.raises(DecodeError, match=r"nonce is not 66 bytes \(got 65\)"):
            inputs = parse_inputs(secret_keys[1], 2,
                                  pubkeys_hex=[public_keys[0].hex],
                                  pubnonces_hex=["02" * 65])
            advance(inputs, sample_event)

        assert sample_event.pubkey == ""
        assert sample_event.sig == ""

    def test_too_many_nonces(self, secret_keys, public_keys, sample_event, run_step):
        """Test more nonces than signers."""
        first = run_step(secret_keys[0], sample_event, 2)
        crowded = CeremonyState(
            num_signers=2,
            pubkeys=first.state.pubkeys,
            pubnonces=first.state.pubnonces * 3,
        )

        with pytest.raises(NonceRegistrationError, match="got 3 nonces"):
            run_step(secret_keys[1], sample_event, 2, state=crowded)

    def test_duplicate_keys(self, secret_keys, public_keys, sample_event):
        """Test that duplicated keys are rejected."""
        inputs = parse_inputs(secret_keys[2], 3,
                              pubkeys_hex=[public_keys[0].hex, public_keys[0].hex])
        with pytest.raises(ContextError, match="duplicate public key"):
            advance(inputs, sample_event)

    def test_key_set_full_without_us(self, secret_keys, public_keys, sample_event):
        """Test an outsider joining a complete signer set."""
        inputs = parse_inputs(secret_keys[3], 2,
                              pubkeys_hex=[public_keys[0].hex, public_keys[1].hex])
        with pytest.raises(ContextError, match="3 keys but only 2 signers"):
            advance(inputs, sample_event)
