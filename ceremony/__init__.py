"""
relaysig - Signing Ceremony Module

Hand-relayed MuSig2 signing ceremony for Nostr events:
- input parsing and phase classification
- key aggregation, nonce coordination and partial signing
- resume command encoding and decoding
"""

from .exceptions import (
    CeremonyError,
    DecodeError,
    ContextError,
    MissingSecretError,
    NonceRegistrationError,
    SigningError,
    CombineError,
    EncodeError,
)
from .event import Event, parse_tag, format_tag
from .state import (
    Phase,
    CeremonyState,
    CeremonyInputs,
    CeremonyAdvanced,
    CeremonyComplete,
    classify_phase,
)
from .parser import parse_inputs
from .engine import advance
from .resume import ResumeCommand, encode_resume_command, decode_resume_command

__all__ = [
    # Exceptions
    "CeremonyError",
    "DecodeError",
    "ContextError",
    "MissingSecretError",
    "NonceRegistrationError",
    "SigningError",
    "CombineError",
    "EncodeError",

    # Data model
    "Event",
    "parse_tag",
    "format_tag",
    "Phase",
    "CeremonyState",
    "CeremonyInputs",
    "CeremonyAdvanced",
    "CeremonyComplete",
    "classify_phase",

    # Operations
    "parse_inputs",
    "advance",
    "ResumeCommand",
    "encode_resume_command",
    "decode_resume_command",
]
