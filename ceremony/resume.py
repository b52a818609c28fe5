"""
Resume Command Encoder

Serializes ceremony state into the command line the next participant runs,
and parses such a command back. Both directions are pure functions of their
input. Keys, nonces and partial signatures are written as lowercase hex so
that decoding reproduces the exact byte sequences that were encoded.

Placeholders stand in for the next operator's secret key and, when the next
step needs one, their saved secret nonce. Our own secrets never appear.
"""

import shlex
from dataclasses import dataclass
from typing import Dict, List

from .event import Event, format_tag, parse_tag
from .exceptions import DecodeError, EncodeError
from .parser import (
    parse_num_signers,
    parse_pubkey,
    parse_pubnonce,
    parse_partial_signature,
)
from .state import CeremonyState


DEFAULT_PROGRAM = 'relaysig'
SECRET_KEY_PLACEHOLDER = '<their-key>'
SECRET_NONCE_PLACEHOLDER = '<their-nonce-secret>'

# flag -> field it fills; list-valued fields may repeat
FLAG_FIELDS = {
    '--sec': 'sec',
    '--musig2': 'num_signers',
    '-k': 'kind',
    '--kind': 'kind',
    '-ts': 'created_at',
    '--created-at': 'created_at',
    '-c': 'content',
    '--content': 'content',
    '-t': 'tags',
    '--tag': 'tags',
    '--musig2-pubkey': 'pubkeys',
    '--musig2-nonce': 'pubnonces',
    '--musig2-partial': 'partial_signatures',
    '--musig2-nonce-secret': 'secret_nonce',
}
LIST_FIELDS = ('tags', 'pubkeys', 'pubnonces', 'partial_signatures')


@dataclass(frozen=True)
class ResumeCommand:
    """Decoded resume command."""
    event: Event
    state: CeremonyState
    expects_secret_nonce: bool


def event_to_args(event: Event) -> List[str]:
    args = ['-k', str(event.kind), '-ts', str(event.created_at), '-c', event.content]
    for i, tag in enumerate(event.tags):
        try:
            args += ['-t', format_tag(tag)]
        except ValueError as e:
            raise EncodeError(f"tag #{i} cannot be written as -t key=value1;value2: {e}")
    return args


def state_to_args(state: CeremonyState) -> List[str]:
    args = []
    for pubkey in state.pubkeys:
        args += ['--musig2-pubkey', pubkey.hex()]
    for pubnonce in state.pubnonces:
        args += ['--musig2-nonce', pubnonce.hex()]
    for partial in state.partial_signatures:
        args += ['--musig2-partial', partial.hex()]
    return args


def encode_resume_command(event: Event, state: CeremonyState,
                          include_secret_nonce: bool = False,
                          program: str = DEFAULT_PROGRAM) -> str:
    """
    Build the command line for the next participant.

    Args:
        event: Event being signed (kind, created_at, content and tags are used)
        state: Ceremony state to relay
        include_secret_nonce: Add the secret nonce placeholder, for a next
            step that must resume from a saved secret nonce
        program: Executable name to put in front

    Returns:
        Shell-quoted command line

    Raises:
        EncodeError: If a tag cannot be expressed in the -t syntax
    """
    args = ['event', '--sec', SECRET_KEY_PLACEHOLDER, '--musig2', str(state.num_signers)]
    args += event_to_args(event)
    args += state_to_args(state)
    if include_secret_nonce:
        args += ['--musig2-nonce-secret', SECRET_NONCE_PLACEHOLDER]
    return program + ' ' + ' '.join(shlex.quote(arg) for arg in args)


def _collect_flags(tokens: List[str]) -> Dict[str, object]:
    values: Dict[str, object] = {name: [] for name in LIST_FIELDS}
    i = 0
    while i < len(tokens):
        flag = tokens[i]
        if flag not in FLAG_FIELDS:
            raise DecodeError(f"unexpected argument in resume command: {flag}")
        if i + 1 >= len(tokens):
            raise DecodeError(f"missing value for {flag}")
        name = FLAG_FIELDS[flag]
        if name in LIST_FIELDS:
            values[name].append(tokens[i + 1])
        else:
            values[name] = tokens[i + 1]
        i += 2
    return values


def _parse_int(value, field_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise DecodeError(f"{field_name} must be an integer, got {value!r}")


def decode_resume_command(text: str) -> ResumeCommand:
    """
    Parse a command produced by encode_resume_command.

    Raises:
        DecodeError: If the text is not a well-formed resume command
    """
    try:
        tokens = shlex.split(text)
    except ValueError as e:
        raise DecodeError(f"resume command is not valid shell syntax: {e}")

    if 'event' not in tokens:
        raise DecodeError("resume command has no 'event' subcommand")
    values = _collect_flags(tokens[tokens.index('event') + 1:])

    if 'num_signers' not in values:
        raise DecodeError("resume command is missing --musig2")

    event = Event(
        kind=_parse_int(values.get('kind', 1), 'kind'),
        created_at=_parse_int(values.get('created_at', 0), 'created_at'),
        content=values.get('content', ''),
        tags=tuple(parse_tag(tag) for tag in values['tags']),
    )
    state = CeremonyState(
        num_signers=parse_num_signers(values['num_signers']),
        pubkeys=tuple(parse_pubkey(v, i) for i, v in enumerate(values['pubkeys'])),
        pubnonces=tuple(parse_pubnonce(v, i) for i, v in enumerate(values['pubnonces'])),
        partial_signatures=tuple(
            parse_partial_signature(v, i) for i, v in enumerate(values['partial_signatures'])),
    )
    return ResumeCommand(
        event=event,
        state=state,
        expects_secret_nonce='secret_nonce' in values,
    )
