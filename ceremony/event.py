"""
Nostr Event Value

Immutable event record with the NIP-01 serialization that defines the event
id, which is the 32-byte message the ceremony signs.

References:
- NIP-01: https://github.com/nostr-protocol/nips/blob/master/01.md
"""

import hashlib
import json
from dataclasses import dataclass, replace
from typing import Any, Dict, Sequence, Tuple


TAG_KEY_SEPARATOR = '='
TAG_VALUE_SEPARATOR = ';'


def parse_tag(text: str) -> Tuple[str, ...]:
    """
    Parse the command line tag syntax ``key=value1;value2``.

    Args:
        text: Tag as written on the command line

    Returns:
        Tag as a tuple of strings, key first
    """
    key, separator, rest = text.partition(TAG_KEY_SEPARATOR)
    if not separator:
        return (key,)
    return (key,) + tuple(rest.split(TAG_VALUE_SEPARATOR))


def format_tag(tag: Sequence[str]) -> str:
    """
    Inverse of parse_tag.

    Raises:
        ValueError: If parse_tag could not read the result back
    """
    if not tag:
        raise ValueError("empty tag")
    if TAG_KEY_SEPARATOR in tag[0]:
        raise ValueError(f"tag key {tag[0]!r} contains {TAG_KEY_SEPARATOR!r}")
    for value in tag[1:]:
        if TAG_VALUE_SEPARATOR in value:
            raise ValueError(f"tag value {value!r} contains {TAG_VALUE_SEPARATOR!r}")
    if len(tag) == 1:
        return tag[0]
    return tag[0] + TAG_KEY_SEPARATOR + TAG_VALUE_SEPARATOR.join(tag[1:])


@dataclass(frozen=True)
class Event:
    """
    A Nostr event.

    pubkey and sig stay empty until the ceremony completes; the signed event
    is a new value, the original is left untouched.
    """
    kind: int
    created_at: int
    content: str = ''
    tags: Tuple[Tuple[str, ...], ...] = ()
    pubkey: str = ''
    sig: str = ''

    def __post_init__(self):
        object.__setattr__(self, 'tags', tuple(tuple(tag) for tag in self.tags))

    def serialize(self) -> bytes:
        """NIP-01 canonical serialization used for the event id."""
        data = [0, self.pubkey, self.created_at, self.kind,
                [list(tag) for tag in self.tags], self.content]
        return json.dumps(data, separators=(',', ':'), ensure_ascii=False).encode('utf-8')

    @property
    def id_bytes(self) -> bytes:
        return hashlib.sha256(self.serialize()).digest()

    @property
    def id(self) -> str:
        return self.id_bytes.hex()

    def with_pubkey(self, pubkey: str) -> 'Event':
        return replace(self, pubkey=pubkey, sig='')

    def with_signature(self, sig: str) -> 'Event':
        return replace(self, sig=sig)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'pubkey': self.pubkey,
            'created_at': self.created_at,
            'kind': self.kind,
            'tags': [list(tag) for tag in self.tags],
            'content': self.content,
            'sig': self.sig,
        }
