# =============================================================================
# File: groupchat/chat/cursor.py
# Description: Order-preserving message cursors
# =============================================================================
#
# A cursor is the message key (created_at in microseconds, id) packed as two
# big-endian unsigned 64-bit integers offset by 2**63, then rendered with the
# RFC 4648 "extended hex" base32 alphabet without padding. The alphabet is in
# ASCII order and the length is fixed, so comparing two tokens as strings
# gives the same answer as comparing their keys.
# =============================================================================

from __future__ import annotations

import base64
import binascii
import struct
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from groupchat.chat.exceptions import InvalidCursorError

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_OFFSET = 2 ** 63
_STRUCT = struct.Struct(">QQ")
_TOKEN_LENGTH = 26
_PADDING = "=" * 6
_ALPHABET = frozenset("0123456789ABCDEFGHIJKLMNOPQRSTUV")


def to_micros(value: datetime) -> int:
    """Microseconds since the epoch; naive datetimes are taken as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (value - _EPOCH) // timedelta(microseconds=1)


def from_micros(micros: int) -> datetime:
    return _EPOCH + timedelta(microseconds=micros)


@dataclass(frozen=True, order=True)
class MessageKey:
    """Total order key of a message. Larger keys are newer."""
    created_us: int
    id: int

    @classmethod
    def of(cls, message) -> MessageKey:
        return cls(to_micros(message.created_at), message.id)

    def encode(self) -> str:
        try:
            raw = _STRUCT.pack(self.created_us + _OFFSET, self.id + _OFFSET)
        except struct.error as e:
            raise ValueError(f"Message key out of range: {self}") from e
        return base64.b32hexencode(raw).decode("ascii").rstrip("=")


def encode_cursor(message) -> str:
    """Cursor for a message (anything with created_at and id)."""
    return MessageKey.of(message).encode()


def decode_cursor(token: str) -> MessageKey:
    """Decode a cursor token, raising InvalidCursorError when malformed."""
    if not isinstance(token, str) or len(token) != _TOKEN_LENGTH or not _ALPHABET.issuperset(token):
        raise InvalidCursorError(str(token))

    try:
        raw = base64.b32hexdecode(token + _PADDING)
    except (binascii.Error, ValueError) as e:
        raise InvalidCursorError(token) from e

    if len(raw) != _STRUCT.size:
        raise InvalidCursorError(token)

    created, message_id = _STRUCT.unpack(raw)
    return MessageKey(created - _OFFSET, message_id - _OFFSET)
