#!/usr/bin/env python3
"""Exchange of rule lists with a peer.

A rule list travels as a sequence of length-prefixed pattern texts ending
with a zero length::

    entry      := length:int  text:bytes[length]
    message    := entry* terminator
    terminator := length == 0

Include rules carry a literal ``"+ "`` prefix, which peers older than
:data:`~syncfilter.core.constants.MIN_INCLUDE_PROTOCOL_VERSION` do not
understand. Integer framing belongs to the :class:`Channel`;
:class:`StreamChannel` provides the usual 4-byte little-endian framing over
a binary stream.

Example:
    >>> channel = StreamChannel(io.BytesIO())
    >>> send_rule_list(channel, rules, remote_version=26)
"""

import os
import struct
from typing import BinaryIO, Protocol

from syncfilter.core.constants import (
    LIST_ONLY_PATTERN,
    MIN_INCLUDE_PROTOCOL_VERSION,
    ErrorCode,
    Limits,
)
from syncfilter.infrastructure.logger import get_logger
from syncfilter.rules.store import RuleList

logger = get_logger("syncfilter.wire")

_INT = struct.Struct("<i")


class ProtocolError(Exception):
    """Malformed or truncated peer message."""

    def __init__(self, message: str, error_code: ErrorCode = ErrorCode.PROTOCOL_ERROR):
        self.message = message
        self.error_code = error_code
        super().__init__(message)


class UnsupportedFeatureError(ProtocolError):
    """The peer's protocol version lacks a feature the rule list needs."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.UNSUPPORTED)


class ProtocolOverflowError(ProtocolError):
    """A received length does not fit the receive buffer."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCode.OUT_OF_MEMORY)


class Channel(Protocol):
    """Integer and buffer transport to a peer."""

    def write_int(self, value: int) -> None: ...

    def write_buf(self, data: bytes) -> None: ...

    def read_int(self) -> int: ...

    def read_buf(self, length: int) -> bytes: ...


class StreamChannel:
    """Channel over a binary stream using 4-byte little-endian integers."""

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    def write_int(self, value: int) -> None:
        self.stream.write(_INT.pack(value))

    def write_buf(self, data: bytes) -> None:
        self.stream.write(data)

    def read_int(self) -> int:
        return _INT.unpack(self.read_buf(_INT.size))[0]

    def read_buf(self, length: int) -> bytes:
        """Read exactly *length* bytes.

        Raises:
            ProtocolError: If the stream ends first
        """
        data = b""
        while len(data) < length:
            chunk = self.stream.read(length - len(data))
            if not chunk:
                raise ProtocolError(
                    f"unexpected end of stream: wanted {length} bytes, got {len(data)}"
                )
            data += chunk
        return data


def send_rule_list(
    channel: Channel,
    rules: RuleList,
    remote_version: int,
    list_only: bool = False,
    recurse: bool = True,
) -> None:
    """Send a rule list to a peer.

    Args:
        channel: Transport to the peer
        rules: Rules to send, in order
        remote_version: Negotiated protocol version of the peer
        list_only: Listing mode; together with ``recurse=False`` limits the
            peer to the top level by appending ``/*/*`` to ``rules``
        recurse: Whether the listing is recursive

    Raises:
        UnsupportedFeatureError: If an include rule would be sent to a peer
            older than ``MIN_INCLUDE_PROTOCOL_VERSION``; nothing is written
        ProtocolOverflowError: If an entry is ``Limits.MAX_PATH_LENGTH``
            bytes or longer; nothing is written
    """
    if list_only and not recurse:
        rules.add(LIST_ONLY_PATTERN, include=False)

    entries = []
    for rule in rules:
        if not str(rule):
            continue
        if rule.include and remote_version < MIN_INCLUDE_PROTOCOL_VERSION:
            raise UnsupportedFeatureError(
                f"remote protocol version {remote_version} does not support include syntax"
            )
        data = os.fsencode(rule.wire_text())
        if len(data) >= Limits.MAX_PATH_LENGTH:
            raise ProtocolOverflowError(
                f"rule list entry length {len(data)} does not fit the peer's buffer"
            )
        entries.append(data)

    for data in entries:
        channel.write_int(len(data))
        channel.write_buf(data)
    channel.write_int(0)

    logger.debug("sent rule list", rules=len(entries), remote_version=remote_version)


def recv_rule_list(channel: Channel, rules: RuleList) -> RuleList:
    """Receive a peer's rule list, appending to *rules*.

    Entries default to exclude rules; a ``"+ "`` or ``"- "`` prefix in the
    text decides the polarity.

    Raises:
        ProtocolOverflowError: If an entry length is negative or at least
            ``Limits.MAX_PATH_LENGTH``
        ProtocolError: If the stream ends early
    """
    count = 0
    while True:
        length = channel.read_int()
        if length == 0:
            break
        if length < 0 or length >= Limits.MAX_PATH_LENGTH:
            raise ProtocolOverflowError(f"rule list entry length {length} overflows buffer")
        rules.add(os.fsdecode(channel.read_buf(length)), include=False)
        count += 1

    logger.debug("received rule list", rules=count)
    return rules

