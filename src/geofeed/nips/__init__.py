"""Nostr protocol framing.

Attributes:
    nip01: Decoding of relay-to-client frames into tagged message variants
        and serialization of ``REQ`` / ``CLOSE`` frames.
"""

from .nip01 import (
    ClosedMessage,
    EoseMessage,
    EventMessage,
    NoticeMessage,
    RelayMessage,
    UnrecognizedMessage,
    build_close,
    build_req,
    parse_relay_message,
)


__all__ = [
    "ClosedMessage",
    "EoseMessage",
    "EventMessage",
    "NoticeMessage",
    "RelayMessage",
    "UnrecognizedMessage",
    "build_close",
    "build_req",
    "parse_relay_message",
]
