"""
NIP-01 relay-to-client message decoding and client-to-relay framing.

Relays send JSON arrays whose first element names the message type. Each
inbound frame is decoded exactly once into one of the tagged variants
below, so the router can ``match`` on the type instead of re-inspecting
raw lists:

```text
["EVENT", <subscription_id>, <event>]    -> EventMessage
["NOTICE", <message>]                     -> NoticeMessage
["EOSE", <subscription_id>]               -> EoseMessage
["CLOSED", <subscription_id>, <message>]  -> ClosedMessage
anything else                             -> UnrecognizedMessage
```

Third-party relays are untrusted, so decoding never raises: malformed
JSON, wrong shapes and invalid event payloads all map to
[UnrecognizedMessage][geofeed.nips.nip01.UnrecognizedMessage] carrying a
short reason.

Examples:
    ```python
    match parse_relay_message(frame):
        case EventMessage(subscription_id=sid, event=event):
            ...
        case NoticeMessage(message=text):
            ...
    ```
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from geofeed.core.exceptions import ProtocolError
from geofeed.models.event import Event


@dataclass(frozen=True, slots=True)
class EventMessage:
    """An event delivered for a subscription."""

    subscription_id: str
    event: Event


@dataclass(frozen=True, slots=True)
class NoticeMessage:
    """Human-readable notice from the relay."""

    message: str


@dataclass(frozen=True, slots=True)
class EoseMessage:
    """End of stored events for a subscription."""

    subscription_id: str


@dataclass(frozen=True, slots=True)
class ClosedMessage:
    """The relay ended a subscription on its side."""

    subscription_id: str
    message: str


@dataclass(frozen=True, slots=True)
class UnrecognizedMessage:
    """A frame that could not be decoded.

    Attributes:
        raw: The frame as received (decoded to text).
        reason: Why decoding failed.
    """

    raw: str
    reason: str


RelayMessage = EventMessage | NoticeMessage | EoseMessage | ClosedMessage | UnrecognizedMessage


def _expect_str(value: Any, what: str) -> str:
    if not isinstance(value, str):
        raise ProtocolError(f"{what} must be a string, got {type(value).__name__}")
    return value


def _decode(payload: Any) -> RelayMessage:
    if not isinstance(payload, list) or not payload:
        raise ProtocolError("frame is not a non-empty array")

    match payload[0]:
        case "EVENT":
            if len(payload) < 3:  # noqa: PLR2004
                raise ProtocolError("EVENT frame needs a subscription id and an event")
            subscription_id = _expect_str(payload[1], "subscription id")
            try:
                event = Event.from_dict(payload[2])
            except (TypeError, ValueError) as e:
                raise ProtocolError(f"invalid event: {e}") from e
            return EventMessage(subscription_id, event)
        case "NOTICE":
            if len(payload) < 2:  # noqa: PLR2004
                raise ProtocolError("NOTICE frame has no message")
            return NoticeMessage(_expect_str(payload[1], "notice"))
        case "EOSE":
            if len(payload) < 2:  # noqa: PLR2004
                raise ProtocolError("EOSE frame has no subscription id")
            return EoseMessage(_expect_str(payload[1], "subscription id"))
        case "CLOSED":
            if len(payload) < 2:  # noqa: PLR2004
                raise ProtocolError("CLOSED frame has no subscription id")
            message = payload[2] if len(payload) > 2 else ""  # noqa: PLR2004
            return ClosedMessage(
                _expect_str(payload[1], "subscription id"), _expect_str(message, "reason")
            )
        case other:
            raise ProtocolError(f"unknown message type {other!r}")


def parse_relay_message(raw: str | bytes) -> RelayMessage:
    """Decode one inbound relay frame.

    Args:
        raw: Frame payload. Bytes are decoded as UTF-8 with replacement.

    Returns:
        The decoded variant, or
        [UnrecognizedMessage][geofeed.nips.nip01.UnrecognizedMessage] when
        the frame is not valid NIP-01.
    """
    text = raw.decode("utf-8", errors="replace") if isinstance(raw, bytes) else raw
    try:
        payload = json.loads(text)
    except (ValueError, RecursionError) as e:
        return UnrecognizedMessage(text, f"invalid json: {e}")
    try:
        return _decode(payload)
    except ProtocolError as e:
        return UnrecognizedMessage(text, str(e))


def build_req(subscription_id: str, filter_: Mapping[str, Any]) -> str:
    """Serialize a ``REQ`` frame with a single filter."""
    return json.dumps(["REQ", subscription_id, dict(filter_)], separators=(",", ":"))


def build_close(subscription_id: str) -> str:
    """Serialize a ``CLOSE`` frame."""
    return json.dumps(["CLOSE", subscription_id], separators=(",", ":"))
