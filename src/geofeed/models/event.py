"""
Immutable Nostr event record as delivered by relays.

Events reach the feed already signed by their authors; signature
verification is not performed here. The model only checks that the
payload has the NIP-01 shape the feed relies on (an identifier, a
creation timestamp, a kind and a tag list) and freezes it so the same
instance can be shared between the store and API consumers.

See Also:
    [parse_relay_message()][geofeed.nips.nip01.parse_relay_message]:
        Builds events from ``EVENT`` frames.
    [StoredEvent][geofeed.models.stored_event.StoredEvent]: Store entry
        wrapping an event with its region and source relay.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ._validation import validate_int, validate_str_not_empty, validate_timestamp
from .constants import EVENT_KIND_MAX


Tags = tuple[tuple[str, ...], ...]


def _freeze_tags(raw: Any) -> Tags:
    """Convert a JSON tag list (list of string lists) into nested tuples."""
    if not isinstance(raw, list | tuple):
        raise TypeError(f"tags must be a list, got {type(raw).__name__}")
    frozen: list[tuple[str, ...]] = []
    for tag in raw:
        if not isinstance(tag, list | tuple):
            raise TypeError(f"tag must be a list, got {type(tag).__name__}")
        if not all(isinstance(value, str) for value in tag):
            raise TypeError("tag values must be strings")
        frozen.append(tuple(tag))
    return tuple(frozen)


@dataclass(frozen=True, slots=True)
class Event:
    """A Nostr event (NIP-01) treated as an opaque, pre-validated record.

    Attributes:
        id: Event identifier (hex SHA-256 of the serialized event).
        pubkey: Author public key (hex).
        created_at: Unix timestamp set by the author.
        kind: Event kind, ``0..65535``.
        tags: Tag arrays as nested tuples.
        content: Event content.
        sig: Schnorr signature (hex).

    Raises:
        TypeError: If a field has the wrong type.
        ValueError: If ``id`` is empty, ``created_at`` is negative or
            ``kind`` is out of range.

    Examples:
        ```python
        event = Event.from_dict(json.loads(raw)[2])
        event.tag_values("g")  # ('u4pru',)
        ```
    """

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: Tags
    content: str
    sig: str

    def __post_init__(self) -> None:
        validate_str_not_empty(self.id, "id")
        validate_timestamp(self.created_at, "created_at")
        validate_int(self.kind, "kind")
        if not 0 <= self.kind <= EVENT_KIND_MAX:
            raise ValueError(f"kind must be within [0, {EVENT_KIND_MAX}], got {self.kind}")
        for name in ("pubkey", "content", "sig"):
            if not isinstance(getattr(self, name), str):
                raise TypeError(f"{name} must be a str, got {type(getattr(self, name)).__name__}")
        object.__setattr__(self, "tags", _freeze_tags(self.tags))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Event:
        """Build an event from its JSON object form.

        Raises:
            TypeError: If *data* is not a mapping or a field has the wrong type.
            ValueError: If a required field is missing or invalid.
        """
        if not isinstance(data, Mapping):
            raise TypeError(f"event must be an object, got {type(data).__name__}")
        try:
            return cls(
                id=data["id"],
                pubkey=data.get("pubkey", ""),
                created_at=data["created_at"],
                kind=data["kind"],
                tags=data.get("tags", []),
                content=data.get("content", ""),
                sig=data.get("sig", ""),
            )
        except KeyError as e:
            raise ValueError(f"event is missing field {e.args[0]!r}") from None

    def to_dict(self) -> dict[str, Any]:
        """Return the JSON object form of the event."""
        return {
            "id": self.id,
            "pubkey": self.pubkey,
            "created_at": self.created_at,
            "kind": self.kind,
            "tags": [list(tag) for tag in self.tags],
            "content": self.content,
            "sig": self.sig,
        }

    def tag_values(self, name: str) -> tuple[str, ...]:
        """Return the first value of every tag called *name*."""
        return tuple(tag[1] for tag in self.tags if len(tag) > 1 and tag[0] == name)
