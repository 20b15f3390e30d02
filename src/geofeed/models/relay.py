"""
Relay endpoint with a known geographic position.

Directory sources list relays as bare host identifiers (``nos.lol``) or
full URLs (``wss://nos.lol/``). [RelayEndpoint][geofeed.models.relay.RelayEndpoint]
normalizes both forms to the bare identifier, validates it as the
authority (plus optional path) of a ``wss://`` URL, and pins it to a
[Coordinate][geofeed.models.coordinate.Coordinate].
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar

from rfc3986 import uri_reference
from rfc3986.exceptions import ValidationError
from rfc3986.validators import Validator

from ._validation import validate_instance, validate_str_not_empty
from .coordinate import Coordinate


@dataclass(frozen=True, slots=True)
class RelayEndpoint:
    """Immutable relay endpoint from the relay directory.

    Attributes:
        host: Endpoint identifier without scheme or trailing slash, e.g.
            ``relay.damus.io`` or ``relay.example.com:7447/nostr``.
        coordinate: Geographic position of the relay.
        url: Connection URL (``wss://`` + host), computed.

    Raises:
        ValueError: If the host is empty, contains null bytes or does not
            form a valid WebSocket URL.

    Examples:
        ```python
        relay = RelayEndpoint("wss://Relay.Damus.io/", Coordinate(37.77, -122.42))
        relay.host  # 'relay.damus.io'
        relay.url   # 'wss://relay.damus.io'
        ```
    """

    host: str
    coordinate: Coordinate
    url: str = field(init=False, compare=False)

    _SCHEME_PREFIX: ClassVar[re.Pattern[str]] = re.compile(r"^(?:https?|wss?)://", re.IGNORECASE)

    def __post_init__(self) -> None:
        validate_str_not_empty(self.host, "host")
        validate_instance(self.coordinate, Coordinate, "coordinate")

        host = self.normalize_host(self.host)
        if not host:
            raise ValueError("host must not be empty")

        uri = uri_reference(f"wss://{host}").normalize()
        validator = (
            Validator()
            .require_presence_of("scheme", "host")
            .check_validity_of("host", "port", "path")
        )
        try:
            validator.validate(uri)
        except ValidationError as e:
            raise ValueError(f"Invalid relay host {self.host!r}: {e}") from None
        if uri.query or uri.fragment:
            raise ValueError(f"Relay host must not contain a query or fragment: {self.host!r}")

        object.__setattr__(self, "host", host)
        object.__setattr__(self, "url", f"wss://{host}")

    @classmethod
    def normalize_host(cls, raw: str) -> str:
        """Strip whitespace, any ws/http scheme prefix and trailing slashes."""
        host = cls._SCHEME_PREFIX.sub("", raw.strip())
        host = host.rstrip("/")
        authority, sep, path = host.partition("/")
        return authority.lower() + sep + path

    @property
    def latitude(self) -> float:
        return self.coordinate.latitude

    @property
    def longitude(self) -> float:
        return self.coordinate.longitude
