"""geofeed exception hierarchy.

The feed is designed to degrade rather than fail: duplicate events,
protocol noise, socket failures and capacity overflow are all handled
internally and never reach callers. The exceptions below exist for the
few boundaries where a typed failure is still useful, chiefly
configuration loading and the transport layer.

Exception hierarchy:

```text
GeofeedError (base -- never raised directly)
├── ConfigurationError      -- config validation, missing keys, bad YAML
├── ConnectivityError        -- relay unreachable, network failures
│   └── RelayTimeoutError    -- connection or response timed out
└── ProtocolError            -- relay message could not be decoded
```

See Also:
    [RelayMultiplexer][geofeed.services.multiplexer.RelayMultiplexer]:
        Catches connectivity failures per connection and schedules a
        reconnect instead of propagating them.
    [parse_relay_message()][geofeed.nips.nip01.parse_relay_message]:
        Raises [ProtocolError][geofeed.core.exceptions.ProtocolError]
        internally and maps it to an unrecognized message.
"""

from __future__ import annotations


class GeofeedError(Exception):
    """Base exception for all geofeed errors.

    Never raised directly -- always use a specific subclass.
    """


class ConfigurationError(GeofeedError):
    """Invalid or missing configuration (YAML, CLI flags)."""


class ConnectivityError(GeofeedError, OSError):
    """A relay or directory source could not be reached.

    Subclasses ``OSError`` so that callers catching network failures the
    usual way also catch it.
    """


class RelayTimeoutError(ConnectivityError, TimeoutError):
    """Connection or response timed out."""


class ProtocolError(GeofeedError, ValueError):
    """A relay message or event payload does not follow NIP-01."""
