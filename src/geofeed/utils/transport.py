"""WebSocket transport to Nostr relays.

A thin aiohttp-based adapter exposing exactly what the relay multiplexer
needs from a socket: send a text frame, iterate inbound text frames until
the connection ends, and close. Connection failures surface as ``OSError``
(or its subclass ``TimeoutError``) so callers handle every network failure
with a single ``except`` clause.

The multiplexer takes the opener as a [Connector][geofeed.utils.transport.Connector]
so that tests can substitute in-memory sockets.

Examples:
    ```python
    from geofeed.utils.transport import open_websocket

    ws = await open_websocket("wss://nos.lol", timeout=10.0)
    await ws.send('["REQ", "geo_u", {"#g": ["u"]}]')
    async for frame in ws:
        ...
    await ws.close()
    ```
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Final, Protocol

import aiohttp

from geofeed.core.exceptions import ConnectivityError, RelayTimeoutError


DEFAULT_TIMEOUT: Final[float] = 10.0
_WS_CLOSE_TIMEOUT: Final[float] = 5.0
_WS_HEARTBEAT: Final[float] = 30.0

logger = logging.getLogger(__name__)


class RelaySocket(Protocol):
    """Minimal socket interface used by the multiplexer."""

    @property
    def closed(self) -> bool: ...

    async def send(self, text: str) -> None: ...

    def __aiter__(self) -> AsyncIterator[str]: ...

    async def close(self) -> None: ...


Connector = Callable[[str], Awaitable[RelaySocket]]


class WebSocketConnection:
    """aiohttp WebSocket plus the session that owns it.

    Iterating yields inbound text frames (binary frames are decoded as
    UTF-8) and stops when the relay closes the connection or an error
    frame arrives.
    """

    __slots__ = ("_close_timeout", "_session", "_ws", "url")

    def __init__(
        self,
        url: str,
        ws: aiohttp.ClientWebSocketResponse,
        session: aiohttp.ClientSession,
        close_timeout: float = _WS_CLOSE_TIMEOUT,
    ) -> None:
        self.url = url
        self._ws = ws
        self._session = session
        self._close_timeout = close_timeout

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send(self, text: str) -> None:
        """Send a text frame.

        Raises:
            ConnectivityError: If the socket is closed or the send fails.
        """
        try:
            await self._ws.send_str(text)
        except (aiohttp.ClientError, ConnectionError, RuntimeError) as e:
            raise ConnectivityError(f"Send failed: {self.url} ({e})") from e

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            msg = await self._ws.receive()
            if msg.type == aiohttp.WSMsgType.TEXT:
                yield msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                yield msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                raise ConnectivityError(f"WebSocket error: {self.url} ({self._ws.exception()})")
            else:
                # CLOSE, CLOSING, CLOSED
                return

    async def close(self) -> None:
        """Close the socket and its session, bounded by the close timeout."""
        # Intentionally broad: half-open sockets raise arbitrary client errors
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._ws.close(), timeout=self._close_timeout)
        with contextlib.suppress(Exception):
            await asyncio.wait_for(self._session.close(), timeout=self._close_timeout)


async def open_websocket(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,  # noqa: ASYNC109
    *,
    heartbeat: float = _WS_HEARTBEAT,
) -> WebSocketConnection:
    """Open a WebSocket connection to a relay.

    Args:
        url: ``ws://`` or ``wss://`` relay URL.
        timeout: Handshake timeout in seconds.
        heartbeat: Interval for aiohttp's automatic ping/pong keepalive.

    Raises:
        RelayTimeoutError: If the handshake does not finish in time.
        ConnectivityError: On DNS, TCP, TLS or HTTP upgrade failure.
    """
    session = aiohttp.ClientSession()
    try:
        ws = await asyncio.wait_for(
            session.ws_connect(url, heartbeat=heartbeat, autoping=True),
            timeout=timeout,
        )
    except TimeoutError:
        await session.close()
        logger.debug("ws_timeout url=%s", url)
        raise RelayTimeoutError(f"Connection timeout: {url}") from None
    except asyncio.CancelledError:
        await session.close()
        raise
    except (aiohttp.ClientError, OSError) as e:
        await session.close()
        logger.debug("ws_connect_failed url=%s error=%s", url, str(e))
        raise ConnectivityError(f"Connection failed: {url} ({e})") from e

    return WebSocketConnection(url, ws, session)
