"""HTTP utilities for geofeed.

Bounded body reading so that a misbehaving directory source cannot
exhaust memory with an oversized payload.

See Also:
    [RelayDirectory][geofeed.services.directory.RelayDirectory]: Fetches the
        remote relay CSV with [fetch_bounded_text][geofeed.utils.http.fetch_bounded_text].
"""

from __future__ import annotations

import aiohttp


async def _read_bounded(response: aiohttp.ClientResponse, max_size: int) -> bytes:
    """Read an entire response body with size enforcement.

    Accumulates chunks until EOF so that chunked transfer-encoding, where a
    single read may return fewer bytes than requested, is handled.

    Raises:
        ValueError: If the response body exceeds *max_size*.
    """
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await response.content.read(max_size + 1 - total)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise ValueError(f"Response body too large: >{max_size} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


async def read_bounded_text(
    response: aiohttp.ClientResponse, max_size: int, encoding: str = "utf-8"
) -> str:
    """Read and decode a response body with size enforcement.

    Undecodable bytes are replaced rather than raising, since directory
    sources are third-party text files.
    """
    body = await _read_bounded(response, max_size)
    return body.decode(encoding, errors="replace")


async def fetch_bounded_text(
    session: aiohttp.ClientSession,
    url: str,
    max_size: int,
    timeout: float = 10.0,  # noqa: ASYNC109
) -> str:
    """GET *url* and return its body as text.

    Raises:
        aiohttp.ClientError: On connection failure or a non-2xx status.
        TimeoutError: If the request exceeds *timeout*.
        ValueError: If the body exceeds *max_size*.
    """
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with session.get(url, timeout=client_timeout) as response:
        response.raise_for_status()
        return await read_bounded_text(response, max_size)
