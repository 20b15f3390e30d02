"""Relay directory: the set of known relays and their positions.

The directory is loaded once per multiplexer start from an ordered list of
sources:

1. remote CSV documents fetched over HTTP (bounded size, timeout);
2. local CSV files;
3. a hardcoded fallback list.

A source that fails, or that parses to zero relays, falls through to the
next one. Loading therefore never fails: in the worst case the feed runs
against the fallback relays.

See Also:
    [DirectoryConfig][geofeed.services.directory.DirectoryConfig]: Source
        configuration.
    [parse_relay_csv][geofeed.services.directory.utils.parse_relay_csv]:
        The CSV parser shared by remote and local sources.
    [RelayMultiplexer][geofeed.services.multiplexer.RelayMultiplexer]:
        Loads the directory on start and assigns regions from it.

Examples:
    ```python
    directory = RelayDirectory()
    relays = await directory.load()
    directory.nearest(Coordinate(52.5, 13.4), 3)
    ```
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import aiohttp

from geofeed.core.logger import Logger
from geofeed.utils.http import fetch_bounded_text

from .configs import DirectoryConfig
from .utils import nearest_relays, parse_relay_csv


if TYPE_CHECKING:
    from collections.abc import Sequence

    from geofeed.models.coordinate import Coordinate
    from geofeed.models.relay import RelayEndpoint


FALLBACK_SOURCE = "fallback"


class RelayDirectory:
    """Snapshot of relay endpoints with known coordinates.

    A reload replaces the snapshot as a whole; entries are never mutated.

    Attributes:
        source: Where the current snapshot came from (URL, path or
            ``"fallback"``), or ``None`` before the first load.
    """

    def __init__(self, config: DirectoryConfig | None = None) -> None:
        self._config = config or DirectoryConfig()
        self._logger = Logger("directory")
        self._relays: tuple[RelayEndpoint, ...] = ()
        self.source: str | None = None

    @property
    def config(self) -> DirectoryConfig:
        return self._config

    @property
    def relays(self) -> tuple[RelayEndpoint, ...]:
        """The current snapshot (empty before the first load)."""
        return self._relays

    def __len__(self) -> int:
        return len(self._relays)

    def nearest(self, coordinate: Coordinate, count: int) -> Sequence[RelayEndpoint]:
        """Return up to *count* relays nearest to *coordinate*, nearest first."""
        return nearest_relays(self._relays, coordinate, count)

    async def load(self) -> tuple[RelayEndpoint, ...]:
        """Acquire a fresh snapshot from the first source that yields relays.

        Returns:
            The new snapshot. Falls back to the configured fallback relays
            when every source fails or is empty.
        """
        relays = await self._load_remote()
        if not relays:
            relays = await self._load_local()
        if not relays:
            relays = tuple(entry.to_endpoint() for entry in self._config.fallback)
            self.source = FALLBACK_SOURCE
            self._logger.warning("directory_fallback", relays=len(relays))

        self._relays = relays
        self._logger.info("directory_loaded", source=self.source, relays=len(relays))
        return relays

    async def _load_remote(self) -> tuple[RelayEndpoint, ...]:
        if not self._config.remote_urls:
            return ()
        async with aiohttp.ClientSession() as session:
            for url in self._config.remote_urls:
                try:
                    text = await fetch_bounded_text(
                        session,
                        url,
                        max_size=self._config.max_response_size,
                        timeout=self._config.timeout,
                    )
                except (aiohttp.ClientError, TimeoutError, ValueError) as e:
                    self._logger.warning("directory_fetch_failed", url=url, error=str(e))
                    continue

                relays = tuple(parse_relay_csv(text))
                if relays:
                    self.source = url
                    return relays
                self._logger.warning("directory_source_empty", url=url)
        return ()

    async def _load_local(self) -> tuple[RelayEndpoint, ...]:
        for raw_path in self._config.local_paths:
            path = Path(raw_path)
            try:
                text = await asyncio.to_thread(path.read_text, encoding="utf-8", errors="replace")
            except OSError as e:
                self._logger.warning("directory_read_failed", path=raw_path, error=str(e))
                continue

            relays = tuple(parse_relay_csv(text))
            if relays:
                self.source = raw_path
                return relays
            self._logger.warning("directory_source_empty", path=raw_path)
        return ()
