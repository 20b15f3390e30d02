"""
Prometheus metrics collection and HTTP exposition.

Module-level metric objects are shared across the process.
[BaseService.run_forever()][geofeed.core.base_service.BaseService.run_forever]
records cycle counts and durations automatically; the feed adds its own
point-in-time values (stored events, open relay connections, ...) through
``set_gauge()`` and cumulative totals through ``inc_counter()``.

The [MetricsServer][geofeed.core.metrics.MetricsServer] exposes the
registry over an aiohttp endpoint for Prometheus scraping.

Architecture:
    SERVICE_INFO:               Static metadata set once at startup.
    SERVICE_GAUGE:              Point-in-time values (current state).
    SERVICE_COUNTER:            Cumulative totals (monotonically increasing).
    CYCLE_DURATION_SECONDS:     Histogram of stats-cycle durations.
"""

from __future__ import annotations

from aiohttp import web
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
)
from pydantic import BaseModel, Field


class MetricsConfig(BaseModel):
    """Where and whether to serve the Prometheus scrape endpoint.

    Disabled by default. Bind ``host`` to ``0.0.0.0`` when the scraper runs
    outside the feed's network namespace.
    """

    enabled: bool = Field(default=False, description="Enable metrics collection")
    port: int = Field(default=8000, ge=1024, le=65535, description="Metrics HTTP port")
    host: str = Field(default="127.0.0.1", description="Metrics HTTP bind address")
    path: str = Field(default="/metrics", description="Metrics endpoint path")


SERVICE_INFO = Info(
    "geofeed_service",
    "Static geofeed service metadata",
)

CYCLE_DURATION_SECONDS = Histogram(
    "geofeed_cycle_duration_seconds",
    "Wall time of one statistics cycle in seconds",
    ["service"],
    buckets=(0.001, 0.01, 0.1, 0.5, 1, 5, 10, 30, 60),
)

# Label examples:
#   gauge:   {service="feed", name="events_stored"}
#   counter: {service="feed", name="events_accepted"}
SERVICE_GAUGE = Gauge(
    "geofeed_service_gauge",
    "Point-in-time feed values, labelled by name",
    ["service", "name"],
)

SERVICE_COUNTER = Counter(
    "geofeed_service_counter",
    "Cumulative feed totals, labelled by name",
    ["service", "name"],
)


class MetricsServer:
    """Async HTTP server exposing a Prometheus-compatible metrics endpoint.

    Example:
        server = MetricsServer(MetricsConfig(enabled=True, port=8001))
        await server.start()
        # ... feed runs ...
        await server.stop()
    """

    def __init__(self, config: MetricsConfig) -> None:
        self._config = config
        self._runner: web.AppRunner | None = None

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> None:
        """Start listening for scrape requests (no-op when disabled).

        Raises:
            OSError: If the port is already in use or binding fails.
        """
        if not self._config.enabled or self._runner is not None:
            return

        app = web.Application()
        app.router.add_get(self._config.path, self._handle_metrics)

        runner = web.AppRunner(app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, self._config.host, self._config.port)
        await site.start()
        self._runner = runner

    async def stop(self) -> None:
        """Stop the HTTP server. Safe to call when never started."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None

    @staticmethod
    async def _handle_metrics(_request: web.Request) -> web.Response:
        return web.Response(
            body=generate_latest(),
            headers={"Content-Type": CONTENT_TYPE_LATEST},
        )


async def start_metrics_server(config: MetricsConfig | None = None) -> MetricsServer:
    """Create and start a metrics server.

    Returns:
        The (possibly disabled) server. Call ``stop()`` during shutdown to
        release the bound port.
    """
    server = MetricsServer(config or MetricsConfig())
    await server.start()
    return server
