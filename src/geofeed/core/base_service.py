"""
Abstract base class for long-running geofeed services.

``BaseService[ConfigT]`` provides the lifecycle shared by services that run
a periodic cycle next to their background work: structured logging via
[Logger][geofeed.core.logger.Logger], graceful shutdown via
``asyncio.Event``, interval-based cycling with
[run_forever()][geofeed.core.base_service.BaseService.run_forever],
a consecutive-failure limit, and Prometheus metrics tracking.

Collaborators (directory, multiplexer, store) are constructed explicitly
and handed to the service; nothing is held in module-level singletons.

See Also:
    [Feed][geofeed.services.feed.Feed]: The concrete service built on
        this class.
    [BaseServiceConfig][geofeed.core.base_service.BaseServiceConfig]: Base
        configuration model for all services.
"""

from __future__ import annotations

import asyncio
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, ClassVar, Generic, Self, TypeVar, cast

from pydantic import BaseModel, Field

from .logger import Logger
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
)
from .yaml import load_yaml


if TYPE_CHECKING:
    from types import TracebackType


class BaseServiceConfig(BaseModel):
    """Cycle interval, failure limit and metrics settings common to services."""

    interval: float = Field(default=60.0, ge=1.0, description="Seconds between run() cycles")
    max_consecutive_failures: int = Field(
        default=5, ge=0, description="Failed cycles in a row before giving up (0 = never)"
    )
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


ConfigT = TypeVar("ConfigT", bound=BaseServiceConfig)


class BaseService(ABC, Generic[ConfigT]):
    """Periodic service skeleton.

    A subclass names itself with ``SERVICE_NAME``, declares its pydantic
    model in ``CONFIG_CLASS`` and implements
    [run()][geofeed.core.base_service.BaseService.run]. Background work
    (connections, servers, timers) belongs in ``__aenter__``/``__aexit__``;
    ``run()`` is the periodic bookkeeping done between waits.

    Examples:
        ```python
        async with service:
            await service.run_forever()
        ```
    """

    SERVICE_NAME: ClassVar[str]
    CONFIG_CLASS: ClassVar[type[BaseModel]]

    def __init__(self, config: ConfigT | None = None) -> None:
        self._config: ConfigT = (
            config if config is not None else cast("ConfigT", self.CONFIG_CLASS())
        )
        self._logger = Logger(self.SERVICE_NAME)
        self._shutdown_event = asyncio.Event()

    @property
    def config(self) -> ConfigT:
        """Validated configuration of this service."""
        return self._config

    @abstractmethod
    async def run(self) -> None:
        """Execute one cycle of the service's periodic work."""
        ...

    def request_shutdown(self) -> None:
        """Request a graceful shutdown; safe to call from signal handlers."""
        self._shutdown_event.set()

    @property
    def is_running(self) -> bool:
        """``False`` once shutdown has been requested."""
        return not self._shutdown_event.is_set()

    async def wait(self, timeout: float) -> bool:  # noqa: ASYNC109
        """Sleep for *timeout* seconds, waking early on shutdown.

        Returns:
            ``True`` if shutdown was requested during the wait, ``False``
            if the timeout expired normally.
        """
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=timeout)
            return True
        except TimeoutError:
            return False

    async def run_forever(self) -> None:
        """Repeat [run()][geofeed.core.base_service.BaseService.run] until stopped.

        One cycle runs every ``config.interval`` seconds. The loop ends when
        shutdown is requested or after ``config.max_consecutive_failures``
        failed cycles in a row (``0`` means no limit). Cancellation,
        ``KeyboardInterrupt`` and ``SystemExit`` are never counted as
        failures; they propagate.
        """
        limit = self._config.max_consecutive_failures
        if self._config.metrics.enabled:
            SERVICE_INFO.info({"service": str(self.SERVICE_NAME)})
        self._logger.info(
            "run_forever_started", interval=self._config.interval, max_consecutive_failures=limit
        )

        failures = 0
        while self.is_running:
            failures = 0 if await self._run_cycle() else failures + 1
            if failures:
                self.set_gauge("consecutive_failures", failures)
            if 0 < limit <= failures:
                self._logger.critical(
                    "max_consecutive_failures_reached", failures=failures, limit=limit
                )
                break
            if await self.wait(self._config.interval):
                break

        self._logger.info("run_forever_stopped")

    async def _run_cycle(self) -> bool:
        """Run one cycle and record its outcome. Returns ``True`` on success."""
        started = time.monotonic()
        try:
            await self.run()
        except (asyncio.CancelledError, KeyboardInterrupt, SystemExit):
            raise
        except Exception as e:  # Intentionally broad: top-level error boundary for run_forever
            self.inc_counter("cycles_failed")
            self.inc_counter(f"errors_{type(e).__name__}")
            self._logger.error("run_cycle_error", error=str(e), error_type=type(e).__name__)
            return False

        if self._config.metrics.enabled:
            CYCLE_DURATION_SECONDS.labels(service=self.SERVICE_NAME).observe(
                time.monotonic() - started
            )
        self.inc_counter("cycles_success")
        self.set_gauge("last_cycle_timestamp", time.time())
        self.set_gauge("consecutive_failures", 0)
        return True

    # -------------------------------------------------------------------------
    # Factory Methods
    # -------------------------------------------------------------------------

    @classmethod
    def from_yaml(cls, config_path: str, **kwargs: Any) -> Self:
        """Create a service instance from a YAML configuration file."""
        return cls.from_dict(load_yaml(config_path), **kwargs)

    @classmethod
    def from_dict(cls, data: dict[str, Any], **kwargs: Any) -> Self:
        """Validate *data* against ``CONFIG_CLASS`` and build the service.

        Extra keyword arguments (for example injected collaborators) are
        passed to the constructor unchanged.
        """
        config = cast("ConfigT", cls.CONFIG_CLASS.model_validate(data))
        return cls(config=config, **kwargs)

    # -------------------------------------------------------------------------
    # Context Manager
    # -------------------------------------------------------------------------

    async def __aenter__(self) -> Self:
        self._shutdown_event.clear()
        self._logger.info("service_started")
        return self

    async def __aexit__(
        self,
        _exc_type: type[BaseException] | None,
        _exc_val: BaseException | None,
        _exc_tb: TracebackType | None,
    ) -> None:
        self._shutdown_event.set()
        self._logger.info("service_stopped")

    # -------------------------------------------------------------------------
    # Custom Metrics
    # -------------------------------------------------------------------------

    def set_gauge(self, name: str, value: float) -> None:
        """Set a named gauge for this service (no-op if metrics are disabled)."""
        if not self._config.metrics.enabled:
            return
        SERVICE_GAUGE.labels(service=self.SERVICE_NAME, name=name).set(value)

    def inc_counter(self, name: str, value: float = 1) -> None:
        """Increment a named counter for this service (no-op if metrics are disabled)."""
        if not self._config.metrics.enabled:
            return
        SERVICE_COUNTER.labels(service=self.SERVICE_NAME, name=name).inc(value)
