"""Core layer: service lifecycle, event store, logging, metrics and config.

Depends only on [geofeed.models][geofeed.models] and is depended upon by
[geofeed.services][geofeed.services].

Attributes:
    BaseService: Abstract generic base class with lifecycle management
        ([run()][geofeed.core.base_service.BaseService.run] /
        [run_forever()][geofeed.core.base_service.BaseService.run_forever] /
        shutdown), factory methods and Prometheus metrics integration.
    EventStore: Bounded, deduplicated, time-windowed in-memory event store.
        See [EventStore][geofeed.core.store.EventStore].
    Logger: Structured logger supporting key=value and JSON output modes.
    MetricsServer: Prometheus ``/metrics`` HTTP endpoint.
    YAML: Safe YAML loading with ``yaml.safe_load()``.
        See [load_yaml()][geofeed.core.yaml.load_yaml].

Examples:
    ```python
    from geofeed.core import EventStore, EventStoreConfig, Logger

    store = EventStore(EventStoreConfig(max_events=10_000))
    ```
"""

from .base_service import (
    BaseService,
    BaseServiceConfig,
    ConfigT,
)
from .exceptions import (
    ConfigurationError,
    ConnectivityError,
    GeofeedError,
    ProtocolError,
    RelayTimeoutError,
)
from .logger import Logger, StructuredFormatter, format_kv_pairs
from .metrics import (
    CYCLE_DURATION_SECONDS,
    SERVICE_COUNTER,
    SERVICE_GAUGE,
    SERVICE_INFO,
    MetricsConfig,
    MetricsServer,
    start_metrics_server,
)
from .store import EventStore, EventStoreConfig
from .yaml import load_yaml


__all__ = [
    "CYCLE_DURATION_SECONDS",
    "SERVICE_COUNTER",
    "SERVICE_GAUGE",
    "SERVICE_INFO",
    "BaseService",
    "BaseServiceConfig",
    "ConfigT",
    "ConfigurationError",
    "ConnectivityError",
    "EventStore",
    "EventStoreConfig",
    "GeofeedError",
    "Logger",
    "MetricsConfig",
    "MetricsServer",
    "ProtocolError",
    "RelayTimeoutError",
    "StructuredFormatter",
    "format_kv_pairs",
    "load_yaml",
    "start_metrics_server",
]
