"""CLI entry point for the geofeed service.

Loads the YAML configuration, starts the Prometheus metrics server and
runs the [Feed][geofeed.services.feed.Feed] until SIGINT or SIGTERM.

Examples:
    ```bash
    python -m geofeed
    python -m geofeed --config config/geofeed.yaml --log-level DEBUG
    ```
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Any

from geofeed.core import start_metrics_server
from geofeed.core.exceptions import ConfigurationError
from geofeed.core.logger import Logger, StructuredFormatter
from geofeed.core.yaml import load_yaml
from geofeed.services.feed import Feed


DEFAULT_CONFIG = Path("config") / "geofeed.yaml"

logger = Logger("cli")


async def run_feed(feed: Feed) -> int:
    """Run the feed continuously with a metrics server.

    Returns:
        Exit code: 0 for success, 1 for failure.
    """
    metrics_config = feed.config.metrics
    metrics_server = await start_metrics_server(metrics_config)

    if metrics_config.enabled:
        logger.info(
            "metrics_server_started",
            host=metrics_config.host,
            port=metrics_config.port,
            path=metrics_config.path,
        )

    def handle_signal(sig: signal.Signals) -> None:
        logger.info("shutdown_signal", signal=sig.name)
        feed.request_shutdown()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal, sig)

    try:
        async with feed:
            await feed.run_forever()
        return 0
    except Exception as e:  # Intentionally broad: CLI error boundary
        logger.error("feed_failed", error=str(e))
        return 1
    finally:
        await metrics_server.stop()
        if metrics_config.enabled:
            logger.info("metrics_server_stopped")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="geofeed",
        description="Geohash-partitioned Nostr event feed",
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG,
        help=f"Config path (default: {DEFAULT_CONFIG})",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Log level (default: INFO)",
    )

    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    """Configure the root logger with structured formatting.

    Installs a ``StructuredFormatter`` on the root handler so that all
    log output -- from both ``Logger`` and plain ``logging.getLogger()``
    calls in models/utils -- is unified as ``level name message key=value``.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level))


def load_config_dict(path: Path) -> dict[str, Any]:
    """Load a YAML file as a dict, returning ``{}`` if the file does not exist."""
    if not path.exists():
        logger.warning("config_not_found", path=str(path))
        return {}
    return load_yaml(str(path))


async def main(argv: list[str] | None = None) -> int:
    """Parse args, build the feed and run it."""
    args = parse_args(argv)
    setup_logging(args.log_level)

    try:
        config_dict = load_config_dict(args.config)
        feed = Feed.from_dict(config_dict) if config_dict else Feed()
    except (ConfigurationError, ValueError) as e:
        logger.error("config_invalid", path=str(args.config), error=str(e))
        return 1

    try:
        return await run_feed(feed)
    except KeyboardInterrupt:
        logger.info("interrupted")
        return 130


def cli() -> None:
    """Synchronous entry point for console_scripts."""
    sys.exit(asyncio.run(main()))


if __name__ == "__main__":
    cli()
