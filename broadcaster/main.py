"""Application entrypoint."""

import asyncio
import logging
from collections.abc import Callable

from aiohttp import web

from broadcaster.adapters.driven.config.settings import load_settings
from broadcaster.adapters.driven.http.client import HttpClient
from broadcaster.adapters.driven.logging.logging_config import configure_logs
from broadcaster.adapters.driven.metrics.delivery_metrics import Metrics
from broadcaster.adapters.driven.storage.config_store import (
    InMemoryConfigStore,
    JsonFileConfigStore,
)
from broadcaster.adapters.driving.signals import make_stop_on_sigterm
from broadcaster.adapters.driving.web.app import create_app
from broadcaster.core.scheduler import Scheduler
from broadcaster.ports.config_store import ConfigStorePort
from broadcaster.ports.settings import SettingsPort

__all__ = ["main", "build_store", "serve_until_stopped"]

logger = logging.getLogger(__name__)

STOP_POLL_SEC = 0.5


async def main() -> None:
    """Start the broadcaster service.

    Startup sequence:
    1. Configure logging.
    2. Load and validate configuration.
    3. Optionally probe the health endpoint.
    4. Serve the control surface.
    5. Gracefully shutdown on SIGTERM/SIGINT.
    """
    configure_logs()
    logger.info("Starting broadcaster service...")

    try:
        config = load_settings()
    except (RuntimeError, ValueError) as exc:
        logger.error(
            "Configuration error: %s\n"
            "Hint: check DELIVERY_URL_TEMPLATE (must contain {destination}), "
            "PACING_DELAY_MS, LOG_CAPACITY and HTTP_PORT.",
            exc,
        )
        return

    # Wrap config into port so core depends on interface (hexagonal)
    settings_port = SettingsPort(
        delivery_url_template=config.delivery_url_template,
        payload_field=config.payload_field,
        pacing_delay_sec=config.pacing_delay_ms / 1_000,
        log_capacity=config.log_capacity,
        serialize_cycles=config.serialize_cycles,
        http_host=config.http_host,
        http_port=config.http_port,
        config_store_path=config.config_store_path,
        http_health_check_endpoint=config.http_health_endpoint,
    )

    http_client = HttpClient(
        settings_port.delivery_url_template,
        payload_field=settings_port.payload_field,
        metrics=Metrics(),
    )

    async with http_client as http:
        if not await optional_endpoint_health_check(settings_port, http):
            return

        scheduler = Scheduler(
            http.deliver,
            pacing_delay_sec=settings_port.pacing_delay_sec,
            log_capacity=settings_port.log_capacity,
            serialize_cycles=settings_port.serialize_cycles,
        )
        app = create_app(scheduler, build_store(settings_port))

        try:
            await serve_until_stopped(app, settings_port, make_stop_on_sigterm())
        except Exception as e:
            logger.error(f"Unhandled exception while serving: {e}", exc_info=True)
        finally:
            await scheduler.close()

        logger.info("Broadcaster stopped.")


def build_store(settings_port: SettingsPort) -> ConfigStorePort:
    """Pick the saved-configuration store for the given settings."""
    if settings_port.config_store_path:
        return JsonFileConfigStore(settings_port.config_store_path)
    return InMemoryConfigStore()


async def serve_until_stopped(
    app: web.Application,
    settings_port: SettingsPort,
    stop_fn: Callable[[], bool],
) -> None:
    """Serve the control surface until stop_fn() returns True.

    Args:
        app: Application to serve.
        settings_port: Provides the bind host and port.
        stop_fn: Polled every STOP_POLL_SEC seconds.
    """
    runner = web.AppRunner(app)
    await runner.setup()
    try:
        site = web.TCPSite(runner, settings_port.http_host, settings_port.http_port)
        await site.start()
        logger.info(
            f"Control surface listening on http://{settings_port.http_host}:{settings_port.http_port}"
        )
        while not stop_fn():
            await asyncio.sleep(STOP_POLL_SEC)
    finally:
        await runner.cleanup()


async def optional_endpoint_health_check(settings_port: SettingsPort, http: HttpClient) -> bool:
    """Perform optional health check before serving.

    Only runs if HEALTH_CHECK_ENDPOINT is configured.

    Args:
        settings_port: Runtime settings.
        http: HTTP client for probing.

    Returns:
        True if healthy or check disabled, False if check failed.
    """
    if settings_port.http_health_check_endpoint:
        logger.info(f"Performing health check on {settings_port.http_health_check_endpoint}...")
        if not await http.probe(url=settings_port.http_health_check_endpoint):
            logger.error(
                f"Health check failed for {settings_port.http_health_check_endpoint}, "
                "aborting startup"
            )
            return False

        logger.info("Health check passed, starting control surface...")
    return True


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user (Ctrl+C).")
