"""Healthcheck validator for container orchestration."""

import logging

from broadcaster.adapters.driven.config.settings import load_settings
from broadcaster.adapters.driven.logging.logging_config import configure_logs

__all__ = ["main"]

logger = logging.getLogger(__name__)


def main() -> int:
    """Run health check for container orchestration.

    Validates that required environment variables are set and the
    configuration passes validation.

    Returns:
        0 if healthy, 1 if unhealthy.
    """
    configure_logs()

    try:
        _ = load_settings()
    except Exception as exc:
        logger.error(f"Broadcaster healthcheck FAILED: {exc}")
        return 1

    logger.info("Broadcaster healthcheck OK")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
