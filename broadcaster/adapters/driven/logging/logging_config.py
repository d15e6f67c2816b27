"""Console logging setup for the broadcaster."""

import logging

__all__ = ["configure_logs"]

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s:%(lineno)d - %(message)s"
DATE_FORMAT = "%d/%m/%y %H:%M:%S"


def configure_logs(level: int = logging.INFO) -> None:
    """Configure console logging.

    Sets up:
    - Root logger at the given level with a single stream handler.
    - Framework loggers (aiohttp, asyncio) at WARNING level.
    - Application loggers (broadcaster) at DEBUG level.

    Safe to call twice; the handler is only installed once.

    Args:
        level: Root logger level.
    """
    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_broadcaster", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT, DATE_FORMAT))
        handler._broadcaster = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # aiohttp.access logs every status poll
    for name in ("aiohttp", "aiohttp.access", "asyncio"):
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger("broadcaster").setLevel(logging.DEBUG)
