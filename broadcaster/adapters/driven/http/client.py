"""HTTP delivery adapter with metrics integration."""

import asyncio
import logging
from types import TracebackType

import aiohttp
from aiohttp import ClientResponse, ClientTimeout

from broadcaster.adapters.driven.http.retry import retry
from broadcaster.ports.delivery import DeliveryPort, DeliveryResult
from broadcaster.ports.metrics import DeliveryAttemptDto, MetricsPort

__all__ = ["HttpClient"]

logger = logging.getLogger(__name__)

PROBE_RETRIES = 5
PROBE_TIMEOUT = 10


class HttpClient:
    """HTTP client delivering payloads to the remote message API.

    Features:
    - One POST per delivery, no retry (the scheduler classifies failures).
    - Metrics collection (latency, failure rate).
    - Context manager for proper resource cleanup.
    - Health check/probe functionality with retry.
    """

    def __init__(
        self,
        url_template: str,
        *,
        payload_field: str = "content",
        metrics: MetricsPort | None = None,
    ) -> None:
        """Initialize HTTP client.

        Args:
            url_template: Delivery URL with a ``{destination}`` placeholder.
            payload_field: JSON key carrying the message in the request body.
            metrics: Optional metrics collector to track attempts.
        """
        self.url_template = url_template
        self.payload_field = payload_field
        self.metrics = metrics
        self.session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> "HttpClient":
        """Enter async context manager (start session).

        Returns:
            Self for use in async with statement.
        """
        self.session = aiohttp.ClientSession()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self.session:
            await self.session.close()

    def url_for(self, destination: str) -> str:
        """Build the delivery URL of a destination."""
        return self.url_template.format(destination=destination.strip())

    @retry(times=PROBE_RETRIES)
    async def _probe_once(self, url: str, timeout: int = PROBE_TIMEOUT) -> ClientResponse:
        """Single HTTP GET request for health check (with retry).

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            HTTP response.

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors (retried by decorator).
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")
        client_timeout = ClientTimeout(timeout)
        return await self.session.get(url, timeout=client_timeout, allow_redirects=True)

    async def probe(self, url: str, timeout: int = PROBE_TIMEOUT) -> bool:
        """Check if HTTP endpoint is reachable.

        Attempts up to PROBE_RETRIES times with exponential backoff.

        Args:
            url: URL to probe.
            timeout: Timeout in seconds.

        Returns:
            True if reachable (200 <= status < 300), False otherwise.
        """
        logger.info(f"Probing endpoint {url}...")
        try:
            resp = await self._probe_once(url, timeout)
            try:
                is_healthy = 200 <= resp.status < 300
            finally:
                resp.release()
            logger.info(f"Probe for {url} returned status {resp.status}")
            return is_healthy
        except Exception as e:
            logger.warning(f"Probe failed for {url}: {e}")
            return False

    async def deliver(self, req: DeliveryPort) -> DeliveryResult:
        """POST the payload to one destination and record metrics.

        Transport errors are not caught here; the caller classifies them.
        Timeouts are aiohttp's defaults.

        Args:
            req: Delivery to perform.

        Returns:
            Status code and response body.

        Raises:
            RuntimeError: If session not initialized.
            aiohttp exceptions: Network/timeout errors.
        """
        if self.session is None:
            raise RuntimeError("Session not initialized; use 'async with' context manager")

        loop = asyncio.get_running_loop()
        started = loop.time()

        async with self.session.post(
            self.url_for(req.destination),
            json={self.payload_field: req.payload},
            headers={"Authorization": req.credential},
        ) as resp:
            body = await resp.text()
            result = DeliveryResult(status_code=resp.status, body=body)

        if self.metrics:
            self.metrics.update(
                DeliveryAttemptDto(
                    started_at_sec=started,
                    finished_at_sec=loop.time(),
                    is_failed=not result.ok,
                    status_code=result.status_code,
                )
            )
            logger.debug(f"Delivery metrics: {self.metrics}")

        return result
