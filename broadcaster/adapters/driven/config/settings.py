"""Configuration loading from environment variables."""

import logging
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, HttpUrl, TypeAdapter, field_validator

__all__ = ["Settings", "load_settings"]

load_dotenv()

logger = logging.getLogger(__name__)
_http_url_adapter = TypeAdapter(HttpUrl)

DESTINATION_PLACEHOLDER = "{destination}"
_ALLOWED_SCHEMES = ("http", "https")


def _validate_http_url(v: str, what: str) -> str:
    try:
        url = _http_url_adapter.validate_python(v)
        if url.scheme not in _ALLOWED_SCHEMES:
            raise ValueError("Only http:// and https:// endpoints allowed")
    except Exception as e:
        raise ValueError(f"Invalid {what}: {e}") from e
    return v


class Settings(BaseModel):
    """Runtime configuration for the broadcaster service.

    Attributes:
        delivery_url_template: Message endpoint with a ``{destination}`` placeholder.
        payload_field: JSON key carrying the message.
        pacing_delay_ms: Delay between two destinations of a cycle.
        log_capacity: Entries kept in the operator log.
        serialize_cycles: Skip a tick while the previous cycle still runs.
        http_host: Control surface bind address.
        http_port: Control surface port.
        config_store_path: JSON file for saved configs; in-memory when unset.
        http_health_endpoint: Optional endpoint to probe before starting.
    """

    delivery_url_template: str = Field(
        ..., description="Message endpoint with a {destination} placeholder."
    )
    payload_field: str = Field(default="content", min_length=1)
    pacing_delay_ms: int = Field(default=500, ge=0, description="Delay between destinations.")
    log_capacity: int = Field(default=100, gt=0, description="Operator log capacity.")
    serialize_cycles: bool = False
    http_host: str = "127.0.0.1"
    http_port: int = Field(default=5000, gt=0, lt=65536)
    config_store_path: str | None = None
    http_health_endpoint: str | None = Field(
        default=None,
        description=(
            "Optional HTTP endpoint to probe for health. "
            "If not set, no health check is performed."
        ),
    )

    @field_validator("delivery_url_template")
    @classmethod
    def validate_delivery_url_template(cls, v: str) -> str:
        """Validate the template is an http(s) URL with a destination slot.

        Raises:
            ValueError: If the placeholder is missing or the URL is invalid.
        """
        if DESTINATION_PLACEHOLDER not in v:
            raise ValueError(f"Delivery URL template must contain {DESTINATION_PLACEHOLDER}")
        try:
            sample = v.format(destination="x")
        except (KeyError, IndexError, ValueError) as e:
            raise ValueError(f"Delivery URL template has unexpected placeholders: {e}") from e
        _validate_http_url(sample, "delivery URL template")
        return v

    @field_validator("http_health_endpoint")
    @classmethod
    def validate_http_health_endpoint(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _validate_http_url(v, "health endpoint")


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise RuntimeError(f"{name} must be an integer (got: {raw})") from e


def _bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """Load and validate settings from the environment.

    Required environment variables:
    - DELIVERY_URL_TEMPLATE: http(s) URL containing ``{destination}``.

    Optional:
    - PAYLOAD_FIELD, PACING_DELAY_MS, LOG_CAPACITY, SERIALIZE_CYCLES,
      HTTP_HOST, HTTP_PORT, CONFIG_STORE_PATH, HEALTH_CHECK_ENDPOINT.

    Returns:
        Validated Settings object.

    Raises:
        RuntimeError: If required env vars are missing or not integers.
        ValueError: If configuration is invalid.
    """
    try:
        url_template = os.environ["DELIVERY_URL_TEMPLATE"]
    except KeyError as e:
        raise RuntimeError(f"Missing required environment variable: {e.args[0]}") from e

    settings = Settings(
        delivery_url_template=url_template,
        payload_field=os.getenv("PAYLOAD_FIELD", "content"),
        pacing_delay_ms=_int_env("PACING_DELAY_MS", 500),
        log_capacity=_int_env("LOG_CAPACITY", 100),
        serialize_cycles=_bool_env("SERIALIZE_CYCLES"),
        http_host=os.getenv("HTTP_HOST", "127.0.0.1"),
        http_port=_int_env("HTTP_PORT", 5000),
        config_store_path=os.getenv("CONFIG_STORE_PATH") or None,
        http_health_endpoint=os.getenv("HEALTH_CHECK_ENDPOINT") or None,
    )

    logger.info(
        f"Broadcaster configured: endpoint={settings.delivery_url_template}, "
        f"pacing={settings.pacing_delay_ms}ms, "
        f"log_capacity={settings.log_capacity}, "
        f"store={settings.config_store_path or '<memory>'}, "
        f"health_check={settings.http_health_endpoint or '<disabled>'}"
    )

    return settings
