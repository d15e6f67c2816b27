"""Settings port definition (DTO)."""

from dataclasses import dataclass

__all__ = ["SettingsPort"]


@dataclass
class SettingsPort:
    """Runtime settings for the scheduler and its adapters.

    Decouples core from concrete configuration sources, enabling
    easy testing and implementation swapping.

    Attributes:
        delivery_url_template: URL with a ``{destination}`` placeholder.
        payload_field: JSON key carrying the message in the request body.
        pacing_delay_sec: Delay between two destinations of one cycle.
        log_capacity: Maximum number of entries kept in the log buffer.
        serialize_cycles: Skip a tick while the previous cycle still runs.
        http_host: Interface the control surface binds to.
        http_port: Port the control surface binds to.
        config_store_path: Optional JSON file for saved configurations.
        http_health_check_endpoint: Optional URL to probe before starting.
    """

    delivery_url_template: str
    payload_field: str = "content"
    pacing_delay_sec: float = 0.5
    log_capacity: int = 100
    serialize_cycles: bool = False
    http_host: str = "127.0.0.1"
    http_port: int = 5000
    config_store_path: str | None = None
    http_health_check_endpoint: str | None = None
