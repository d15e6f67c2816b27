"""Delivery port definition (DTOs)."""

from dataclasses import dataclass

__all__ = ["DeliveryPort", "DeliveryResult", "AUTH_FAILURE_STATUS"]

# Status the remote API answers when the credential itself is rejected
AUTH_FAILURE_STATUS = 401


@dataclass(slots=True, frozen=True)
class DeliveryPort:
    """One outbound delivery to be performed for a destination.

    Decouples the scheduler from HTTP implementation details.

    Attributes:
        destination: Target identifier the payload is delivered to.
        credential: Secret sent as the authorization header.
        payload: Message text.
    """

    destination: str
    credential: str
    payload: str


@dataclass(slots=True, frozen=True)
class DeliveryResult:
    """Outcome of a delivery attempt that reached the remote API.

    Attributes:
        status_code: HTTP status returned by the remote API.
        body: Response body as text (may be empty).
    """

    status_code: int
    body: str = ""

    @property
    def ok(self) -> bool:
        """True for any 2xx status."""
        return 200 <= self.status_code < 300

    @property
    def is_auth_failure(self) -> bool:
        """True when the remote API rejected the credential."""
        return self.status_code == AUTH_FAILURE_STATUS
