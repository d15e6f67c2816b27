"""Saved-configuration port definition (interface and DTOs)."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

__all__ = ["SavedConfig", "ConfigStorePort", "split_destination_ids"]

_DESTINATION_SEPARATORS = re.compile(r"[,\n]")


@dataclass(slots=True, frozen=True)
class SavedConfig:
    """A persisted broadcast configuration.

    Attributes:
        id: Store-assigned identifier, increasing with every save.
        name: Human-readable label.
        credential: Secret used as the authorization header.
        message: Payload text.
        destination_ids: Raw delimited destination list as typed by the user.
        interval_seconds: Seconds between two cycles.
        created_at: UTC time the config was saved.
    """

    id: int
    name: str
    credential: str
    message: str
    destination_ids: str
    interval_seconds: int
    created_at: datetime


class ConfigStorePort(Protocol):
    """Interface for loading and saving broadcast configurations."""

    def get_latest_config(self) -> SavedConfig | None:
        """Return the most recently saved config, or None if there is none."""
        ...

    def save_config(
        self,
        *,
        name: str,
        credential: str,
        message: str,
        destination_ids: str,
        interval_seconds: int,
    ) -> SavedConfig:
        """Persist a new config and return it with id and timestamp set."""
        ...


def split_destination_ids(raw: str) -> list[str]:
    """Split a comma or newline separated destination list.

    Args:
        raw: Delimited string, e.g. ``"123, 456\\n789"``.

    Returns:
        Trimmed, non-empty identifiers in their original order.
    """
    return [part.strip() for part in _DESTINATION_SEPARATORS.split(raw) if part.strip()]
