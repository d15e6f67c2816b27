"""Saved-configuration stores (in-memory and JSON file)."""

import json
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from broadcaster.ports.config_store import ConfigStorePort, SavedConfig

__all__ = ["InMemoryConfigStore", "JsonFileConfigStore"]

logger = logging.getLogger(__name__)


class InMemoryConfigStore(ConfigStorePort):
    """Keeps saved configs for the lifetime of the process."""

    def __init__(self) -> None:
        self._configs: list[SavedConfig] = []

    def get_latest_config(self) -> SavedConfig | None:
        return self._configs[-1] if self._configs else None

    def save_config(
        self,
        *,
        name: str,
        credential: str,
        message: str,
        destination_ids: str,
        interval_seconds: int,
    ) -> SavedConfig:
        config = SavedConfig(
            id=len(self._configs) + 1,
            name=name,
            credential=credential,
            message=message,
            destination_ids=destination_ids,
            interval_seconds=interval_seconds,
            created_at=datetime.now(timezone.utc),
        )
        self._configs.append(config)
        return config


def _to_json(config: SavedConfig) -> dict[str, Any]:
    data = asdict(config)
    data["created_at"] = config.created_at.isoformat()
    return data


def _from_json(data: dict[str, Any]) -> SavedConfig:
    return SavedConfig(
        id=int(data["id"]),
        name=str(data["name"]),
        credential=str(data["credential"]),
        message=str(data["message"]),
        destination_ids=str(data["destination_ids"]),
        interval_seconds=int(data["interval_seconds"]),
        created_at=datetime.fromisoformat(data["created_at"]),
    )


class JsonFileConfigStore(ConfigStorePort):
    """Stores every saved config in a JSON array on disk.

    The file is read on each call and rewritten on each save; it is meant
    for a single process and a handful of configs.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> list[SavedConfig]:
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return []
        except json.JSONDecodeError as e:
            raise ValueError(f"Config store contains invalid JSON: {self.path}") from e

        if not isinstance(data, list):
            raise ValueError(f"Config store must be a JSON array: {self.path}")
        try:
            return [_from_json(item) for item in data]
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Config store has a malformed entry: {e}") from e

    def get_latest_config(self) -> SavedConfig | None:
        configs = self._load()
        return max(configs, key=lambda c: c.id) if configs else None

    def save_config(
        self,
        *,
        name: str,
        credential: str,
        message: str,
        destination_ids: str,
        interval_seconds: int,
    ) -> SavedConfig:
        configs = self._load()
        config = SavedConfig(
            id=max((c.id for c in configs), default=0) + 1,
            name=name,
            credential=credential,
            message=message,
            destination_ids=destination_ids,
            interval_seconds=interval_seconds,
            created_at=datetime.now(timezone.utc),
        )
        configs.append(config)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump([_to_json(c) for c in configs], f, indent=2)
        logger.debug(f"Saved config {config.id} ({config.name!r}) to {self.path}")
        return config
