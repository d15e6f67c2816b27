"""Request models validated at the control surface boundary."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from broadcaster.ports.config_store import split_destination_ids

__all__ = ["StartRequest", "SaveConfigRequest", "MIN_INTERVAL_SECONDS", "MAX_INTERVAL_SECONDS"]

MIN_INTERVAL_SECONDS = 5
MAX_INTERVAL_SECONDS = 3600


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class StartRequest(_CamelModel):
    """Body of ``POST /api/automation/start``.

    ``destinationIds`` accepts either a list or a comma/newline separated
    string, as typed in the dashboard form.
    """

    credential: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    destination_ids: list[str] = Field(..., alias="destinationIds")
    interval_seconds: int = Field(
        ..., alias="intervalSeconds", ge=MIN_INTERVAL_SECONDS, le=MAX_INTERVAL_SECONDS
    )

    @field_validator("destination_ids", mode="before")
    @classmethod
    def split_destinations(cls, v: Any) -> Any:
        if isinstance(v, str):
            return split_destination_ids(v)
        return v

    @field_validator("destination_ids")
    @classmethod
    def require_destinations(cls, v: list[str]) -> list[str]:
        """Drop blank ids and require at least one remaining.

        Raises:
            ValueError: If no destination is left.
        """
        ids = [d.strip() for d in v if d.strip()]
        if not ids:
            raise ValueError("At least one destination ID is required")
        return ids


class SaveConfigRequest(_CamelModel):
    """Body of ``POST /api/config``; destinations stay a raw string."""

    name: str = Field(default="User Config", min_length=1, max_length=200)
    credential: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    destination_ids: str = Field(..., alias="destinationIds", min_length=1)
    interval_seconds: int = Field(
        ..., alias="intervalSeconds", ge=MIN_INTERVAL_SECONDS, le=MAX_INTERVAL_SECONDS
    )
