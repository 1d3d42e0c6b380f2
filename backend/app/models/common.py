"""Common types and enums shared across all models."""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class WireModel(BaseModel):
    """Base for models whose JSON shape uses camelCase keys on the wire.

    Python code uses snake_case attribute names; aliases carry the wire names.
    Always dump with ``by_alias=True`` when serializing for clients or storage.
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict:
        """Serialize to the JSON-compatible wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class SlotLabel(str, Enum):
    """Part of day a slot covers."""

    morning = "morning"
    afternoon = "afternoon"
    evening = "evening"

