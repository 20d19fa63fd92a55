"""Base schema classes shared by the release models."""

from typing import Any

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Base class for all Pydantic schemas."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        return self.model_dump(mode="json")


class FrozenSchema(SchemaBase):
    """Immutable schema; instances are hashable and safe to share."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        frozen=True,
    )
