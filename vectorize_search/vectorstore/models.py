"""Vector store data models."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

MetadataValue = str | int | float | bool


class Document(BaseModel):
    """Embeddable unit for one record, before its vector is generated.

    Attributes:
        id: Namespaced vector identifier.
        text: Text to embed.
        metadata: Filterable metadata stored with the vector.
    """

    id: str = Field(description="Namespaced vector identifier")
    text: str = Field(description="Text to embed")
    metadata: dict[str, MetadataValue] = Field(
        default_factory=dict,
        description="Vector metadata",
    )


class VectorRecord(BaseModel):
    """A vector as sent to the Vectorize insert endpoint.

    Attributes:
        id: Unique identifier for the vector.
        values: The embedding vector.
        metadata: Metadata stored with the vector.
    """

    id: str = Field(description="Unique vector identifier")
    values: list[float] = Field(description="Embedding vector")
    metadata: dict[str, MetadataValue] = Field(
        default_factory=dict,
        description="Vector metadata",
    )


class Match(BaseModel):
    """Result from a vector similarity query.

    Attributes:
        id: Vector identifier.
        score: Similarity score (higher is more similar).
        metadata: Stored metadata.
    """

    model_config = ConfigDict(extra="ignore")

    id: str = Field(description="Vector identifier")
    score: float = Field(default=0.0, description="Similarity score")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Vector metadata",
    )


class MetadataIndex(BaseModel):
    """A metadata index enabling equality filters on one property."""

    property_name: str
    index_type: str | None = None
    created_at: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "MetadataIndex":
        """Build from either the camelCase or snake_case listing shape."""
        if not isinstance(data, dict):
            raise TypeError(f"expected an object, got {type(data).__name__}")
        return cls(
            property_name=data.get("propertyName", data.get("property_name", "")),
            index_type=data.get("indexType", data.get("type")),
            created_at=data.get("createdAt", data.get("created_at")),
        )


class IndexDescription(BaseModel):
    """Name and vector configuration of a Vectorize index."""

    model_config = ConfigDict(extra="ignore")

    name: str
    dimensions: int
    metric: str
    description: str | None = None
    created_on: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "IndexDescription":
        """Build from an index ``result`` object with a nested ``config``."""
        config = data.get("config")
        if not isinstance(config, dict):
            raise TypeError("index description has no config object")
        return cls(
            name=data.get("name", ""),
            dimensions=config.get("dimensions"),
            metric=config.get("metric"),
            description=data.get("description") or None,
            created_on=data.get("created_on"),
        )
