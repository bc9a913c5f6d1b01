"""Embedding data models."""

from pydantic import BaseModel, Field, field_validator


class EmbeddingResult(BaseModel):
    """One Workers AI embedding.

    Attributes:
        text: The text that was embedded.
        embedding: The vector from ``result.data[0]``.
        model: Workers AI model that produced it.
    """

    text: str = Field(description="Embedded text")
    embedding: list[float] = Field(description="Embedding vector")
    model: str = Field(description="Workers AI model name")

    @field_validator("embedding")
    @classmethod
    def _not_empty(cls, value: list[float]) -> list[float]:
        if not value:
            raise ValueError("embedding is empty")
        return value

    @property
    def dimensions(self) -> int:
        return len(self.embedding)
