"""Data models for personality memory storage."""

from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

DEFAULT_TYPES = ["event", "insight", "pattern", "emotion", "connection", "custom"]
SIGNIFICANCE_LEVELS = ["low", "medium", "high", "critical"]


def significance_rank(value: str | None) -> int:
    """Ordinal position of a significance level, -1 when unknown."""
    try:
        return SIGNIFICANCE_LEVELS.index(value)  # type: ignore[arg-type]
    except ValueError:
        return -1


class MemoryRecord(BaseModel):
    """A persisted fact about a personality's experience.

    Records are never mutated once written. Fields the caller supplied beyond
    the known ones are kept as extras so they survive a save/load round trip.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str
    timestamp: int
    content: str = ""
    type: str | None = None
    significance: str | None = None
    tags: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)

    def has_tags(self, tags: list[str]) -> bool:
        return all(tag in self.tags for tag in tags)


class MemorySchema(BaseModel):
    """Per-personality validation rules for memory writes."""

    required: list[str] = Field(default_factory=lambda: ["content", "significance"])
    allowed_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TYPES),
        validation_alias=AliasChoices("allowed_types", "allowedTypes"),
    )
    allowed_significances: list[str] = Field(
        default_factory=lambda: list(SIGNIFICANCE_LEVELS),
        validation_alias=AliasChoices("allowed_significances", "allowedSignificances"),
    )


class MemoryStats(BaseModel):
    """Counts over every stored record of a personality."""

    total: int = 0
    by_type: dict[str, int] = Field(default_factory=dict)
    by_significance: dict[str, int] = Field(default_factory=dict)
