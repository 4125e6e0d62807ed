"""Shapes exchanged with the message-search collaborator."""

from __future__ import annotations

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from umbra.errors import UpstreamDegradation


class SearchAuthor(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = ""
    username: str = "unknown"


class SearchAttachment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    filename: str = ""
    url: str = ""
    content_type: str | None = Field(
        default=None, validation_alias=AliasChoices("content_type", "contentType")
    )

    @property
    def is_image(self) -> bool:
        return bool(self.content_type and self.content_type.startswith("image/"))


class SearchReaction(BaseModel):
    emoji: str = ""
    count: int = 0


class SearchMessage(BaseModel):
    """A historical message returned by search, already ranked by the caller."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: str = "unknown"
    channel_id: str = Field(
        default="unknown", validation_alias=AliasChoices("channel_id", "channelId")
    )
    author: SearchAuthor | None = None
    content: str | None = ""
    timestamp: int | None = None
    attachments: list[SearchAttachment] = Field(default_factory=list)
    reactions: list[SearchReaction] = Field(default_factory=list)

    @property
    def has_images(self) -> bool:
        return any(a.is_image for a in self.attachments)


class SearchResponse(BaseModel):
    """Result envelope from the search collaborator.

    A non-empty ``error`` means the upstream search failed; ``results`` must
    then be treated as empty.
    """

    query: str = ""
    results: list[SearchMessage] = Field(default_factory=list)
    total_results: int = Field(
        default=0, validation_alias=AliasChoices("total_results", "totalResults")
    )
    search_timestamp: int = Field(
        default=0, validation_alias=AliasChoices("search_timestamp", "searchTimestamp")
    )
    error: str | None = None

    @property
    def usable_results(self) -> list[SearchMessage]:
        return [] if self.error else self.results

    def raise_for_error(self) -> None:
        if self.error:
            msg = f"Search failed: {self.error}"
            raise UpstreamDegradation(msg)


class SearchEntry(BaseModel):
    """One ranked line of a search summary."""

    rank: int
    user: str
    user_id: str
    text: str
    has_images: bool = False
    timestamp: int = 0
    link: str = ""


class SearchContextSummary(BaseModel):
    """Digest of a ranked search result set, persisted for audit."""

    context_id: str
    query: str = ""
    summary_hash: str
    message_count: int
    unique_users: int
    has_images: bool = False
    results: list[SearchEntry] = Field(default_factory=list)
    summary_text: str = ""
    timestamp: int = 0

    @property
    def count(self) -> int:
        return self.message_count

    @property
    def artifact_id(self) -> str:
        return f"{self.context_id}-{self.summary_hash}"
