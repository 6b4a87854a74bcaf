from datetime import datetime, timezone
from typing import List

from pydantic import BaseModel, ConfigDict, Field, computed_field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def count_words(text: str) -> int:
    """Number of non-empty whitespace-delimited tokens in *text*."""
    return len(text.split())


class Heading(BaseModel):
    model_config = ConfigDict(frozen=True)

    level: int = Field(ge=1, le=6)
    text: str


class PageRecord(BaseModel):
    """Structured content harvested from one successfully fetched page."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    description: str
    headings: List[Heading]
    content: str  # main-body plain text
    internal_links: List[str]  # same-host absolute URLs, first-seen order
    crawled_at: datetime = Field(default_factory=_utcnow)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def word_count(self) -> int:
        return count_words(self.content)
