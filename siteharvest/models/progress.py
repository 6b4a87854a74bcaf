from typing import Literal

from pydantic import BaseModel


class CrawlProgress(BaseModel):
    """Emitted once per completed page attempt, successful or not."""

    type: Literal["progress"] = "progress"
    current: int
    total: int
    url: str
