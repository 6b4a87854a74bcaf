from typing import List, Literal

from pydantic import BaseModel

from siteharvest.models.manifest import ManifestEntry


class CrawlComplete(BaseModel):
    type: Literal["complete"] = "complete"
    pages: int


class CrawlFailed(BaseModel):
    type: Literal["error"] = "error"
    error: str


class SitemapResponse(BaseModel):
    urls: List[ManifestEntry]
