from pydantic import BaseModel, Field


class CrawlRequest(BaseModel):
    site_url: str = Field(
        min_length=1,
        description="Site root such as https://example.com, or a search-console "
        "domain property such as sc-domain:example.com.",
    )
    max_pages: int = Field(
        default=50,
        ge=1,
        le=500,
        description="Maximum number of pages to crawl (1–500).",
    )
    project_id: str = Field(
        default="default",
        pattern=r"^[A-Za-z0-9_-]+$",
        description="Project the manifest and page records are stored under.",
    )
