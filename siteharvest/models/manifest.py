from typing import Optional

from pydantic import BaseModel, ConfigDict


class ManifestEntry(BaseModel):
    """One page location declared by a site's sitemap."""

    model_config = ConfigDict(frozen=True)

    loc: str
    lastmod: Optional[str] = None
