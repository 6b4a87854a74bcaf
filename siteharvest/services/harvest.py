"""Site harvest pipeline: sitemap discovery followed by a bounded crawl."""

import logging
from typing import List, NamedTuple, Optional

from siteharvest.config import HarvestSettings, get_settings
from siteharvest.models.manifest import ManifestEntry
from siteharvest.models.page import PageRecord
from siteharvest.services.crawler import ProgressCallback, crawl
from siteharvest.services.sitemap import resolve

logger = logging.getLogger(__name__)

# Search-console domain properties look like "sc-domain:example.com"
_SC_DOMAIN_PREFIX = "sc-domain:"

DEFAULT_MAX_PAGES = 50


class HarvestResult(NamedTuple):
    site_url: str
    manifest: List[ManifestEntry]
    pages: List[PageRecord]


def normalize_site_url(site_url: str) -> str:
    """Turn a search-console domain property into an https URL; leave other URLs as-is."""
    site_url = site_url.strip()
    if site_url.startswith(_SC_DOMAIN_PREFIX):
        return f"https://{site_url[len(_SC_DOMAIN_PREFIX):]}"
    return site_url


async def harvest_site(
    site_url: str,
    max_pages: int = DEFAULT_MAX_PAGES,
    on_progress: Optional[ProgressCallback] = None,
    settings: Optional[HarvestSettings] = None,
) -> HarvestResult:
    """Resolve the sitemap of *site_url* and crawl up to *max_pages* of its pages.

    When the sitemap yields no entries the bare site root is crawled instead.
    """
    settings = settings or get_settings()
    root = normalize_site_url(site_url)

    manifest = await resolve(root, settings)
    urls = [entry.loc for entry in manifest] if manifest else [root]
    if not manifest:
        logger.info("Harvest: no sitemap entries for %s, crawling the root only", root)

    pages = await crawl(urls, max_pages, on_progress, settings)
    return HarvestResult(site_url=root, manifest=manifest, pages=pages)
