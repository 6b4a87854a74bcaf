import logging
from typing import Optional

from bs4 import BeautifulSoup

from siteharvest.config import HarvestSettings, get_settings
from siteharvest.models.page import PageRecord
from siteharvest.services.extractor import extract_content, extract_structure
from siteharvest.services.fetcher import fetch_url

logger = logging.getLogger(__name__)

_PAGE_HEADERS = {
    "User-Agent": "siteharvest-crawler/1.0",
    "Accept": "text/html,application/xhtml+xml",
}


def build_page_record(html: str, url: str) -> PageRecord:
    """Extract a :class:`PageRecord` from the HTML of *url*. Never raises."""
    soup = BeautifulSoup(html, "lxml")
    structure = extract_structure(soup, url)
    # Content strategies may strip the tree, so they run after the structural pass
    content = extract_content(html, soup)

    return PageRecord(
        url=url,
        title=structure.title,
        description=structure.description,
        headings=structure.headings,
        content=content,
        internal_links=structure.internal_links,
    )


async def fetch_page(url: str, settings: Optional[HarvestSettings] = None) -> PageRecord:
    """Fetch *url* and return its structured :class:`PageRecord`.

    Raises:
        FetchError: when the page cannot be fetched (non-success status,
            timeout after ``settings.page_timeout`` seconds, network error).
    """
    settings = settings or get_settings()
    html = await fetch_url(
        url, headers=_PAGE_HEADERS, timeout=settings.page_timeout, settings=settings
    )
    record = build_page_record(html, url)
    logger.debug("Fetched %s (%d words)", url, record.word_count)
    return record
