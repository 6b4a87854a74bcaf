"""Structured content extraction from a fetched HTML document.

Two independent passes run over every page:

* the structural pass reads the title, meta description, headings and
  same-host links from the parsed tree;
* the content pass runs an ordered chain of extraction strategies and keeps
  the first non-empty result (readability first, raw body text last).

Neither pass raises: a strategy that fails is logged and treated as empty.
"""

import logging
from typing import Callable, List, NamedTuple, Optional, Sequence
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from readability import Document

from siteharvest.models.page import Heading
from siteharvest.services.sanitizer import body_text, collapse_whitespace

logger = logging.getLogger(__name__)

_HEADING_TAGS = ("h1", "h2", "h3", "h4", "h5", "h6")

# A strategy receives the raw HTML and its structurally-parsed tree and
# returns the page's main text, or None/"" when it has nothing to offer.
ContentStrategy = Callable[[str, BeautifulSoup], Optional[str]]


class PageStructure(NamedTuple):
    title: str
    description: str
    headings: List[Heading]
    internal_links: List[str]


def _extract_title(soup: BeautifulSoup) -> str:
    title_tag = soup.find("title")
    if title_tag:
        return title_tag.get_text().strip()
    return ""


def _extract_description(soup: BeautifulSoup) -> str:
    meta = soup.find("meta", attrs={"name": "description"})
    if meta and meta.get("content"):
        return str(meta["content"]).strip()
    return ""


def _extract_headings(soup: BeautifulSoup) -> List[Heading]:
    headings: List[Heading] = []
    for tag in soup.find_all(_HEADING_TAGS):
        text = tag.get_text().strip()
        if text:
            headings.append(Heading(level=int(tag.name[1]), text=text))
    return headings


def _extract_internal_links(soup: BeautifulSoup, page_url: str) -> List[str]:
    """Return the page's same-host links as absolute URLs, first-seen order."""
    page_host = urlparse(page_url).hostname
    seen: set = set()
    links: List[str] = []
    for a in soup.find_all("a", href=True):
        href = str(a["href"]).strip()
        if not href:
            continue
        try:
            abs_url = urljoin(page_url, href)
            host = urlparse(abs_url).hostname
        except ValueError:
            continue
        if host and host == page_host and abs_url not in seen:
            seen.add(abs_url)
            links.append(abs_url)
    return links


def extract_structure(soup: BeautifulSoup, page_url: str) -> PageStructure:
    """Run the structural pass over an already-parsed page."""
    return PageStructure(
        title=_extract_title(soup),
        description=_extract_description(soup),
        headings=_extract_headings(soup),
        internal_links=_extract_internal_links(soup, page_url),
    )


def readability_text(html: str, soup: BeautifulSoup) -> Optional[str]:
    """Main readable content as isolated by readability."""
    summary = Document(html).summary(html_partial=True)
    return collapse_whitespace(BeautifulSoup(summary, "lxml").get_text(separator=" "))


def fallback_body_text(html: str, soup: BeautifulSoup) -> Optional[str]:
    """Whole-body text with scripts, styles and page chrome removed."""
    return body_text(soup)


CONTENT_STRATEGIES: Sequence[ContentStrategy] = (readability_text, fallback_body_text)


def extract_content(
    html: str,
    soup: BeautifulSoup,
    strategies: Sequence[ContentStrategy] = CONTENT_STRATEGIES,
) -> str:
    """Return the first non-empty result of *strategies*, or ``""``.

    Strategies may modify *soup*, so the structural pass must run first.
    """
    for strategy in strategies:
        try:
            content = strategy(html, soup)
        except Exception as exc:
            logger.debug(
                "Extractor: %s failed – %s", getattr(strategy, "__name__", strategy), exc
            )
            continue
        if content and content.strip():
            return content.strip()
    return ""
