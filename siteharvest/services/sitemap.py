"""Sitemap-based page discovery.

Probes the common sitemap locations of a site, falls back to the
``Sitemap:`` directives of robots.txt, follows sitemap-index files
recursively and returns a deduplicated list of same-site page entries.

Resolution never raises: an unreachable or malformed sitemap simply
contributes nothing.
"""

import logging
from typing import Awaitable, Dict, List, Optional, Set, TypeVar
from urllib.parse import urlparse
from xml.etree import ElementTree

from siteharvest.config import HarvestSettings, get_settings
from siteharvest.models.manifest import ManifestEntry
from siteharvest.services.fetcher import FetchError, fetch_url

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Common sitemap paths to probe in order
_SITEMAP_PATHS = (
    "/sitemap.xml",
    "/sitemap_index.xml",
    "/sitemap/",
)

_SITEMAP_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; siteharvest/1.0)",
    "Accept": "application/xml, text/xml, */*",
}

_ROBOTS_HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; siteharvest/1.0)",
    "Accept": "text/plain, */*",
}

_SITEMAP_DIRECTIVE = "sitemap:"


def _strip_www(hostname: str) -> str:
    return hostname[4:] if hostname.startswith("www.") else hostname


def _root_domain(url: str) -> str:
    """Return the hostname of *url* without a leading ``www.``."""
    try:
        hostname = urlparse(url).hostname
    except ValueError:
        return ""
    return _strip_www(hostname or "")


def _is_same_site(url: str, root_domain: str) -> bool:
    """Return True when *url* is on *root_domain*, allowing a www/non-www mismatch."""
    domain = _root_domain(url)
    return bool(domain) and domain == root_domain


def _local_name(tag: str) -> str:
    """``{http://www.sitemaps.org/schemas/sitemap/0.9}urlset`` → ``urlset``."""
    return tag.rsplit("}", 1)[-1]


def _child_text(elem: ElementTree.Element, name: str) -> str:
    for child in elem:
        if _local_name(child.tag) == name:
            return (child.text or "").strip()
    return ""


class _ManifestResolution:
    """State of a single :func:`resolve` call."""

    def __init__(self, base: str, settings: HarvestSettings) -> None:
        self.base = base
        self.root_domain = _root_domain(base)
        self.settings = settings
        self.entries: Dict[str, ManifestEntry] = {}
        self.visited: Set[str] = set()

    def _add(self, loc: str, lastmod: Optional[str]) -> None:
        # First occurrence wins; later duplicates keep the original lastmod.
        if loc not in self.entries:
            self.entries[loc] = ManifestEntry(loc=loc, lastmod=lastmod)

    async def _fetch_document(self, url: str, timeout: float, headers: dict) -> Optional[str]:
        try:
            return await fetch_url(url, headers=headers, timeout=timeout, settings=self.settings)
        except FetchError as exc:
            logger.debug("Sitemap: could not fetch %s – %s", url, exc)
            return None
        except Exception:
            logger.warning("Sitemap: unexpected error fetching %s", url, exc_info=True)
            return None

    async def resolve_document(self, url: str, depth: int = 0) -> bool:
        """Fetch one sitemap document and collect its entries.

        Returns True when at least one entry has been collected so far.
        """
        if url in self.visited:
            logger.debug("Sitemap: %s already processed", url)
            return bool(self.entries)
        if depth > self.settings.max_manifest_depth:
            logger.warning("Sitemap: index nesting too deep, skipping %s", url)
            return bool(self.entries)
        self.visited.add(url)

        xml_text = await self._fetch_document(
            url, self.settings.manifest_timeout, _SITEMAP_HEADERS
        )
        if not xml_text:
            return False

        try:
            root = ElementTree.fromstring(xml_text.strip())
        except ElementTree.ParseError as exc:
            logger.warning("Failed to parse sitemap XML at %s: %s", url, exc)
            return False

        kind = _local_name(root.tag)
        if kind == "sitemapindex":
            children = [
                loc
                for loc in (_child_text(node, "loc") for node in root if _local_name(node.tag) == "sitemap")
                if loc
            ]
            logger.debug("Sitemap: index %s lists %d child sitemaps", url, len(children))
            for child in children:
                try:
                    await self.resolve_document(child, depth + 1)
                except Exception:
                    logger.warning("Sitemap: skipping child %s of %s", child, url, exc_info=True)
        elif kind == "urlset":
            for node in root:
                if _local_name(node.tag) != "url":
                    continue
                loc = _child_text(node, "loc")
                if loc and _is_same_site(loc, self.root_domain):
                    self._add(loc, _child_text(node, "lastmod") or None)
        else:
            logger.debug("Sitemap: %s is not a sitemap document (<%s>)", url, kind)

        return bool(self.entries)

    async def sitemaps_from_robots(self) -> List[str]:
        """Return every ``Sitemap:`` location declared in robots.txt."""
        text = await self._fetch_document(
            f"{self.base}/robots.txt", self.settings.robots_timeout, _ROBOTS_HEADERS
        )
        if not text:
            return []
        locations: List[str] = []
        for line in text.splitlines():
            line = line.strip()
            if line.lower().startswith(_SITEMAP_DIRECTIVE):
                location = line[len(_SITEMAP_DIRECTIVE):].strip()
                if location:
                    locations.append(location)
        return locations


async def _attempt(step: Awaitable[T], base: str) -> Optional[T]:
    """Await one resolution step; an unexpected error ends only that step."""
    try:
        return await step
    except Exception:
        logger.exception("Sitemap: unexpected error resolving %s", base)
        return None


async def resolve(site_root: str, settings: Optional[HarvestSettings] = None) -> List[ManifestEntry]:
    """Discover the page entries declared by the sitemap(s) of *site_root*.

    Probes the common sitemap paths in order and stops at the first one that
    yields entries.  When none does, every sitemap declared in robots.txt is
    resolved.  Sitemap indexes are followed recursively; each sitemap URL is
    fetched at most once and nesting is bounded by
    ``settings.max_manifest_depth``.

    Only entries on the same site as *site_root* (ignoring a leading
    ``www.``) are returned, in discovery order.  Returns an empty list when
    no usable sitemap is found.
    """
    settings = settings or get_settings()
    base = site_root.rstrip("/")
    state = _ManifestResolution(base, settings)

    for path in _SITEMAP_PATHS:
        if await _attempt(state.resolve_document(f"{base}{path}"), base):
            break

    if not state.entries:
        locations = await _attempt(state.sitemaps_from_robots(), base) or []
        for location in locations:
            await _attempt(state.resolve_document(location), base)

    logger.info("Sitemap: found %d URLs for %s", len(state.entries), base)
    return list(state.entries.values())
