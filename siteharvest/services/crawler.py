"""Bounded-concurrency crawl over a fixed list of page URLs."""

import asyncio
import logging
from collections import deque
from typing import Callable, Deque, List, Optional, Sequence

from siteharvest.config import HarvestSettings, get_settings
from siteharvest.models.page import PageRecord
from siteharvest.services.page_fetcher import fetch_page

logger = logging.getLogger(__name__)

# on_progress(current, total, url)
ProgressCallback = Callable[[int, int, str], None]


class _CrawlRun:
    """Shared state of one :func:`crawl` call.

    Workers only touch this state between awaits, so no lock is needed.
    """

    def __init__(
        self,
        urls: Sequence[str],
        on_progress: Optional[ProgressCallback],
        settings: HarvestSettings,
    ) -> None:
        self.pending: Deque[str] = deque(urls)
        self.total = len(urls)
        self.completed = 0
        self.pages: List[PageRecord] = []
        self.on_progress = on_progress
        self.settings = settings

    def _report(self, url: str) -> None:
        self.completed += 1
        if self.on_progress is None:
            return
        try:
            self.on_progress(self.completed, self.total, url)
        except Exception:
            logger.exception("Crawler: progress callback failed for %s", url)

    async def worker(self) -> None:
        while self.pending:
            url = self.pending.popleft()
            try:
                page = await fetch_page(url, self.settings)
            except Exception as exc:
                logger.warning("Crawler: skipping %s – %s", url, exc)
            else:
                self.pages.append(page)
            finally:
                self._report(url)


async def crawl(
    urls: Sequence[str],
    page_budget: int,
    on_progress: Optional[ProgressCallback] = None,
    settings: Optional[HarvestSettings] = None,
) -> List[PageRecord]:
    """Fetch the first *page_budget* of *urls* with at most ``settings.concurrency`` in flight.

    Each URL is attempted once.  Failed pages are dropped from the result but
    still count as completed attempts: ``on_progress(current, total, url)``
    fires exactly once per URL, with ``current`` running from 1 to ``total``.

    The returned records are in **completion order**, not input order.
    Never raises.
    """
    settings = settings or get_settings()
    selection = list(urls[: max(page_budget, 0)])
    if not selection:
        return []

    run = _CrawlRun(selection, on_progress, settings)
    worker_count = min(settings.concurrency, len(selection))
    logger.info("Crawler: fetching %d pages with %d workers", len(selection), worker_count)

    await asyncio.gather(*(run.worker() for _ in range(worker_count)))

    logger.info("Crawler: %d of %d pages fetched", len(run.pages), run.total)
    return run.pages
