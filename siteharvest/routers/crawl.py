import asyncio
import logging
from typing import AsyncIterator, Optional, Union

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse
from slowapi import Limiter
from slowapi.util import get_remote_address

from siteharvest.models.crawl_request import CrawlRequest
from siteharvest.models.crawl_response import CrawlComplete, CrawlFailed
from siteharvest.models.progress import CrawlProgress
from siteharvest.services.harvest import harvest_site
from siteharvest.services.store import get_store

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()

CrawlEvent = Union[CrawlProgress, CrawlComplete, CrawlFailed]

# Harvests still running; holds a reference until each finishes even if the
# client has gone away.
_background_tasks: "set[asyncio.Task]" = set()


def _sse(event: CrawlEvent) -> str:
    return f"data: {event.model_dump_json()}\n\n"


async def _crawl_events(body: CrawlRequest) -> AsyncIterator[str]:
    """Run the harvest in the background and relay its events as they happen."""
    queue: "asyncio.Queue[Optional[CrawlEvent]]" = asyncio.Queue()

    def on_progress(current: int, total: int, url: str) -> None:
        queue.put_nowait(CrawlProgress(current=current, total=total, url=url))

    async def run() -> None:
        try:
            result = await harvest_site(body.site_url, body.max_pages, on_progress)
            get_store().save_harvest(body.project_id, result)
            queue.put_nowait(CrawlComplete(pages=len(result.pages)))
        except Exception as exc:
            logger.exception("Crawl failed for %s", body.site_url)
            queue.put_nowait(CrawlFailed(error=str(exc) or "Crawl failed"))
        finally:
            queue.put_nowait(None)

    task = asyncio.create_task(run())
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    while True:
        event = await queue.get()
        if event is None:
            break
        yield _sse(event)
    await task


@router.post(
    "/crawl",
    summary="Discover and crawl a site's pages",
    description=(
        "Resolves the site's sitemap (falling back to robots.txt, then to the "
        "bare site root) and crawls up to `max_pages` pages.  Progress is "
        "streamed as Server-Sent Events; the manifest and page records are "
        "stored under `project_id`."
    ),
)
@limiter.limit("5/minute")
async def crawl_endpoint(request: Request, body: CrawlRequest) -> StreamingResponse:
    logger.info(
        "Crawl request received",
        extra={"site_url": body.site_url, "max_pages": body.max_pages, "project_id": body.project_id},
    )
    return StreamingResponse(
        _crawl_events(body),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )
