import logging

from fastapi import APIRouter, Query

from siteharvest.models.crawl_response import SitemapResponse
from siteharvest.services.store import SITEMAP_FILE, StoreError, get_store

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/sitemap", response_model=SitemapResponse, summary="Stored sitemap of a project")
async def sitemap_endpoint(
    project_id: str = Query(default="default", description="Project to read."),
) -> SitemapResponse:
    """Return the sitemap stored by the last crawl, or an empty list."""
    try:
        urls = get_store().read_json(project_id, SITEMAP_FILE)
        return SitemapResponse(urls=urls if isinstance(urls, list) else [])
    except (StoreError, ValueError) as exc:
        logger.debug("No stored sitemap for project %s – %s", project_id, exc)
        return SitemapResponse(urls=[])
