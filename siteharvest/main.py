import logging
import logging.config

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from siteharvest.config import get_settings
from siteharvest.routers.crawl import limiter, router as crawl_router
from siteharvest.routers.sitemap import router as sitemap_router

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "format": '{"time": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s"}',
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "json",
            },
        },
        "loggers": {
            # httpx logs every request at INFO
            "httpx": {"level": "WARNING"},
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="siteharvest – Sitemap Crawler API",
    description=(
        "Resolves a site's sitemap.xml (with robots.txt and sitemap-index "
        "fallbacks) into a page manifest, then crawls those pages with bounded "
        "concurrency and stores title, headings, links and main text per project."
    ),
    version="1.0.0",
)

# Rate-limiting state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception for %s", request.url)
    return JSONResponse(status_code=500, content={"detail": "An unexpected error occurred."})


app.include_router(crawl_router)
app.include_router(sitemap_router)


@app.get("/", summary="Health check")
async def root() -> dict:
    settings = get_settings()
    return {
        "service": "siteharvest",
        "status": "ok",
        "endpoints": ["POST /crawl", "GET /sitemap"],
        "concurrency": settings.concurrency,
    }
