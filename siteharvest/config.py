"""Runtime settings for manifest resolution and page crawling.

Defaults mirror the limits the crawler has always used (5 concurrent
fetches, 15 s manifest/page timeouts, 10 s for robots.txt).  Every knob can
be overridden through a ``SITEHARVEST_*`` environment variable.
"""

import logging
import os
from functools import lru_cache

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

_ENV_PREFIX = "SITEHARVEST_"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "y", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(_ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


class HarvestSettings(BaseModel):
    concurrency: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Maximum number of page fetches in flight at once.",
    )
    manifest_timeout: float = Field(
        default=15.0, gt=0, description="Timeout in seconds for each sitemap document."
    )
    robots_timeout: float = Field(
        default=10.0, gt=0, description="Timeout in seconds for robots.txt."
    )
    page_timeout: float = Field(
        default=15.0, gt=0, description="Overall timeout in seconds for one page fetch."
    )
    max_manifest_depth: int = Field(
        default=5,
        ge=0,
        description="How many levels of nested sitemap indexes are followed.",
    )
    max_content_size: int = Field(
        default=10 * 1024 * 1024, gt=0, description="Response body limit in bytes."
    )
    block_private_addresses: bool = Field(
        default=True,
        description="Reject URLs resolving to private, loopback or link-local addresses.",
    )
    data_dir: str = Field(default="data", description="Root directory of the project store.")

    @classmethod
    def from_env(cls) -> "HarvestSettings":
        """Build settings from ``SITEHARVEST_*`` variables.

        Each variable is validated on its own; a value that does not parse or
        falls outside the field's bounds is logged and replaced by that
        field's default.
        """
        defaults = cls()
        overrides = {
            "concurrency": _env_int("CONCURRENCY", defaults.concurrency),
            "manifest_timeout": _env_float("MANIFEST_TIMEOUT", defaults.manifest_timeout),
            "robots_timeout": _env_float("ROBOTS_TIMEOUT", defaults.robots_timeout),
            "page_timeout": _env_float("PAGE_TIMEOUT", defaults.page_timeout),
            "max_manifest_depth": _env_int("MAX_MANIFEST_DEPTH", defaults.max_manifest_depth),
            "max_content_size": _env_int("MAX_CONTENT_SIZE", defaults.max_content_size),
            "block_private_addresses": _env_bool(
                "BLOCK_PRIVATE_ADDRESSES", defaults.block_private_addresses
            ),
            "data_dir": os.environ.get(_ENV_PREFIX + "DATA_DIR", defaults.data_dir),
        }

        accepted = {}
        for name, value in overrides.items():
            try:
                cls(**{name: value})
            except ValidationError:
                logger.warning(
                    "Config: ignoring out-of-range %s%s=%r, using %r",
                    _ENV_PREFIX,
                    name.upper(),
                    value,
                    getattr(defaults, name),
                )
                continue
            accepted[name] = value
        return cls(**accepted)


@lru_cache(maxsize=1)
def get_settings() -> HarvestSettings:
    """Return the process-wide settings, read from the environment once."""
    return HarvestSettings.from_env()
