"""Project-scoped JSON persistence for harvest results."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Union

from pydantic import BaseModel

from siteharvest.config import get_settings
from siteharvest.services.harvest import HarvestResult

logger = logging.getLogger(__name__)

SITE_CONTEXT_FILE = "site-context.json"
SITEMAP_FILE = "sitemap.json"

_PROJECT_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class StoreError(RuntimeError):
    """A project file could not be read or written."""


def _to_jsonable(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_to_jsonable(item) for item in data]
    return data


class ProjectStore:
    """Stores JSON documents under ``<data_dir>/projects/<project_id>/``."""

    def __init__(self, data_dir: Union[str, Path]) -> None:
        self.data_dir = Path(data_dir)

    def project_path(self, project_id: str, filename: str) -> Path:
        if not _PROJECT_ID_RE.match(project_id):
            raise StoreError(f"Invalid project id: {project_id!r}")
        return self.data_dir / "projects" / project_id / filename

    def write_json(self, project_id: str, filename: str, data: Any) -> None:
        path = self.project_path(project_id, filename)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                json.dumps(_to_jsonable(data), ensure_ascii=False, indent=2), encoding="utf-8"
            )
        except OSError as exc:
            raise StoreError(f"Failed to write {filename}: {exc}") from exc

    def read_json(self, project_id: str, filename: str) -> Any:
        path = self.project_path(project_id, filename)
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StoreError(f"Failed to read {filename}") from exc

    def save_harvest(self, project_id: str, result: HarvestResult) -> None:
        """Persist the page records and the sitemap manifest of *result*."""
        self.write_json(project_id, SITE_CONTEXT_FILE, result.pages)
        self.write_json(project_id, SITEMAP_FILE, result.manifest)
        logger.info(
            "Store: saved %d pages and %d sitemap URLs for project %s",
            len(result.pages),
            len(result.manifest),
            project_id,
        )


def get_store() -> ProjectStore:
    """The store rooted at the configured data directory."""
    return ProjectStore(get_settings().data_dir)
