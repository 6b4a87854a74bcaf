"""Tests for siteharvest.services.store.ProjectStore."""

import json

import pytest

from siteharvest.models.manifest import ManifestEntry
from siteharvest.models.page import Heading, PageRecord
from siteharvest.services.harvest import HarvestResult
from siteharvest.services.store import (
    SITE_CONTEXT_FILE,
    SITEMAP_FILE,
    ProjectStore,
    StoreError,
)


def _result() -> HarvestResult:
    page = PageRecord(
        url="https://example.com/a",
        title="A",
        description="About A",
        headings=[Heading(level=1, text="A")],
        content="alpha beta gamma",
        internal_links=["https://example.com/b"],
    )
    return HarvestResult(
        site_url="https://example.com",
        manifest=[ManifestEntry(loc="https://example.com/a", lastmod="2024-02-02")],
        pages=[page],
    )


class TestProjectStore:
    def test_save_harvest_writes_both_files(self, tmp_path):
        store = ProjectStore(tmp_path)
        store.save_harvest("site-1", _result())

        project_dir = tmp_path / "projects" / "site-1"
        pages = json.loads((project_dir / SITE_CONTEXT_FILE).read_text(encoding="utf-8"))
        manifest = json.loads((project_dir / SITEMAP_FILE).read_text(encoding="utf-8"))

        assert pages[0]["url"] == "https://example.com/a"
        assert pages[0]["word_count"] == 3
        assert pages[0]["headings"] == [{"level": 1, "text": "A"}]
        assert manifest == [{"loc": "https://example.com/a", "lastmod": "2024-02-02"}]

    def test_round_trip_read(self, tmp_path):
        store = ProjectStore(tmp_path)
        store.write_json("p", "data.json", {"key": "value"})
        assert store.read_json("p", "data.json") == {"key": "value"}

    def test_saved_pages_load_back_as_records(self, tmp_path):
        store = ProjectStore(tmp_path)
        store.save_harvest("p", _result())
        loaded = [PageRecord.model_validate(p) for p in store.read_json("p", SITE_CONTEXT_FILE)]
        assert loaded == _result().pages

    def test_missing_file_raises_store_error(self, tmp_path):
        with pytest.raises(StoreError):
            ProjectStore(tmp_path).read_json("p", "missing.json")

    def test_corrupt_file_raises_store_error(self, tmp_path):
        store = ProjectStore(tmp_path)
        path = store.project_path("p", "bad.json")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError):
            store.read_json("p", "bad.json")

    @pytest.mark.parametrize("project_id", ["../escape", "a/b", "", "spaces here"])
    def test_invalid_project_ids_are_rejected(self, tmp_path, project_id):
        with pytest.raises(StoreError):
            ProjectStore(tmp_path).write_json(project_id, "x.json", {})
