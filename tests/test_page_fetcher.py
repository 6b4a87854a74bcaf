"""Tests for siteharvest.services.page_fetcher.fetch_page."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest
from pydantic import ValidationError

from siteharvest.config import HarvestSettings
from siteharvest.models.page import Heading, PageRecord, count_words
from siteharvest.services.fetcher import FetchError
from siteharvest.services.page_fetcher import build_page_record, fetch_page

_SETTINGS = HarvestSettings(block_private_addresses=False, page_timeout=7.5)

_HTML = """
<html>
<head>
  <title>Pricing</title>
  <meta name="description" content="Plans and prices.">
</head>
<body>
  <nav><a href="/">Home</a></nav>
  <main>
    <h1>Pricing plans</h1>
    <p>Every plan includes unlimited projects, priority support and a generous
    monthly crawl allowance so that teams can audit every page of their sites.</p>
    <p>Annual billing saves two months compared with paying month to month, and
    you can cancel at any time from the account settings page.</p>
    <a href="/signup">Sign up</a>
  </main>
</body>
</html>
"""


def _fetch_page(url: str, fetch_mock: AsyncMock) -> PageRecord:
    with patch("siteharvest.services.page_fetcher.fetch_url", new=fetch_mock):
        return asyncio.run(fetch_page(url, _SETTINGS))


class TestFetchPage:
    def test_builds_record_from_page(self):
        record = _fetch_page("https://example.com/pricing", AsyncMock(return_value=_HTML))

        assert record.url == "https://example.com/pricing"
        assert record.title == "Pricing"
        assert record.description == "Plans and prices."
        assert record.headings == [Heading(level=1, text="Pricing plans")]
        assert record.internal_links == ["https://example.com/", "https://example.com/signup"]
        assert "unlimited projects" in record.content

    def test_word_count_matches_content(self):
        record = _fetch_page("https://example.com/pricing", AsyncMock(return_value=_HTML))
        assert record.word_count == len(record.content.split())
        assert record.word_count > 0

    def test_crawled_at_is_timezone_aware(self):
        record = _fetch_page("https://example.com/pricing", AsyncMock(return_value=_HTML))
        assert isinstance(record.crawled_at, datetime)
        assert record.crawled_at.tzinfo is not None

    def test_uses_page_timeout_and_headers(self):
        mock = AsyncMock(return_value=_HTML)
        _fetch_page("https://example.com/pricing", mock)

        kwargs = mock.call_args.kwargs
        assert kwargs["timeout"] == 7.5
        assert kwargs["headers"]["User-Agent"] == "siteharvest-crawler/1.0"
        assert kwargs["headers"]["Accept"] == "text/html,application/xhtml+xml"

    def test_fetch_error_propagates(self):
        mock = AsyncMock(side_effect=FetchError("https://example.com/x", "HTTP 404", 404))
        with pytest.raises(FetchError):
            _fetch_page("https://example.com/x", mock)

    def test_unparseable_document_still_produces_record(self):
        record = _fetch_page("https://example.com/empty", AsyncMock(return_value=""))
        assert record.content == ""
        assert record.word_count == 0
        assert record.headings == []


class TestBuildPageRecord:
    def test_non_html_text_is_kept_as_content(self):
        record = build_page_record("plain words only", "https://example.com/file.txt")
        assert record.content == "plain words only"
        assert record.word_count == 3


class TestPageRecordModel:
    def _record(self, content: str) -> PageRecord:
        return PageRecord(
            url="https://example.com/",
            title="",
            description="",
            headings=[],
            content=content,
            internal_links=[],
        )

    def test_word_count_is_derived(self):
        assert self._record("one  two\nthree\t four ").word_count == 4

    def test_word_count_serialised(self):
        data = self._record("a b c").model_dump(mode="json")
        assert data["word_count"] == 3
        assert isinstance(data["crawled_at"], str)

    def test_word_count_cannot_be_supplied(self):
        record = PageRecord.model_validate(
            {
                "url": "https://example.com/",
                "title": "",
                "description": "",
                "headings": [],
                "content": "a b",
                "internal_links": [],
                "word_count": 99,
            }
        )
        assert record.word_count == 2

    def test_records_are_immutable(self):
        record = self._record("a")
        with pytest.raises(ValidationError):
            record.content = "changed"

    def test_heading_level_is_bounded(self):
        with pytest.raises(ValidationError):
            Heading(level=7, text="too deep")

    def test_count_words_empty(self):
        assert count_words("   ") == 0
