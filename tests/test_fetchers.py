"""
Tests for content fetchers and HTML reduction
"""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from leadnexus.errors import ConfigurationMissingError, UpstreamProviderError
from leadnexus.services.scraping.fetchers import (
    ApifyFetcher,
    FirecrawlFetcher,
    HttpFetcher,
    get_fetcher,
)
from leadnexus.services.scraping.html_text import extract_contact_links, html_to_content

from doubles import StubFetcher

PAGE = """
<html>
  <head>
    <title>Jane Doe - Tech Reporter</title>
    <meta name="description" content="Jane covers AI for TechCrunch.">
    <script>var tracking = 1;</script>
  </head>
  <body>
    <h1>Jane Doe</h1>
    <p>Senior reporter   covering startups.</p>
    <a href="mailto:jane@techcrunch.com?subject=Hi">Email</a>
    <a href="https://twitter.com/janedoe">Twitter</a>
    <a href="https://techcrunch.com/about">About</a>
  </body>
</html>
"""


class TestHtmlText:

    def test_content_has_title_text_and_contacts(self):
        page = html_to_content(PAGE)

        assert page["title"] == "Jane Doe - Tech Reporter"
        assert "Jane covers AI for TechCrunch." in page["content"]
        assert "Senior reporter covering startups." in page["content"]
        assert "Emails: jane@techcrunch.com" in page["content"]
        assert "tracking" not in page["content"]

    def test_contact_links(self):
        links = extract_contact_links(PAGE)

        assert links["emails"] == ["jane@techcrunch.com"]
        assert links["profiles"] == ["https://twitter.com/janedoe"]


class TestFirecrawlFetcher:

    def test_requires_api_key(self):
        with pytest.raises(ConfigurationMissingError) as exc:
            FirecrawlFetcher("")
        assert "FIRECRAWL_API_KEY" in exc.value.message

    @pytest.mark.asyncio
    async def test_scrape_markdown(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={
                "success": True,
                "data": {"markdown": "# Jane Doe\nReporter", "metadata": {"title": "Jane Doe"}},
            })

        fetcher = FirecrawlFetcher("fc-key", transport=httpx.MockTransport(handler))
        content = await fetcher.fetch("https://example.com/jane")

        assert content.content.startswith("# Jane Doe")
        assert content.title == "Jane Doe"
        assert seen["auth"] == "Bearer fc-key"
        assert seen["body"]["formats"] == ["markdown"]

    @pytest.mark.asyncio
    async def test_unsuccessful_scrape(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, json={"success": False, "error": "Blocked"})
        )
        fetcher = FirecrawlFetcher("fc-key", transport=transport)

        with pytest.raises(UpstreamProviderError) as exc:
            await fetcher.fetch("https://example.com/jane")
        assert "Blocked" in exc.value.message

    @pytest.mark.asyncio
    async def test_http_error(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="oops"))
        fetcher = FirecrawlFetcher("fc-key", transport=transport)

        with pytest.raises(UpstreamProviderError):
            await fetcher.fetch("https://example.com/jane")


class TestHttpFetcher:

    @pytest.mark.asyncio
    async def test_html_reduced_to_text(self):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(200, text=PAGE, headers={"content-type": "text/html; charset=utf-8"})
        )
        fetcher = HttpFetcher(transport=transport)

        content = await fetcher.fetch("https://example.com/jane")

        assert content.title == "Jane Doe - Tech Reporter"
        assert "jane@techcrunch.com" in content.content

    @pytest.mark.asyncio
    async def test_not_found(self):
        fetcher = HttpFetcher(transport=httpx.MockTransport(lambda request: httpx.Response(404)))

        with pytest.raises(UpstreamProviderError) as exc:
            await fetcher.fetch("https://example.com/missing")
        assert "404" in exc.value.message


class TestApifyFetcher:

    @pytest.fixture
    def client(self):
        client = MagicMock()
        client.actor.return_value.start = AsyncMock(return_value={"id": "run-1"})
        client.run.return_value.wait_for_finish = AsyncMock(
            return_value={"status": "SUCCEEDED", "defaultDatasetId": "ds-1"}
        )
        client.run.return_value.abort = AsyncMock()
        client.dataset.return_value.list_items = AsyncMock(return_value=SimpleNamespace(
            items=[{"text": "Jane Doe, reporter", "metadata": {"title": "Jane"}}]
        ))
        return client

    @pytest.mark.asyncio
    async def test_fetch(self, client):
        fetcher = ApifyFetcher("apify-token", client=client)

        content = await fetcher.fetch("https://example.com/jane")

        assert content.content == "Jane Doe, reporter"
        assert content.title == "Jane"
        client.actor.assert_called_with("apify/website-content-crawler")
        run_input = client.actor.return_value.start.call_args.kwargs["run_input"]
        assert run_input["startUrls"] == [{"url": "https://example.com/jane"}]

    @pytest.mark.asyncio
    async def test_failed_run_is_aborted(self, client):
        client.run.return_value.wait_for_finish.return_value = {"status": "FAILED"}
        fetcher = ApifyFetcher("apify-token", client=client)

        with pytest.raises(UpstreamProviderError):
            await fetcher.fetch("https://example.com/jane")
        client.run.return_value.abort.assert_awaited_once()

    def test_requires_token(self):
        with pytest.raises(ConfigurationMissingError):
            ApifyFetcher(None)


class TestFetchMany:

    @pytest.mark.asyncio
    async def test_order_and_isolation(self):
        urls = [f"https://example.com/{i}" for i in range(5)]
        fetcher = StubFetcher(failing=[urls[1]])

        outcomes = await fetcher.fetch_many(urls, concurrency=3)

        assert [o.url for o in outcomes] == urls
        assert [o.success for o in outcomes] == [True, False, True, True, True]
        assert "503" in outcomes[1].error

    @pytest.mark.asyncio
    async def test_configuration_error_propagates(self):
        fetcher = StubFetcher()
        fetcher.fetch = AsyncMock(side_effect=ConfigurationMissingError("FIRECRAWL_API_KEY"))

        with pytest.raises(ConfigurationMissingError):
            await fetcher.fetch_many(["https://example.com"])


class TestGetFetcher:

    def test_http_needs_no_credentials(self):
        assert get_fetcher("http").name == "http"

    def test_firecrawl_without_key(self):
        with pytest.raises(ConfigurationMissingError):
            get_fetcher("firecrawl")

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_fetcher("selenium")
