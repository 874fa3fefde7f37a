"""
Content Fetchers - Retrieve page content for a URL.

Modular design: one interface, several backends.
- FirecrawlFetcher: Firecrawl scrape API (markdown), the default
- ApifyFetcher: Apify website-content-crawler actor
- HttpFetcher: plain GET + BeautifulSoup, no credentials needed
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
from apify_client import ApifyClientAsync

from ...config import INGEST_CONCURRENCY
from ...errors import ConfigurationMissingError, UpstreamProviderError, require_setting
from ...models import ScrapedContent
from .html_text import html_to_content

USER_AGENT = "Mozilla/5.0 (compatible; LeadNexusBot/1.0; +https://leadnexus.app/bot)"
FETCH_TIMEOUT_SECONDS = 30.0


@dataclass
class FetchOutcome:
    """Result of fetching one URL: content on success, error otherwise."""
    url: str
    content: Optional[ScrapedContent] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.content is not None


class BaseFetcher(ABC):
    """Abstract base class for content fetchers."""

    @abstractmethod
    async def fetch(self, url: str) -> ScrapedContent:
        """
        Fetch a page.

        Raises:
            UpstreamProviderError: the page is unreachable or the provider failed
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Name of this fetcher for logging."""

    async def fetch_many(self, urls: List[str], concurrency: int = INGEST_CONCURRENCY) -> List[FetchOutcome]:
        """
        Fetch URLs in windows of `concurrency`; one outcome per URL, input order.

        A failed URL never affects the others.
        """
        outcomes: List[FetchOutcome] = []
        window = max(1, concurrency)

        for i in range(0, len(urls), window):
            group = urls[i:i + window]
            results = await asyncio.gather(*(self.fetch(url) for url in group), return_exceptions=True)

            for url, result in zip(group, results):
                if isinstance(result, ConfigurationMissingError):
                    raise result
                if isinstance(result, BaseException):
                    if not isinstance(result, Exception):
                        raise result
                    print(f"[Fetcher] Failed to fetch {url}: {result}", flush=True)
                    outcomes.append(FetchOutcome(url=url, error=str(result)))
                else:
                    outcomes.append(FetchOutcome(url=url, content=result))

        return outcomes


class FirecrawlFetcher(BaseFetcher):
    """Firecrawl scrape API."""

    API_URL = "https://api.firecrawl.dev/v1/scrape"

    def __init__(self, api_key: Optional[str], transport: Optional[httpx.AsyncBaseTransport] = None):
        self.api_key = require_setting(api_key, "FIRECRAWL_API_KEY", "FireCrawl service")
        self._client = httpx.AsyncClient(timeout=FETCH_TIMEOUT_SECONDS * 2, transport=transport)

    @property
    def name(self) -> str:
        return "firecrawl"

    async def fetch(self, url: str) -> ScrapedContent:
        try:
            response = await self._client.post(
                self.API_URL,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
                json={"url": url, "formats": ["markdown"], "onlyMainContent": True},
            )
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            print(f"[Firecrawl] HTTP error: {e.response.status_code} - {e.response.text[:200]}")
            raise UpstreamProviderError(
                f"Failed to scrape URL {url}: HTTP {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            print(f"[Firecrawl] Error: {e}")
            raise UpstreamProviderError(f"Failed to scrape URL {url}: {e}") from e

        if not body.get("success"):
            raise UpstreamProviderError(
                f"Failed to scrape URL {url}: {body.get('error') or 'Unknown error'}"
            )

        data = body.get("data") or {}
        metadata = data.get("metadata") or {}
        return ScrapedContent(
            url=url,
            title=metadata.get("title"),
            content=data.get("markdown") or "",
            metadata=metadata,
        )

    async def aclose(self) -> None:
        await self._client.aclose()


class ApifyFetcher(BaseFetcher):
    """Apify website-content-crawler, one page per run."""

    ACTOR_ID = "apify/website-content-crawler"
    TIMEOUT_SECONDS = 300

    def __init__(self, api_token: Optional[str], client: Optional[ApifyClientAsync] = None):
        api_token = require_setting(api_token, "APIFY_API_TOKEN", "Apify service")
        self.client = client or ApifyClientAsync(api_token)

    @property
    def name(self) -> str:
        return "apify"

    async def _list_items(self, dataset_id: str) -> List[Dict[str, Any]]:
        list_items_result = await self.client.dataset(dataset_id).list_items()
        if hasattr(list_items_result, "items") and list_items_result.items:
            return list(list_items_result.items)
        if isinstance(list_items_result, dict) and "items" in list_items_result:
            return list(list_items_result["items"])
        return []

    async def fetch(self, url: str) -> ScrapedContent:
        actor_input = {
            "startUrls": [{"url": url}],
            "maxCrawlPages": 1,
            "maxCrawlDepth": 0,
            "crawlerType": "cheerio",
            "saveMarkdown": True,
        }
        run_id = None

        try:
            start_time = time.time()
            run_info = await self.client.actor(self.ACTOR_ID).start(
                run_input=actor_input, timeout_secs=self.TIMEOUT_SECONDS
            )
            run_id = run_info.get("id")
            print(f"[Apify] Run {run_id} started for {url}", flush=True)

            call_result = await self.client.run(run_id).wait_for_finish(wait_secs=self.TIMEOUT_SECONDS)
            print(f"[Apify] Run {run_id} finished in {time.time() - start_time:.1f}s", flush=True)

            if call_result is None:
                raise UpstreamProviderError(f"Failed to scrape URL {url}: actor run timed out")
            if call_result.get("status") != "SUCCEEDED":
                raise UpstreamProviderError(
                    f"Failed to scrape URL {url}: actor run status {call_result.get('status')}"
                )
            run_id = None

            dataset_id = call_result.get("defaultDatasetId")
            items = await self._list_items(dataset_id) if dataset_id else []
            if not items:
                raise UpstreamProviderError(f"Failed to scrape URL {url}: no data returned")

        except UpstreamProviderError:
            await self._abort(run_id)
            raise
        except Exception as e:
            print(f"[Apify] Error scraping {url}: {e}")
            await self._abort(run_id)
            raise UpstreamProviderError(f"Failed to scrape URL {url}: {e}") from e

        item = items[0]
        metadata = item.get("metadata") or {}
        return ScrapedContent(
            url=url,
            title=metadata.get("title"),
            content=item.get("markdown") or item.get("text") or "",
            metadata=metadata,
        )

    async def _abort(self, run_id: Optional[str]) -> None:
        if not run_id:
            return
        try:
            await self.client.run(run_id).abort()
            print(f"[Apify] Aborted run {run_id}", flush=True)
        except Exception as e:
            print(f"[Apify] Could not abort {run_id}: {e}", flush=True)


class HttpFetcher(BaseFetcher):
    """Direct HTTP download reduced to text with BeautifulSoup."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._client = httpx.AsyncClient(
            timeout=FETCH_TIMEOUT_SECONDS,
            follow_redirects=True,
            headers={"User-Agent": USER_AGENT},
            transport=transport,
        )

    @property
    def name(self) -> str:
        return "http"

    async def fetch(self, url: str) -> ScrapedContent:
        try:
            response = await self._client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UpstreamProviderError(
                f"Failed to scrape URL {url}: HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamProviderError(f"Failed to scrape URL {url}: {e}") from e

        content_type = response.headers.get("content-type", "")
        metadata = {"statusCode": response.status_code, "contentType": content_type}

        if "html" in content_type or not content_type:
            page = html_to_content(response.text)
            return ScrapedContent(url=url, title=page["title"], content=page["content"] or "", metadata=metadata)

        return ScrapedContent(url=url, content=response.text, metadata=metadata)

    async def aclose(self) -> None:
        await self._client.aclose()


def get_fetcher(
    name: str = "firecrawl",
    firecrawl_api_key: Optional[str] = None,
    apify_api_token: Optional[str] = None,
) -> BaseFetcher:
    """
    Factory function to get a fetcher by name.

    Args:
        name: Fetcher name ("firecrawl", "apify", "http")

    Returns:
        Fetcher instance
    """
    if name == "firecrawl":
        return FirecrawlFetcher(firecrawl_api_key)
    if name == "apify":
        return ApifyFetcher(apify_api_token)
    if name == "http":
        return HttpFetcher()
    raise ValueError(f"Unknown fetcher: {name}. Available: ['firecrawl', 'apify', 'http']")
